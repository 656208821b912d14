"""Storage layer for Proma persistence.

Provides the shared SQLAlchemy declarative base, database configuration and
session management used by the conversation and channel repositories.
"""

from proma.storage.base_model import Base
from proma.storage.database import Database, DatabaseConfig

__all__ = ["Base", "Database", "DatabaseConfig"]
