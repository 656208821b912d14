"""Centralized SQLAlchemy declarative base for all ORM models.

A single base keeps every table registered on the same metadata, so that
``create_all`` sees the conversation and channel tables together.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models in Proma."""

    pass
