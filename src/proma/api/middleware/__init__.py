"""API middleware components.

This module exports the correlation-id middleware and error handler setup.
"""

from proma.api.middleware.correlation import CorrelationIdMiddleware
from proma.api.middleware.error_handler import setup_error_handlers

__all__ = ["CorrelationIdMiddleware", "setup_error_handlers"]
