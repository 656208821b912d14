"""Structured logging configuration with correlation ID support.

Two kinds of loggers coexist in Proma: structlog loggers at the HTTP edge
(event name plus keyword fields) and stdlib ``logging`` loggers in the core
modules. ``setup_logging`` routes both through one root handler rendered by
structlog, so every line carries the same timestamp, level and correlation
id, and credential fields are masked before rendering.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional

import structlog

# Context variable to store correlation ID per request
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Event keys whose values are replaced before rendering
SENSITIVE_KEYS = frozenset(
    {"api_key", "authorization", "x-api-key", "x-goog-api-key", "credential_key"}
)
REDACTED = "***"

# Third-party loggers that log every request or statement at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")

_root_handler: Optional[logging.Handler] = None


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation ID to log event if available.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Event dictionary to modify

    Returns:
        Modified event dictionary with correlation_id
    """
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def redact_secrets(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask credential-bearing fields.

    Example:
        >>> redact_secrets(None, "info", {"event": "x", "api_key": "sk-1"})
        {'event': 'x', 'api_key': '***'}
    """
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS and event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    Safe to call more than once; the handler installed by a previous call is
    replaced, handlers installed by others are left alone.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output logs in JSON format; otherwise use console format

    Example:
        >>> setup_logging(log_level="DEBUG", json_logs=False)
        >>> logger = get_logger(__name__)
        >>> logger.info("turn_completed", conversation_id="c-1")
    """
    global _root_handler

    level = getattr(logging, log_level.upper())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        redact_secrets,
    ]

    if json_logs:
        renderers: list[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Records from stdlib loggers go through the same chain
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    if _root_handler is not None:
        root.removeHandler(_root_handler)
    root.addHandler(handler)
    root.setLevel(level)
    _root_handler = handler

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for the current context.

    Args:
        correlation_id: Unique identifier for request tracing
    """
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID, or None when unset."""
    return correlation_id_var.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID from the current context."""
    correlation_id_var.set(None)
