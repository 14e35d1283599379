"""
Logging configuration using structlog for structured, JSON-based logging.

credstore itself never configures logging; applications call
``configure_logging`` once at startup if they want its events rendered.
Secret values are never passed to the logger.
"""

from typing import Any

import structlog

from credstore.config import get_settings


def configure_logging(log_level: str | None = None) -> None:
    """Configure structured logging with JSON output.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to the ``CREDSTORE_LOG_LEVEL`` setting.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level or get_settings().log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("backend_selected", backend="keychain")
    """
    return structlog.get_logger(name)
