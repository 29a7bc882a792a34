"""
Structured logging configuration using structlog.

Engines log through module-level structlog loggers with snake_case event
names. The service binds the portfolio being processed into the context, so
every event emitted while recording or reading a portfolio carries its id.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from structlog.types import EventDict, Processor

from portfolio_analytics import __version__
from portfolio_analytics.config import Settings, get_settings

SERVICE_NAME = "portfolio-analytics"


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def add_service(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def _renderer(settings: Settings) -> Processor:
    if settings.log_format == "json" and not settings.dev_mode:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=not settings.testing)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging for the application.

    JSON lines in production, console output in development. Log level and
    format come from settings (LOG_LEVEL, LOG_FORMAT, DEV_MODE).

    Args:
        settings: Settings to read (default: cached application settings)
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_severity,
            add_service,
            _renderer(settings),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


@contextmanager
def portfolio_context(portfolio_id: str, **context: Any) -> Iterator[None]:
    """
    Bind portfolio_id (and any extra fields) to every event logged inside the block.

    Example:
        >>> with portfolio_context("pf-1", date="2026-03-01"):
        ...     logger.info("session_recorded")
    """
    with structlog.contextvars.bound_contextvars(portfolio_id=portfolio_id, **context):
        yield
