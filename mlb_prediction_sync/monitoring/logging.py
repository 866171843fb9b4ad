"""Structured logging configuration using structlog.

This module configures structlog for the sync worker and the API process:
- JSON output in production mode (filterable, parseable)
- Colored console output in development mode (human-readable)
- Correlation IDs for tracing one scheduler tick or one HTTP request

Usage:
    from mlb_prediction_sync.monitoring import configure_logging, get_logger

    # Configure once at process startup
    configure_logging("production")  # or "development"

    log = get_logger()
    log.info("sync_tick_completed", game_pk=745123, events_resolved=2)
    log.warning("feed_fetch_failed", game_pk=745123, error="timeout")
"""

import logging
import sys

import structlog


def configure_logging(mode: str = "development", level: str = "INFO") -> None:
    """Configure structlog for the application.

    Args:
        mode: "production" for JSON output, anything else for colored console output
        level: Stdlib level name; unknown names fall back to INFO
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if mode == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (defaults to caller's module name)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def bind_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current context.

    All subsequent log events in this context include the correlation_id field.
    The scheduler binds one per tick so every fetch/resolve log line of that
    tick can be grouped.

    Args:
        correlation_id: Unique identifier for this operation (e.g., tick id)
    """
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def unbind_correlation_id() -> None:
    """Remove correlation ID from context."""
    structlog.contextvars.unbind_contextvars("correlation_id")
