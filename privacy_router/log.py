"""structlog setup shared by embedding applications and the preview API."""

import logging

import structlog


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with a level filter and console rendering.

    Args:
        level: Standard logging level name (DEBUG, INFO, WARNING, ...)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def short(value: str | None, keep: int = 8) -> str | None:
    """Truncate an address or hash for log output."""
    if value is None or len(value) <= keep * 2:
        return value
    return f"{value[:keep]}...{value[-4:]}"
