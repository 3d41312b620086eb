"""
Logging configuration module for structured logging.

This module configures the package's logging using structlog: JSON output for
production and human-readable console output for development.

The logging configuration includes:
- Timestamp formatting
- Log level inclusion
- JSON/Console output based on settings
- Logger caching
"""

import logging

import structlog

from user_service.core.config.settings import settings


def configure_logging(log_level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configures structlog and the standard library root logger.

    Args:
        log_level: Overrides ``settings.LOG_LEVEL``.
        json_logs: Overrides ``settings.LOG_JSON``.
    """
    level = (log_level or settings.LOG_LEVEL).upper()
    use_json = settings.LOG_JSON if json_logs is None else json_logs

    logging.basicConfig(format="%(message)s", level=level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def mask_email(email: str | None) -> str:
    """Mask an email address for logging, e.g. ``ali***@example.com``."""
    if not isinstance(email, str) or "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    return f"{local[:3]}***@{domain}"


def mask_token(token: str | None) -> str:
    """Keep only the first 8 characters of a token for logging."""
    if not token:
        return "none"
    return f"{token[:8]}..."


logger = structlog.get_logger()
