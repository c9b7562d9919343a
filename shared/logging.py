"""
Structured logging setup for the OTP auth service.

Provides:
- setup_logging(): configure stdlib logging + structlog from LoggingSettings
- get_logger(): get a configured structlog BoundLogger
- mask_phone(): hide most of a phone number outside development

Production renders JSON lines; development renders a colourised console.
Sensitive keys (tokens, OTP codes, secrets) are redacted by a processor
before rendering, so call sites cannot leak them by accident.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor

from config import LoggingSettings

_SENSITIVE_FRAGMENTS = ("password", "token", "secret", "key", "otp", "authorization")
_RESERVED_KEYS = {"level", "event", "timestamp", "logger"}

_mask_phones = False


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("otp_requested", phone=mask_phone("+15551234567"))
    """
    return structlog.get_logger(name)


def mask_phone(phone: Optional[str]) -> Optional[str]:
    """Mask all but the last 4 characters of *phone* when masking is enabled.

    Masking is switched on by setup_logging() in production; in development
    the number is returned verbatim for easier debugging.
    """
    if phone is None:
        return None
    if not _mask_phones:
        return phone
    if len(phone) <= 4:
        return "*" * len(phone)
    return "*" * (len(phone) - 4) + phone[-4:]


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format UTC timestamp to event dict."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _RESERVED_KEYS:
            continue
        lowered = key.lower()
        if any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(settings: LoggingSettings) -> None:
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if settings.log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            pad_event=15,
            sort_keys=False,
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(settings: LoggingSettings) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    # Reduce noise from third-party libraries
    for noisy in ("pymongo", "redis", "uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def setup_logging(settings: LoggingSettings, *, production: bool = False) -> None:
    """
    Initialize logging for the application.

    Should be called once, early in create_app().
    """
    global _mask_phones
    _mask_phones = production

    configure_stdlib_logging(settings)
    configure_structlog(settings)

    get_logger(__name__).info(
        "logging_initialized",
        log_level=settings.log_level,
        log_format=settings.log_format,
        phone_masking=production,
    )


__all__ = [
    "get_logger",
    "mask_phone",
    "redact_sensitive_fields",
    "setup_logging",
]
