"""Structured logging configuration using structlog.

Request-scoped ids (``scene_id``, ``user_id``) are bound with
``structlog.contextvars`` and merged into every event logged while they
are bound.
"""

import logging
import sys
from typing import Any

import structlog
from nerfserve.config import settings

SENSITIVE_KEYS = frozenset({
    "password",
    "password_hash",
    "access_token",
    "token",
    "authorization",
    "jwt_secret_key",
})

REDACTED = "***REDACTED***"


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_KEYS else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def redact_credentials(logger, method_name: str, event_dict: dict) -> dict:
    """Mask credential fields so passwords and tokens never reach the log sink."""
    return _redact(event_dict)


def configure_logging():
    """Configure structured logging for the application."""

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_credentials,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.log_format == "json":
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.debug))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()

logger = structlog.get_logger()
