# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Logs are rendered as JSON outside development and as colored console
output in development. Library modules keep using
``logging.getLogger(__name__)``; structlog is configured alongside the
standard library for the worker process and page sessions.

Backend credentials must never reach a log line. The ``redact_secrets``
processor masks the known credential keys in every structured event.

Example:
    >>> from lgscoach.utils.logging import setup_logging, get_logger
    >>> from lgscoach.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> logger = get_logger(__name__)
    >>> logger.info("Worker activated", coach_id="123")
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor

if TYPE_CHECKING:
    from lgscoach.core.config.settings import Settings

SECRET_KEYS = frozenset({"anon_key", "anonKey", "apikey", "api_key", "access_token", "password"})
REDACTED = "***"

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "aiohttp",
    "aiohttp.access",
    "redis",
    "google.auth",
    "urllib3",
    "asyncio",
)


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values bound to a structured event."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(settings: "Settings") -> None:
    """Configure structured logging for the process.

    Args:
        settings: Application settings containing log_level and debug flag.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development or settings.debug:
        processors: list[Processor] = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("lgscoach").setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name."""
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent structured log calls.

    The worker binds ``component``; a page session binds ``coach_id``.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific context variables, leaving the others bound."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context variables. Called when the worker exits."""
    structlog.contextvars.clear_contextvars()
