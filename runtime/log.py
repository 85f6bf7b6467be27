"""Structured logging configuration (structlog).

Console output for development, JSON lines for production.  Modules get a
logger with ``get_logger(__name__)`` and bind invocation context onto it.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, cast

import structlog

from contracts.settings import LoggingSettings


def setup_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog once, at process start."""
    settings = settings or LoggingSettings()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if settings.json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to *name* (typically the module's ``__name__``)."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
