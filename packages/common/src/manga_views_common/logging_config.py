"""Structured logging setup.

All packages log through ``get_logger(__name__)`` with snake_case event names
and keyword context::

    logger.info("pending_views_added", amount=5, total=105)

Output always goes to stderr so stdout stays free for command output.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure structlog for the current process.

    Args:
        level: Minimum level name (default: from settings)
        log_format: "console" for human-readable lines, "json" for one JSON
            object per line (default: from settings)
    """
    if level is None or log_format is None:
        from manga_views_common.config import get_settings

        settings = get_settings()
        level = level or settings.log_level
        log_format = log_format or settings.log_format

    renderer: structlog.typing.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS[level.upper()]),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Uncached so capture_logs() and reconfiguration take effect everywhere
        cache_logger_on_first_use=False,
    )


def get_logger(name: Optional[str] = None) -> structlog.typing.FilteringBoundLogger:
    """Return a structured logger bound to ``name``."""
    return structlog.get_logger(name)
