"""
Structured logging setup for the screen configuration engine.

Every record carries the screen context bound by bind_screen_context(),
so autosave and association logs emitted from background tasks still
name the screen and event they belong to.
"""

import logging
import sys
from typing import Optional

import structlog

from screenconf.config.settings import ScreenConfigSettings, get_settings


def setup_logging(settings: Optional[ScreenConfigSettings] = None) -> None:
    """Configure structured logging."""
    settings = settings or get_settings()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )


def bind_screen_context(screen_key: str, event_id: Optional[str] = None) -> None:
    """Attach the screen being edited to every log record of this context."""
    structlog.contextvars.bind_contextvars(screen_key=screen_key)
    if event_id:
        structlog.contextvars.bind_contextvars(event_id=event_id)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to a module name."""
    return structlog.get_logger(name)
