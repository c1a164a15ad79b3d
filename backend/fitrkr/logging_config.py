"""structlog configuration for fitrkr.

Engines log datetimes (expiries, activity times) as raw values; the
``_isoformat_datetimes`` processor renders them before output so both
renderers print ISO-8601.
"""

import logging
import sys
from datetime import datetime

import structlog

from fitrkr.config import Settings, get_settings


def _isoformat_datetimes(logger, method_name: str, event_dict: dict) -> dict:
    for key, value in event_dict.items():
        if isinstance(value, datetime):
            event_dict[key] = value.isoformat()
    return event_dict


def log_level(settings: Settings) -> int:
    if settings.debug:
        return logging.DEBUG
    return logging.getLevelName(settings.log_level)


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog from settings.

    debug: colored console output at DEBUG.
    Otherwise: JSON lines at ``settings.log_level``.
    """
    settings = settings or get_settings()

    processors: list = [
        structlog.contextvars.merge_contextvars,  # user_id (bound by AccountService)
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _isoformat_datetimes,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level(settings)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
