"""Logging configuration shared by all Storefront contexts.

stdlib logging carries the output; structlog formats it. Production and
staging render one JSON object per line, everything else renders for the
console with rich tracebacks.

Request handlers never pass ids around for logging: the request middleware
binds them once with ``add_context`` and every event logged while the
request runs carries them.
"""

import logging
import os
import sys
from typing import Any

import structlog

from config import get_settings

_ENV_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Chatty third-party loggers, capped regardless of the storefront level
_QUIET_LOGGERS = ("sqlalchemy.engine", "stripe", "asyncio", "uvicorn.access")

_JSON_ENVS = {"production", "staging"}


def get_log_level() -> str:
    """LOG_LEVEL when set, otherwise the level for the current environment."""
    return os.getenv("LOG_LEVEL", _ENV_LEVELS.get(get_settings().env, "INFO")).upper()


def _route_stdlib(level: str) -> None:
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [logging.StreamHandler(sys.stdout)]
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _renderers(env: str) -> list:
    if env in _JSON_ENVS:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    # ConsoleRenderer formats exceptions itself
    return [
        structlog.dev.ConsoleRenderer(
            colors=env == "development",
            exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
        )
    ]


def configure_logging() -> None:
    """Configure stdlib logging and structlog for the current environment."""
    env = get_settings().env
    _route_stdlib(get_log_level())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            *_renderers(env),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_context(**kwargs: Any) -> None:
    """Attach key-value pairs to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**{k: v for k, v in kwargs.items() if v is not None})


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
