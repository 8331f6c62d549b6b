"""Logging setup for the TourneyMethod admin service."""

from __future__ import annotations

import logging
import os
from logging.config import dictConfig
from typing import Any, Dict, Optional

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# httpx logs every request line at INFO, which would repeat each osu! call.
_CHATTY_LIBRARIES = ("httpx", "httpcore")


def build_logging_config(level: Optional[str] = None, access_level: Optional[str] = None) -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping for the service.

    Levels default to ``TOURNEY_LOG_LEVEL`` and ``UVICORN_ACCESS_LOG_LEVEL``.
    Auth events go through the ``tourneymethod`` logger tree; uvicorn is
    routed to the same console handler so a deployment has one format.
    """
    level = (level or os.getenv("TOURNEY_LOG_LEVEL", "INFO")).upper()
    access_level = (access_level or os.getenv("UVICORN_ACCESS_LOG_LEVEL", "INFO")).upper()
    log_format = os.getenv("TOURNEY_LOG_FORMAT", DEFAULT_FORMAT)

    loggers: Dict[str, Any] = {
        "tourneymethod": {"level": level},
        "uvicorn": {"handlers": ["console"], "level": level, "propagate": False},
        "uvicorn.error": {"handlers": ["console"], "level": level, "propagate": False},
        "uvicorn.access": {"handlers": ["console"], "level": access_level, "propagate": False},
    }
    for name in _CHATTY_LIBRARIES:
        loggers[name] = {"level": "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"console": {"format": log_format}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
            },
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": loggers,
    }


def configure_logging(level: Optional[str] = None) -> None:
    config = build_logging_config(level)
    dictConfig(config)
    logging.getLogger(__name__).debug("Logging configured at %s level", config["root"]["level"])
