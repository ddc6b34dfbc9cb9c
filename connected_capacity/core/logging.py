"""
Logging Setup - Connected Capacity Bundle Engine
connected_capacity/core/logging.py

Configures structlog for the engines and services. LOG_FORMAT selects a
JSON renderer (log shipping) or the console renderer (local development).
"""

import logging
import sys

import structlog

from connected_capacity.config import settings


def configure_logging(level: str = None, fmt: str = None) -> None:
    """Configure stdlib logging and structlog with a shared level."""
    level = (level or settings.LOG_LEVEL).upper()
    fmt = fmt or settings.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level, logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )
