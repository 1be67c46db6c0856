"""
Market Valuer — Structlog Configuration

The library only calls structlog.get_logger(); applications embedding the
pipeline call configure_logging() once at startup.
"""

from __future__ import annotations

import logging
import sys

import structlog

from market_valuer.config import settings


def configure_logging(log_level: str | None = None, json_output: bool | None = None) -> None:
    """
    Set up structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL.
        json_output: JSON lines when True, coloured console output otherwise.
            Defaults to LOG_JSON.
    """
    level_name = (log_level or settings.LOG_LEVEL).upper()
    use_json = settings.LOG_JSON if json_output is None else json_output
    level = getattr(logging, level_name, logging.INFO)

    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
