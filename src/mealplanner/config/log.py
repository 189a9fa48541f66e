"""structlog setup for the CLI and API entry points."""

import logging

import structlog

from mealplanner.config.settings import settings


def configure_logging(level: str | None = None) -> None:
    """Render structlog events, dropping those below ``level``.

    Defaults to ``settings.log_level``. Production renders one JSON object per
    event; development renders for the console.
    """
    if settings.environment == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level or settings.log_level)
        ),
    )
