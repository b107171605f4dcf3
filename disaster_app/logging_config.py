"""
Logging setup for the app.

Everything under the ``disaster_app`` logger goes to stdout in a plain
pipe-separated format. Call ``setup_logging()`` once at startup.
"""

import logging
import sys

from . import config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str = config.LOG_LEVEL) -> logging.Logger:
    logger = logging.getLogger("disaster_app")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Clear existing handlers so repeated calls don't duplicate output
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    # Suppress noisy loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger.debug("Logging initialized at level %s", level.upper())
    return logger
