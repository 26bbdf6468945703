"""
Logging configuration
"""

import logging
import sys
from typing import Optional, TextIO
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite")


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None):
    """
    Configure application logging.

    Args:
        level: Level name; defaults to settings.LOG_LEVEL
        stream: Output stream; defaults to stdout. The CLI passes stderr so
            report output on stdout stays clean.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    # Replace any handlers from an earlier call
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(stream or sys.stdout)
        ],
        force=True
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured at {level_name} level")
