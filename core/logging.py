"""
Logging configuration
"""

import logging
import sys
from typing import Optional
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Libraries that log every statement, poll or tick at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "apscheduler", "watchfiles")


def setup_logging(level: Optional[str] = None):
    """
    Configure application logging.

    `level` overrides LOG_LEVEL. Calling again reconfigures the root logger
    instead of stacking handlers, so the API and the scripts can both call it.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {level_name} level")
