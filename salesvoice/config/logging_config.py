"""
Logging setup for the salesvoice service.

Everything logs through the single ``salesvoice`` logger. Per-call lines carry a
``[call-N]`` prefix so one call's events can be followed through the shared output.
``configure_logging`` writes to stdout and to a rotating file under ``logs/``; the
level comes from its argument, falling back to the ``LOG_LEVEL`` environment variable.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from salesvoice.config.constants import LOGGER_NAME

# Level and line format
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Rotating file output
LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "salesvoice.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def configure_logging(level: Optional[str] = None):
    """
    Attach console and rotating-file handlers to the ``salesvoice`` logger.

    Safe to call more than once; earlier handlers are replaced.

    Args:
        level: Optional level name overriding the LOG_LEVEL environment variable

    Returns:
        logging.Logger: The configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # A read-only working directory leaves console output only
    try:
        LOG_DIR.mkdir(exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Could not set up file logging: {e}")

    # Uvicorn configures the root logger; keep our lines from printing twice
    logger.propagate = False

    logger.info("Logging configured")
    return logger
