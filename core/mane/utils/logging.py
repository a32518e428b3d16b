"""Logging configuration for Mane Core."""

import logging
import sys

from mane.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int = LOG_LEVEL) -> logging.Logger:
    """
    Configure the "mane" logger once: stdout, one line per record.
    `level` accepts a level name ("DEBUG") or number.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    mane_logger = logging.getLogger("mane")
    mane_logger.setLevel(level)
    # uvicorn and basicConfig install root handlers; avoid printing twice
    mane_logger.propagate = False

    if not mane_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        mane_logger.addHandler(handler)

    return mane_logger


logger = setup_logging()
