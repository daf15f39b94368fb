"""Logging configuration."""
import logging
import sys
from typing import Optional

from pokerpal.config import config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger writing to stdout at ``LOG_LEVEL``.

    Handlers are attached once per logger name, so calling this at import
    time in every module is safe.
    """
    logger = logging.getLogger(name or "pokerpal")
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    return logger
