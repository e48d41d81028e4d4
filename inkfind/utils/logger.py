"""
Logging setup shared by the whole package.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from inkfind.config import LOG_BACKUP_COUNT, LOG_FORMAT, LOG_LEVEL, LOG_MAX_BYTES

ROOT_LOGGER_NAME = "inkfind"


def configure_logger(level: str = LOG_LEVEL, log_file: Optional[str] = None):
    """Attach console (and optionally rotating file) handlers once."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    console.setLevel(level)
    logger.addHandler(console)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Logger under the package namespace.

    Modules call this at import time; handlers are only installed by
    configure_logger, so library users keep control of the output.
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME).getChild(name)
