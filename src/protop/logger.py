"""Logging setup for protop."""

import logging
import os
from logging.handlers import RotatingFileHandler


def setup_logging(log_file: str | None = None, level: str = "INFO") -> logging.Logger:
    """
    Configure the ``protop`` logger.

    The terminal belongs to the UI, so records only go to a rotating file
    when one is given and are dropped otherwise.
    """
    logger = logging.getLogger("protop")
    logger.setLevel(level)
    logger.propagate = False

    if log_file is not None:
        if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
            logger.addHandler(handler)
    elif not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
