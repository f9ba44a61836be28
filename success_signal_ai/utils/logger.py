"""Logging configuration for the Success Signal AI pipeline."""

import logging
import sys
from typing import Optional, Union

from success_signal_ai.config import LOG_LEVEL


def get_logger(name: str, level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Get a configured logger instance. Level defaults to LOG_LEVEL from config."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
        logger.setLevel(LOG_LEVEL)
    if level is not None:
        logger.setLevel(level)
    return logger
