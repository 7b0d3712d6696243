import logging
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


# Structured logger factory
def get_logger(name=None):
    """Return a logger with a standardized format"""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach the standard handler to the package logger and set its level.

    Module loggers under ``hashplayer.*`` propagate to it, so this is called
    once by an entry point rather than per module.
    """
    if level is None:
        from .config import get_settings

        level = get_settings().log_level
    logger = get_logger("hashplayer")
    logger.setLevel(level.upper())
    return logger
