"""
Logging setup for schemerge.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import LoggingConfig


PACKAGE_LOGGER = "schemerge"


def setup_logging(config: Optional[LoggingConfig] = None, debug: bool = False) -> logging.Logger:
    """
    Configure the ``schemerge`` logger from a LoggingConfig.

    Replaces handlers installed by a previous call, so it is safe to call
    more than once (e.g. once per CLI invocation).
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if debug else getattr(logging, config.level))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config.file:
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
