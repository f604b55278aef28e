# SPDX-License-Identifier: GPL-3.0-or-later
"""Application logging setup."""

import logging
from logging.handlers import RotatingFileHandler

from blocknotes.data_paths import log_dir

LOGGER_NAME = 'blocknotes'
_LOG_FILE_NAME = 'blocknotes.log'


def configure_logging(level=logging.INFO) -> logging.Logger:
    """Attach a rotating file handler and a stream handler to the package logger."""
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    handler = RotatingFileHandler(
        log_dir() / _LOG_FILE_NAME,
        maxBytes=1_048_576,
        backupCount=5,
        encoding='utf-8',
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    logger.info('Logging to %s', handler.baseFilename)
    return logger
