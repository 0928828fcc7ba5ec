"""
Logging setup for flatdb
"""

import logging
import sys

from . import config

ROOT_LOGGER_NAME = 'flatdb'


def configure_logging(debug: bool = config.DEBUG, log_file=config.LOG_FILE) -> logging.Logger:
    """Attach handlers to the package logger (replaces earlier ones)"""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    fmt = logging.Formatter(config.LOG_FORMAT)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(fmt)
    root.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding=config.FILE_ENCODING)
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    root.propagate = False
    return root


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        configure_logging()
    return logging.getLogger(name)
