import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from country_cache.config import config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# one handler per log file, shared by every logger writing to it
_file_handlers: dict[str, RotatingFileHandler] = {}


def _file_handler(file_name: str, formatter: logging.Formatter) -> RotatingFileHandler:
    if file_name not in _file_handlers:
        os.makedirs(config.LOG_DIR, exist_ok=True)
        handler = RotatingFileHandler(
            os.path.join(config.LOG_DIR, file_name),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            delay=True,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        _file_handlers[file_name] = handler
    return _file_handlers[file_name]


def setup_logger(name: str, file_name: str) -> logging.Logger:
    """
    Return a named logger writing to the console and to ``<LOG_DIR>/<file_name>``.

    Handlers are attached only the first time a given logger name is set up,
    so importing a module twice (e.g. under the test runner) does not double
    every line.
    """
    logger = logging.getLogger(name)
    logger.setLevel(config.LOG_LEVEL.upper())
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    logger.addHandler(_file_handler(file_name, formatter))

    logger.propagate = False
    return logger
