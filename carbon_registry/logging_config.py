import logging
import sys

from carbon_registry.settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def set_logger_and_children_level(logger_instance: logging.Logger, level: int):
    """Set the level of a logger and of every logger registered beneath it."""
    logger_instance.setLevel(level)
    for handler in logger_instance.handlers:
        handler.setLevel(level)

    if not logger_instance.name or logger_instance.name == "root":
        return

    for name in list(logging.root.manager.loggerDict):
        if name.startswith(logger_instance.name + "."):
            child = logging.getLogger(name)
            child.setLevel(level)
            for handler in child.handlers:
                handler.setLevel(level)


def get_logger(name: str = "carbon_registry") -> logging.Logger:
    _logger = logging.getLogger(name)
    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _logger.addHandler(handler)
    set_logger_and_children_level(_logger, getattr(logging, settings.LOG_LEVEL, logging.INFO))
    return _logger


logger = get_logger()
