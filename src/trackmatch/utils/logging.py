"""Simple logging utility.

Provides a lightweight wrapper around Python's standard logging
module to produce consistent log messages across the loaders, the
matcher and the command-line pipeline.
"""

import logging
from typing import Optional


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Return a configured logger with a preset format.

    The handler is attached only once per logger name.  Passing
    ``level`` changes the level of an already configured logger, which
    is how the CLI switches to DEBUG output.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt='[%(asctime)s] [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    if level is not None:
        logger.setLevel(level)
    return logger


def set_level(level: int, prefix: str = "trackmatch") -> None:
    """Set ``level`` on every logger created so far under ``prefix``."""
    for name in list(logging.root.manager.loggerDict):
        if name == prefix or name.startswith(prefix + "."):
            logging.getLogger(name).setLevel(level)
