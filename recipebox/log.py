from __future__ import annotations

import logging
import sys
from typing import Union

LOGGER_NAME = "recipebox"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """Attach a console handler to the ``recipebox`` logger.

    Calling this again only updates the level.
    """

    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(getattr(handler, "_recipebox", False) for handler in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handler._recipebox = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger


__all__ = ["configure_logging"]
