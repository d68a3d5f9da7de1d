"""
Logging setup: loguru sink configuration and driver log forwarding.

pymongo logs through the standard library; ``intercept_driver_logging`` routes
those records into loguru so driver and output messages share one sink.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

DRIVER_LOGGERS = ("pymongo",)


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping level and caller depth."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with stderr at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def intercept_driver_logging(level: int = logging.WARNING) -> None:
    """Route driver loggers into loguru. Safe to call more than once."""
    for name in DRIVER_LOGGERS:
        std = logging.getLogger(name)
        if not any(isinstance(h, InterceptHandler) for h in std.handlers):
            std.addHandler(InterceptHandler())
        std.setLevel(level)
        std.propagate = False
