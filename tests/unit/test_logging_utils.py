"""
Unit tests for loguru setup and driver log forwarding.
"""

import logging
import sys

import pytest
from loguru import logger

from mongo_output.logging_utils import InterceptHandler, configure_logging, intercept_driver_logging


@pytest.fixture
def driver_logger():
    """pymongo's stdlib logger, restored after the test."""
    std = logging.getLogger("pymongo")
    saved = (list(std.handlers), std.level, std.propagate)
    yield std
    std.handlers[:] = saved[0]
    std.setLevel(saved[1])
    std.propagate = saved[2]


def test_driver_records_reach_loguru(driver_logger, warnings_log):
    intercept_driver_logging()
    driver_logger.warning("server selection slow: %s", "rs0")

    assert len(warnings_log) == 1
    assert warnings_log[0]["level"].name == "WARNING"
    assert warnings_log[0]["message"] == "server selection slow: rs0"


def test_driver_records_below_level_dropped(driver_logger, warnings_log):
    intercept_driver_logging()
    driver_logger.info("heartbeat")
    assert warnings_log == []


def test_intercept_installs_one_handler(driver_logger):
    intercept_driver_logging()
    intercept_driver_logging()
    handlers = [h for h in driver_logger.handlers if isinstance(h, InterceptHandler)]
    assert len(handlers) == 1
    assert driver_logger.propagate is False


def test_configure_logging_sets_level():
    records = []
    try:
        configure_logging("warning")
        handler_id = logger.add(lambda msg: records.append(msg.record), level="DEBUG")
        logger.info("kept by the extra sink")
        logger.remove(handler_id)
    finally:
        logger.remove()
        logger.add(sys.stderr)
    assert [r["message"] for r in records] == ["kept by the extra sink"]
