"""Tests for logging setup."""

import logging

import pytest

import irrigator.logging as irrigator_logging
from irrigator.logging import configure, get_logger


@pytest.fixture
def fresh_logging():
    """Undo configure() so each test starts unconfigured."""
    root = logging.getLogger("irrigator")
    level = root.level
    irrigator_logging._handler = None
    yield root
    if irrigator_logging._handler is not None:
        root.removeHandler(irrigator_logging._handler)
    irrigator_logging._handler = None
    root.setLevel(level)


class TestConfigure:
    def test_adds_single_handler(self, fresh_logging):
        before = len(fresh_logging.handlers)

        configure()
        configure()

        assert len(fresh_logging.handlers) == before + 1
        assert fresh_logging.level == logging.INFO

    def test_reconfigure_changes_level(self, fresh_logging):
        configure()
        configure("DEBUG")

        assert fresh_logging.level == logging.DEBUG

    def test_quiets_redis(self, fresh_logging):
        configure()
        assert logging.getLogger("redis").level == logging.WARNING


def test_get_logger_uses_namespace():
    assert get_logger("engine.pump").name == "irrigator.engine.pump"
