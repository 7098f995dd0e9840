"""Tests for logging processors."""

import logging

import pytest
import structlog

from livebridge.logging_config import (
    add_app_context,
    configure_logging,
    reorder_keys,
    utc_timestamper,
)


class TestProcessors:
    def test_add_app_context(self):
        assert add_app_context(None, "info", {"event": "x"})["app"] == "livebridge"

    def test_reorder_keys(self):
        event = {"event": "x", "timestamp": "t", "level": "info"}
        assert list(reorder_keys(None, "info", event)) == ["level", "timestamp", "event"]

    def test_utc_timestamper(self):
        ts = utc_timestamper(None, "info", {})["timestamp"]
        assert ts.endswith("Z")
        assert len(ts) == len("2024-01-01T00:00:00.000Z")


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.mark.usefixtures("restore_logging")
class TestConfigureLogging:
    def test_console_logging_installs_single_handler(self):
        configure_logging(json_logs=False, log_level="DEBUG")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(json_logs=True, log_level="chatty")

        assert logging.getLogger().level == logging.INFO
