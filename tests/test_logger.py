"""
Tests for the logging helpers.
"""

import logging
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from order_tally.logger import LOG_FILE, configure_logging, debug_watcher, get_logger


def test_child_logger_names():
    assert get_logger("order_tally.rules").name == "order_tally.rules"
    assert get_logger("rules").name == "order_tally.rules"
    assert get_logger().name == "order_tally"


def test_debug_watcher_passes_result_through():
    @debug_watcher
    def add(a, b):
        return a + b

    assert add(2, 3) == 5
    assert add.__name__ == "add"


def test_debug_watcher_reraises():
    @debug_watcher
    def fail(rows):
        raise ValueError("bad rows")

    with pytest.raises(ValueError, match="bad rows"):
        fail([1, 2, 3])


def _owned_handlers(package):
    return [h for h in package.handlers if getattr(h, "_order_tally_handler", False)]


class TestConfigureLogging:
    """Tests for handler installation on the package logger."""

    def teardown_method(self):
        configure_logging()

    def test_default_handlers(self):
        package = configure_logging()
        handlers = _owned_handlers(package)
        assert len(handlers) == 2
        levels = {type(h): h.level for h in handlers}
        assert levels[logging.StreamHandler] == logging.INFO
        assert levels[logging.FileHandler] == logging.DEBUG
        file_handler = next(h for h in handlers if isinstance(h, logging.FileHandler))
        assert Path(file_handler.baseFilename) == LOG_FILE

    def test_reconfigure_replaces_handlers(self, tmp_path):
        configure_logging()
        package = configure_logging(console_level=logging.DEBUG, log_file=tmp_path / "debug.log")
        handlers = _owned_handlers(package)
        assert len(handlers) == 2
        assert all(h.level == logging.DEBUG for h in handlers)

        get_logger("resolver").debug("row 3 rejected")
        for h in handlers:
            h.flush()
        assert "row 3 rejected" in (tmp_path / "debug.log").read_text(encoding="utf-8")

    def test_console_only(self):
        package = configure_logging(log_file=None)
        handlers = _owned_handlers(package)
        assert [type(h) for h in handlers] == [logging.StreamHandler]
