# tests/test_logging_config.py
"""
Tests for the goalsync.logging_config module.

Tests the LoggingManager singleton, console/file handlers, the display
filter and runtime level changes.
"""

import logging

import pytest

from goalsync.logging_config import (
    DEFAULT_LOGGING_CONFIG,
    DisplayFilter,
    LoggingManager,
    configure_logging,
    get_log_file_path,
    log_display,
    set_component_level,
    set_console_level,
)


def _reset():
    LoggingManager._instance = None
    LoggingManager._configured = False
    LoggingManager._log_file_path = None
    LoggingManager._console_handler = None
    LoggingManager._file_handler = None

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


@pytest.fixture
def reset_logging_manager():
    """Reset the logging manager singleton between tests."""
    _reset()
    yield
    _reset()


def _record(level=logging.INFO, display=None):
    record = logging.LogRecord("goalsync.test", level, __file__, 1, "message", None, None)
    if display is not None:
        record.display = display
    return record


class TestDefaultLoggingConfig:

    def test_console_quiet_by_default(self):
        assert DEFAULT_LOGGING_CONFIG["console_enabled"] is False

    def test_file_enabled_by_default(self):
        assert DEFAULT_LOGGING_CONFIG["file_enabled"] is True

    def test_components_defined(self):
        assert "goalsync" in DEFAULT_LOGGING_CONFIG["components"]


class TestDisplayFilter:

    def test_silent_mode_blocks_plain_records(self):
        assert DisplayFilter().filter(_record()) is False

    def test_display_records_pass(self):
        assert DisplayFilter().filter(_record(display=True)) is True

    def test_display_min_level(self):
        display_filter = DisplayFilter(display_min_level=logging.WARNING)
        assert display_filter.filter(_record(logging.INFO, display=True)) is False
        assert display_filter.filter(_record(logging.ERROR, display=True)) is True

    def test_global_console_passes_everything(self):
        assert DisplayFilter(console_globally_enabled=True).filter(_record()) is True


class TestLoggingManager:

    def test_singleton_pattern(self, reset_logging_manager):
        assert LoggingManager() is LoggingManager.get_instance()

    def test_is_configured_initially_false(self, reset_logging_manager):
        assert LoggingManager.is_configured() is False

    def test_returns_log_path(self, reset_logging_manager, tmp_path):
        path = configure_logging(config={"file_directory": str(tmp_path)})

        assert path == tmp_path / "goalsync.log"
        assert get_log_file_path() == path
        assert LoggingManager.is_configured() is True

    def test_per_run_file(self, reset_logging_manager, tmp_path):
        path = configure_logging(
            app_name="sync", config={"file_directory": str(tmp_path), "file_mode": "per_run"}
        )
        assert path.parent == tmp_path
        assert path.name.startswith("sync_")

    def test_console_only(self, reset_logging_manager):
        assert configure_logging(config={"file_enabled": False}) is None
        assert get_log_file_path() is None

    def test_configure_once(self, reset_logging_manager, tmp_path):
        first = configure_logging(config={"file_directory": str(tmp_path)})
        second = configure_logging(config={"file_enabled": False})
        assert second == first

    def test_force_reconfigure(self, reset_logging_manager, tmp_path):
        configure_logging(config={"file_directory": str(tmp_path)})
        assert configure_logging(config={"file_enabled": False}, force_reconfigure=True) is None

    def test_component_levels(self, reset_logging_manager):
        configure_logging(config={"file_enabled": False, "components": {"goalsync.remote": "DEBUG"}})
        assert logging.getLogger("goalsync.remote").level == logging.DEBUG

    def test_runtime_level_changes(self, reset_logging_manager):
        configure_logging(config={"file_enabled": False, "console_enabled": True})

        set_console_level("ERROR")
        set_component_level("goalsync.scheduling", "WARNING")

        assert LoggingManager._console_handler.level == logging.ERROR
        assert logging.getLogger("goalsync.scheduling").level == logging.WARNING

    def test_writes_to_file(self, reset_logging_manager, tmp_path):
        path = configure_logging(config={"file_directory": str(tmp_path)})

        logging.getLogger("goalsync.test").info("written to file")
        LoggingManager._file_handler.flush()

        assert "written to file" in path.read_text(encoding="utf-8")


class TestLogDisplay:

    def test_sets_display_flag(self, caplog):
        logger = logging.getLogger("goalsync.test")
        with caplog.at_level(logging.INFO, logger="goalsync.test"):
            log_display(logger, logging.WARNING, "shown %s", "always", extra={"goal": "writing"})

        record = caplog.records[-1]
        assert record.getMessage() == "shown always"
        assert record.display is True
        assert record.goal == "writing"
