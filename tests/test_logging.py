"""
Tests for the logging configuration module.

Tests the centralized logging configuration functionality.
"""

import logging
import os
import time
from unittest.mock import patch

import pytest

from gcontact_notion.utils.logging import (
    CONSOLE_FORMAT,
    DATE_FORMAT,
    LOGGER_NAME,
    VERBOSE_FORMAT,
    ColoredFormatter,
    cleanup_old_logs,
    get_log_file_path,
    get_log_level_from_env,
    get_logger,
    setup_logging,
    stderr_supports_color,
)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo setup_logging so later tests can capture log records."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def flush(logger):
    for handler in logger.handlers:
        handler.flush()


class TestGetLogLevelFromEnv:
    """Tests for get_log_level_from_env function."""

    @patch.dict(os.environ, {"GCONTACT_NOTION_DEBUG": "true"})
    def test_debug_mode_from_env(self):
        """Test debug mode enabled with 'true'."""
        assert get_log_level_from_env() == logging.DEBUG

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("warn", logging.WARNING),
            ("ERROR", logging.ERROR),
            (" critical ", logging.CRITICAL),
            ("LOUD", logging.INFO),
        ],
    )
    def test_level_names(self, name, expected):
        env = {"GCONTACT_NOTION_DEBUG": "", "GCONTACT_NOTION_LOG_LEVEL": name}
        with patch.dict(os.environ, env):
            assert get_log_level_from_env() == expected


class TestGetLogFilePath:
    """Tests for get_log_file_path function."""

    def test_custom_log_file_from_env(self, tmp_path):
        """Test the log file can be set from the environment."""
        custom = tmp_path / "custom.log"
        with patch.dict(os.environ, {"GCONTACT_NOTION_LOG_FILE": str(custom)}):
            assert get_log_file_path() == custom

    @pytest.mark.parametrize("value", ["none", "Disabled", "", "off"])
    def test_log_file_disabled(self, value):
        """Test the values that disable file logging."""
        with patch.dict(os.environ, {"GCONTACT_NOTION_LOG_FILE": value}):
            assert get_log_file_path() is None

    def test_daily_file_in_log_dir(self, tmp_path):
        """Test the default daily file name."""
        env = {k: v for k, v in os.environ.items() if k != "GCONTACT_NOTION_LOG_FILE"}
        with patch.dict(os.environ, env, clear=True):
            path = get_log_file_path(tmp_path)

        assert path.parent == tmp_path
        assert path.name.startswith("gcontact_notion_")
        assert path.suffix == ".log"


class TestColoredFormatter:
    """Tests for ColoredFormatter class."""

    @patch("sys.stderr")
    def test_non_tty_has_no_color(self, mock_stderr):
        """Test that colors are off when stderr is not a terminal."""
        mock_stderr.isatty.return_value = False
        assert stderr_supports_color() is False

    @patch.dict(os.environ, {"NO_COLOR": "1"})
    @patch("sys.stderr")
    def test_respects_no_color_env(self, mock_stderr):
        """Test formatter respects NO_COLOR environment variable."""
        mock_stderr.isatty.return_value = True
        formatter = ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_colors=True)
        assert formatter.use_colors is False

    def _record(self):
        return logging.LogRecord(
            name="test",
            level=logging.WARNING,
            pathname="test.py",
            lineno=1,
            msg="Careful",
            args=(),
            exc_info=None,
        )

    def test_format_without_colors(self):
        """Test plain formatting."""
        formatter = ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_colors=False)
        assert formatter.format(self._record()) == "WARNING: Careful"

    def test_format_with_colors_leaves_record_untouched(self):
        """Test that only the level name is colored and the record is not mutated."""
        formatter = ColoredFormatter(CONSOLE_FORMAT, DATE_FORMAT, use_colors=False)
        formatter.use_colors = True
        record = self._record()

        result = formatter.format(record)

        assert result == "\033[33mWARNING\033[0m: Careful"
        assert record.levelname == "WARNING"


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_returns_package_logger(self):
        """Test setup_logging returns the non-propagating package logger."""
        logger = setup_logging(enable_file_logging=False)
        assert logger.name == "gcontact_notion"
        assert logger.propagate is False

    def test_verbose_forces_debug(self):
        logger = setup_logging(
            level=logging.ERROR, verbose=True, enable_file_logging=False
        )
        assert logger.handlers[0].level == logging.DEBUG
        assert logger.handlers[0].formatter._fmt == VERBOSE_FORMAT

    def test_repeated_setup_replaces_handlers(self):
        """Test that repeated setup leaves one console handler."""
        setup_logging(enable_file_logging=False)
        logger = setup_logging(enable_file_logging=False)
        assert len(logger.handlers) == 1

    def test_file_captures_debug_below_console_level(self, tmp_path):
        """Test that the file gets DEBUG records the console filters out."""
        log_file = tmp_path / "logs" / "test.log"
        logger = setup_logging(
            level=logging.WARNING, log_file=log_file, use_colors=False
        )

        get_logger("sync.engine").debug("written to file only")
        flush(logger)

        console, file_handler = logger.handlers
        assert console.level == logging.WARNING
        assert file_handler.level == logging.DEBUG
        assert "written to file only" in log_file.read_text()

    def test_without_file_logger_keeps_console_level(self):
        logger = setup_logging(level=logging.WARNING, enable_file_logging=False)
        assert logger.level == logging.WARNING


class TestCleanupOldLogs:
    """Tests for cleanup_old_logs."""

    def test_keeps_newest_logs(self, tmp_path):
        """Test that only the newest files are kept."""
        now = time.time()
        for age in range(5):
            path = tmp_path / f"gcontact_notion_2024010{age}.log"
            path.write_text("x")
            os.utime(path, (now - age * 100, now - age * 100))
        other = tmp_path / "unrelated.log"
        other.write_text("x")

        deleted = cleanup_old_logs(log_dir=tmp_path, keep_count=2)

        assert deleted == 3
        remaining = sorted(p.name for p in tmp_path.glob("gcontact_notion_*.log"))
        assert remaining == ["gcontact_notion_20240100.log", "gcontact_notion_20240101.log"]
        assert other.exists()

    def test_zero_keep_count_disables_cleanup(self, tmp_path):
        (tmp_path / "gcontact_notion_20240101.log").write_text("x")

        assert cleanup_old_logs(log_dir=tmp_path, keep_count=0) == 0

    def test_missing_directory(self, tmp_path):
        assert cleanup_old_logs(log_dir=tmp_path / "missing") == 0


class TestGetLogger:
    """Tests for get_logger."""

    def test_adds_prefix(self):
        """Test that names are placed under the package logger."""
        assert get_logger("cli").name == "gcontact_notion.cli"

    def test_keeps_package_names(self):
        assert get_logger("gcontact_notion.sync").name == "gcontact_notion.sync"
        assert get_logger("gcontact_notion").name == "gcontact_notion"

    def test_similar_prefix_is_not_package(self):
        assert get_logger("gcontact_notionx").name == "gcontact_notion.gcontact_notionx"
