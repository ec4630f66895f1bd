"""Tests for CLI global logging configuration."""

import logging
import os
from unittest.mock import patch

from rich.logging import RichHandler
from typer.testing import CliRunner

from connectarr.cli import app
from connectarr.config import Config, LoggingConfig
from connectarr.logging_config import configure_logging, parse_level

runner = CliRunner()


class TestGlobalLogLevel:
    """Tests for global --log-level flag."""

    @patch("connectarr.cli.configure_logging")
    def test_global_log_level_flag_configures_logging(self, mock_configure: patch) -> None:
        """Global --log-level flag should configure logging before command runs."""
        result = runner.invoke(app, ["--log-level", "debug", "version"])

        assert result.exit_code == 0
        mock_configure.assert_called_once_with("debug")

    @patch("connectarr.cli.configure_logging")
    def test_global_log_level_short_flag(self, mock_configure: patch) -> None:
        """Short -l flag should work as alias for --log-level."""
        result = runner.invoke(app, ["-l", "warning", "version"])

        assert result.exit_code == 0
        mock_configure.assert_called_once_with("warning")

    def test_global_log_level_invalid_exits_with_error(self) -> None:
        """Invalid log level should exit with error."""
        result = runner.invoke(app, ["--log-level", "verbose", "version"])

        assert result.exit_code == 1
        assert "invalid log level" in result.output.lower()


class TestLogLevelPriority:
    """Tests for log level priority chain: CLI > env > config > default."""

    @patch("connectarr.cli.configure_logging")
    @patch.dict("os.environ", {"CONNECTARR_LOG_LEVEL": "warning"})
    def test_cli_overrides_env_var(self, mock_configure: patch) -> None:
        result = runner.invoke(app, ["--log-level", "debug", "version"])

        assert result.exit_code == 0
        mock_configure.assert_called_once_with("debug")

    @patch("connectarr.cli.configure_logging")
    @patch("connectarr.cli.Config.load")
    @patch.dict("os.environ", {"CONNECTARR_LOG_LEVEL": "error"}, clear=False)
    def test_env_overrides_config(self, mock_config_load: patch, mock_configure: patch) -> None:
        mock_config_load.return_value = Config(logging=LoggingConfig(level="debug"))

        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        mock_configure.assert_called_once_with("error")

    @patch("connectarr.cli.configure_logging")
    @patch("connectarr.cli.Config.load")
    @patch.dict("os.environ", {}, clear=True)
    def test_config_overrides_default(self, mock_config_load: patch, mock_configure: patch) -> None:
        os.environ.pop("CONNECTARR_LOG_LEVEL", None)
        mock_config_load.return_value = Config(logging=LoggingConfig(level="warning"))

        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        mock_configure.assert_called_once_with("warning")


class TestConfigureLogging:
    """Tests for configure_logging itself."""

    def test_parse_level(self) -> None:
        assert parse_level("DEBUG") == logging.DEBUG
        assert parse_level(logging.ERROR) == logging.ERROR

    def test_replaces_previous_handler(self) -> None:
        """Should keep a single rich handler across calls."""
        configure_logging("debug")
        configure_logging("warning")

        root = logging.getLogger()
        handlers = [h for h in root.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
