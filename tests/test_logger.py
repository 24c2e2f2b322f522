"""Tests for logging infrastructure."""

import logging
import tempfile
from pathlib import Path

import pytest

import prepfox.logger as logger_module
from prepfox.config import Settings
from prepfox.logger import LogManager, get_logger, setup_logging


class TestLogManager:
    """Test suite for logging infrastructure."""

    @pytest.fixture(autouse=True)
    def reset_log_manager(self):
        """Reset log manager state before each test."""
        for name in list(logging.Logger.manager.loggerDict.keys()):
            if name.startswith("prepfox"):
                logger = logging.Logger.manager.loggerDict[name]
                if isinstance(logger, logging.Logger):
                    for handler in logger.handlers[:]:
                        handler.flush()
                        handler.close()
                        logger.removeHandler(handler)
                del logging.Logger.manager.loggerDict[name]

        LogManager._instance = None
        LogManager._initialized = False
        logger_module.log_manager = LogManager()

        yield

    @pytest.fixture
    def temp_log_dir(self):
        """Create a temporary directory for log files."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def settings(self, temp_log_dir):
        """Create settings with temporary log directory."""
        return Settings(_env_file=None, log_dir=temp_log_dir, log_level="DEBUG")

    def test_logger_creates_separate_files_per_component(self, settings, temp_log_dir):
        """Verify each component gets its own log file."""
        setup_logging(settings)

        logger_module.log_manager.get_retry_logger().info("Retry message")
        logger_module.log_manager.get_error_logger().info("Error message")

        assert (temp_log_dir / "retry.log").exists()
        assert (temp_log_dir / "errors.log").exists()

    def test_log_format_includes_timestamp_level_component(self, settings, temp_log_dir):
        """Verify log format includes required fields."""
        setup_logging(settings)
        logger = logger_module.log_manager.get_retry_logger()
        logger.info("Test message")

        for handler in logger.handlers:
            handler.flush()
            handler.close()

        log_content = (temp_log_dir / "retry.log").read_text()

        assert " | INFO     | " in log_content
        assert "prepfox.retry" in log_content
        assert "Test message" in log_content

    def test_log_level_configurable_via_settings(self, temp_log_dir):
        """Verify log level is configurable."""
        settings = Settings(_env_file=None, log_dir=temp_log_dir, log_level="WARNING")
        setup_logging(settings)

        logger = logger_module.log_manager.get_error_logger()
        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")

        for handler in logger.handlers:
            handler.flush()
            handler.close()

        log_content = (temp_log_dir / "errors.log").read_text()

        assert "Debug message" not in log_content
        assert "Info message" not in log_content
        assert "Warning message" in log_content

    def test_same_logger_name_returns_same_instance(self, settings):
        """Verify get_logger returns same instance for same name."""
        setup_logging(settings)

        logger1 = logger_module.log_manager.get_logger("test_component")
        logger2 = logger_module.log_manager.get_logger("test_component")

        assert logger1 is logger2

    def test_log_manager_is_singleton(self, settings):
        """Verify LogManager is a singleton."""
        setup_logging(settings)

        assert LogManager() is LogManager()

    def test_get_logger_convenience_function(self, settings, temp_log_dir):
        """Verify get_logger convenience function works."""
        setup_logging(settings)

        logger = get_logger("custom_component")
        logger.info("Custom message")

        assert (temp_log_dir / "custom_component.log").exists()
        assert "Custom message" in (temp_log_dir / "custom_component.log").read_text()

    def test_log_directory_created_if_not_exists(self, temp_log_dir):
        """Verify log directory is created if it doesn't exist."""
        new_log_dir = temp_log_dir / "nested" / "logs"
        settings = Settings(_env_file=None, log_dir=new_log_dir)

        setup_logging(settings)
        logger_module.log_manager.get_logger("test").info("Test")

        assert new_log_dir.exists()

    def test_loggers_created_before_setup_follow_settings(self, settings, temp_log_dir, monkeypatch):
        """Verify setup_logging re-points loggers handed out earlier."""
        monkeypatch.chdir(temp_log_dir)
        early_logger = logger_module.log_manager.get_error_logger()

        setup_logging(settings)
        early_logger.debug("After setup")

        for handler in early_logger.handlers:
            handler.flush()

        assert early_logger.level == logging.DEBUG
        assert len(early_logger.handlers) == 2
        assert "After setup" in (temp_log_dir / "errors.log").read_text()

    def test_shutdown_closes_component_handlers(self, settings):
        """Verify shutdown detaches handlers and forgets loggers."""
        setup_logging(settings)
        logger = logger_module.log_manager.get_retry_logger()

        logger_module.log_manager.shutdown()

        assert logger.handlers == []
        assert logger_module.log_manager.get_retry_logger().handlers
