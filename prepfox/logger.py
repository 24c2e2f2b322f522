"""Per-component logging for code that wraps remote calls."""

import logging
import sys
from pathlib import Path
from typing import Self

from prepfox.config import Settings

ROOT_LOGGER = "prepfox"
RETRY_COMPONENT = "retry"
ERRORS_COMPONENT = "errors"


class LogManager:
    """Hands out one logger per component, each with its own log file.

    Loggers can be requested before setup_logging() runs; initialize()
    re-points every logger handed out so far at the configured directory
    and level.
    """

    _instance: Self | None = None
    _initialized: bool = False

    def __new__(cls) -> Self:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if LogManager._initialized:
            return
        self._loggers: dict[str, logging.Logger] = {}
        self._log_dir = Path("./logs")
        self._log_level = logging.INFO
        self._formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        LogManager._initialized = True

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def initialize(self, settings: Settings) -> None:
        """Apply settings to the package root logger and every component logger."""
        self._log_dir = settings.log_dir
        self._log_level = getattr(logging, settings.log_level.upper())
        self._log_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(self._log_level)
        if not root_logger.handlers:
            root_logger.addHandler(self._console_handler())

        for name, logger in self._loggers.items():
            self._attach_handlers(logger, name)

    def get_logger(self, name: str) -> logging.Logger:
        """Get or create the logger for a component (file: <log_dir>/<name>.log)."""
        logger = self._loggers.get(name)
        if logger is None:
            logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")
            # Console output comes from this logger's own handler
            logger.propagate = False
            self._attach_handlers(logger, name)
            self._loggers[name] = logger
        return logger

    def get_retry_logger(self) -> logging.Logger:
        """Logger used by log_retries() when no logger is passed."""
        return self.get_logger(RETRY_COMPONENT)

    def get_error_logger(self) -> logging.Logger:
        """Logger used by ErrorReporter when no logger is passed."""
        return self.get_logger(ERRORS_COMPONENT)

    def shutdown(self) -> None:
        """Flush and close every component handler and forget the loggers."""
        for logger in self._loggers.values():
            self._detach_handlers(logger)
        self._loggers.clear()

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(self._formatter)
        handler.setLevel(self._log_level)
        return handler

    def _attach_handlers(self, logger: logging.Logger, name: str) -> None:
        self._detach_handlers(logger)
        self._log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(self._log_dir / f"{name}.log", mode="a")
        file_handler.setFormatter(self._formatter)
        file_handler.setLevel(self._log_level)

        logger.setLevel(self._log_level)
        logger.addHandler(file_handler)
        logger.addHandler(self._console_handler())

    @staticmethod
    def _detach_handlers(logger: logging.Logger) -> None:
        for handler in logger.handlers[:]:
            handler.flush()
            handler.close()
            logger.removeHandler(handler)


# Global instance
log_manager = LogManager()


def setup_logging(settings: Settings) -> None:
    """Initialize logging with settings."""
    log_manager.initialize(settings)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a component."""
    return log_manager.get_logger(name)
