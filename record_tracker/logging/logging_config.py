"""Centralized logging configuration for the record tracker.

This module provides logging configuration management that integrates
with Prefect's logging system, so tracker messages land next to the
indexing flow's own output. It supports both YAML-based configuration
and programmatic setup with sensible defaults.

Usage:
    >>> from record_tracker.logging import get_tracker_logger
    >>> logger = get_tracker_logger(__name__)
    >>> logger.info("Tracking pass started")

Environment variables:
    RECORD_TRACKER_LOGGING_CONFIG: Path to custom logging.yml
    RECORD_TRACKER_LOG_LEVEL: Default log level (INFO, DEBUG, etc.)
    PREFECT_LOGGING_LEVEL: Prefect's logging level
    PREFECT_LOGGING_SETTINGS_PATH: Alternative config path
"""

import logging.config
import os
from pathlib import Path
from typing import Any

import yaml
from prefect.logging import get_logger

# Parent of every logger get_tracker_logger returns
TRACKER_LOGGER_NAME = "prefect.record_tracker"

# Default log levels for different components
DEFAULT_LOG_LEVELS = {
    "record_tracker": "INFO",
    "record_tracker.tracking": "INFO",
    "record_tracker.tracker_store": "INFO",
}


class LoggingConfig:
    """Manages logging configuration for the tracker.

    Configuration precedence:
        1. Explicit config_path parameter
        2. RECORD_TRACKER_LOGGING_CONFIG environment variable
        3. PREFECT_LOGGING_SETTINGS_PATH environment variable
        4. Default configuration

    Example:
        >>> config = LoggingConfig()
        >>> config.apply()
        >>>
        >>> config = LoggingConfig(Path("custom_logging.yml"))
        >>> config.apply()

    Note:
        Configuration is lazy-loaded and cached after first access.
    """

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path or self._get_default_config_path()
        self._config: dict[str, Any] | None = None

    @staticmethod
    def _get_default_config_path() -> Path | None:
        """Get config path from environment variables, tracker-specific first."""
        if env_path := os.environ.get("RECORD_TRACKER_LOGGING_CONFIG"):
            return Path(env_path)

        if prefect_path := os.environ.get("PREFECT_LOGGING_SETTINGS_PATH"):
            return Path(prefect_path)

        return None

    def load_config(self) -> dict[str, Any]:
        """Load logging configuration from file or defaults.

        Returns:
            Dictionary in logging.config.dictConfig format.

        Note:
            Configuration is cached after first load. Create a new
            LoggingConfig instance to reload from disk.
        """
        if self._config is None:
            if self.config_path and self.config_path.exists():
                with open(self.config_path, "r") as f:
                    self._config = yaml.safe_load(f)
            else:
                self._config = self._get_default_config()
        assert self._config is not None
        return self._config

    @staticmethod
    def _get_default_config() -> dict[str, Any]:
        """Get default logging configuration.

        Default format:
            "HH:MM:SS.mmm | LEVEL | logger.name - message"

        RECORD_TRACKER_LOG_LEVEL overrides the tracker logger level. Prefect
        nests the loggers it hands out under "prefect", so the entry is keyed
        by TRACKER_LOGGER_NAME rather than the bare package name.
        """
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s.%(msecs)03d | %(levelname)-7s | %(name)s - %(message)s",
                    "datefmt": "%H:%M:%S",
                },
                "detailed": {
                    "format": ("%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d - %(message)s"),
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stdout",
                },
            },
            "loggers": {
                TRACKER_LOGGER_NAME: {
                    "level": os.environ.get("RECORD_TRACKER_LOG_LEVEL", "INFO"),
                    "handlers": ["console"],
                    "propagate": False,
                },
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"],
            },
        }

    def apply(self):
        """Apply the logging configuration to Python's logging system.

        Also sets PREFECT_LOGGING_LEVEL when the configuration carries a
        "prefect" logger entry.
        """
        config = self.load_config()
        logging.config.dictConfig(config)

        if "prefect" in config.get("loggers", {}):
            prefect_level = config["loggers"]["prefect"].get("level", "INFO")
            os.environ.setdefault("PREFECT_LOGGING_LEVEL", prefect_level)


# Global configuration instance
_logging_config: LoggingConfig | None = None


def setup_logging(config_path: Path | None = None, level: str | None = None):
    """Set up logging for the record tracker.

    Args:
        config_path: Optional path to YAML logging configuration file.
                    If None, uses environment variables or defaults.
        level: Optional log level override (INFO, DEBUG, WARNING, etc.).

    Example:
        >>> setup_logging()
        >>> setup_logging(Path("/etc/indexer/logging.yml"))
        >>> setup_logging(level="DEBUG")
    """
    global _logging_config

    _logging_config = LoggingConfig(config_path)
    _logging_config.apply()

    if level:
        for logger_name in DEFAULT_LOG_LEVELS:
            logger = get_logger(logger_name)
            logger.setLevel(level)

        os.environ["PREFECT_LOGGING_LEVEL"] = level


def get_tracker_logger(name: str):
    """Get a Prefect-integrated logger for tracker components.

    Initializes logging on first use. The returned logger is named
    ``prefect.<name>``, so tracker modules sit under TRACKER_LOGGER_NAME.

    Args:
        name: Logger name, typically __name__.

    Example:
        >>> logger = get_tracker_logger(__name__)
        >>> logger.debug("observed %s/%s", "biblio", "u123")
    """
    if _logging_config is None:
        setup_logging()

    return get_logger(name)
