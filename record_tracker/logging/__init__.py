"""Logging infrastructure for the record tracker.

Key components:
    get_tracker_logger: Factory function for creating tracker loggers
    setup_logging: Initialize logging configuration from YAML
    LoggingConfig: Configuration class for logging settings

Example:
    >>> from record_tracker.logging import get_tracker_logger
    >>>
    >>> logger = get_tracker_logger(__name__)
    >>> logger.info("Tracking pass started")

Note:
    Use get_tracker_logger() rather than logging.getLogger() so tracker
    output follows the indexing flow's Prefect logging setup.
"""

from .logging_config import LoggingConfig, get_tracker_logger, setup_logging

__all__ = [
    "LoggingConfig",
    "setup_logging",
    "get_tracker_logger",
]
