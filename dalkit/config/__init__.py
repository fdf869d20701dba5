"""Configuration management for the data access layer."""

import logging.config
from typing import Optional

from .factory import ConfiguredDatabaseFactory
from .schema import DalkitConfig, validate_config
from .settings import ConfigManager, ConfigurationError

__all__ = [
    "ConfigManager",
    "ConfigurationError",
    "ConfiguredDatabaseFactory",
    "DalkitConfig",
    "validate_config",
    "get_log_config",
    "configure_logging",
]


def get_log_config(config_manager: Optional[ConfigManager] = None) -> dict:
    """
    Get logging configuration suitable for Python's logging.dictConfig().

    Args:
        config_manager: Configuration source (a default one is created if None)

    Returns:
        Logging configuration dictionary
    """
    manager = config_manager or ConfigManager()
    log_config = manager.get_section("logging")
    level = str(log_config.get("level", "INFO")).upper()

    handlers = {}
    root = {"level": level, "handlers": []}
    loggers = {}

    # Console handler
    if log_config.get("handlers", {}).get("console", {}).get("enabled", True):
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "default"
        }
        root["handlers"].append("console")

    # File handler
    file_config = log_config.get("handlers", {}).get("file", {})
    if file_config.get("enabled", False):
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "default",
            "filename": file_config.get("path") or "./logs/dalkit.log",
            "maxBytes": _parse_size(file_config.get("max_size") or "10MB"),
            "backupCount": file_config.get("backup_count") or 5
        }
        root["handlers"].append("file")

    database_level = log_config.get("database_level")
    if database_level:
        loggers["dalkit.database"] = {"level": str(database_level).upper()}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            }
        },
        "handlers": handlers,
        "root": root,
        "loggers": loggers
    }


def configure_logging(config_manager: Optional[ConfigManager] = None) -> None:
    """Install the configured handlers with ``logging.config.dictConfig``."""
    logging.config.dictConfig(get_log_config(config_manager))


def _parse_size(size_str: str) -> int:
    """
    Parse size string to bytes.

    Args:
        size_str: Size string like "10MB", "1GB"

    Returns:
        Size in bytes
    """
    size_str = size_str.upper()
    multipliers = {
        'KB': 1024,
        'MB': 1024 * 1024,
        'GB': 1024 * 1024 * 1024,
        'B': 1,
    }

    for suffix, multiplier in multipliers.items():
        if size_str.endswith(suffix):
            return int(float(size_str[:-len(suffix)]) * multiplier)

    return int(size_str)
