"""Unit tests for logging configuration built from settings."""

import logging
from unittest.mock import Mock, patch

import pytest

from dalkit.config import _parse_size, configure_logging, get_log_config


def manager_with(logging_section: dict) -> Mock:
    manager = Mock()
    manager.get_section.return_value = logging_section
    return manager


class TestGetLogConfig:

    def test_console_only(self):
        config = get_log_config(manager_with({"level": "info"}))

        assert config["version"] == 1
        assert config["disable_existing_loggers"] is False
        assert config["root"] == {"level": "INFO", "handlers": ["console"]}
        assert config["handlers"]["console"]["class"] == "logging.StreamHandler"
        assert config["loggers"] == {}

    def test_file_handler(self):
        config = get_log_config(manager_with({
            "level": "WARNING",
            "handlers": {
                "console": {"enabled": False},
                "file": {"enabled": True, "path": "/tmp/dalkit.log", "max_size": "2MB", "backup_count": 3},
            },
        }))

        assert config["root"]["handlers"] == ["file"]
        file_handler = config["handlers"]["file"]
        assert file_handler["class"] == "logging.handlers.RotatingFileHandler"
        assert file_handler["filename"] == "/tmp/dalkit.log"
        assert file_handler["maxBytes"] == 2 * 1024 * 1024
        assert file_handler["backupCount"] == 3

    def test_file_handler_defaults(self):
        config = get_log_config(manager_with({"handlers": {"file": {"enabled": True, "max_size": None}}}))

        file_handler = config["handlers"]["file"]
        assert file_handler["filename"] == "./logs/dalkit.log"
        assert file_handler["maxBytes"] == 10 * 1024 * 1024
        assert file_handler["backupCount"] == 5

    def test_database_logger_level(self):
        config = get_log_config(manager_with({"level": "WARNING", "database_level": "debug"}))
        assert config["loggers"] == {"dalkit.database": {"level": "DEBUG"}}

    def test_custom_format(self):
        config = get_log_config(manager_with({"format": "%(levelname)s %(message)s"}))
        assert config["formatters"]["default"]["format"] == "%(levelname)s %(message)s"

    def test_packaged_testing_environment(self, monkeypatch):
        monkeypatch.setenv("DALKIT_ENVIRONMENT", "testing")

        config = get_log_config()

        assert config["root"]["level"] == "WARNING"
        assert config["loggers"]["dalkit.database"]["level"] == "DEBUG"
        assert "file" not in config["handlers"]


class TestConfigureLogging:

    def test_applies_dict_config(self):
        with patch("logging.config.dictConfig") as dict_config:
            configure_logging(manager_with({"level": "ERROR"}))

        dict_config.assert_called_once()
        assert dict_config.call_args.args[0]["root"]["level"] == "ERROR"

    def test_database_logger_level_is_applied(self):
        root = logging.getLogger()
        database_logger = logging.getLogger("dalkit.database")
        saved = (root.level, list(root.handlers), database_logger.level)
        try:
            configure_logging(manager_with({
                "level": "WARNING",
                "database_level": "DEBUG",
                "handlers": {"console": {"enabled": False}},
            }))
            assert database_logger.level == logging.DEBUG
            assert root.level == logging.WARNING
        finally:
            root.setLevel(saved[0])
            root.handlers[:] = saved[1]
            database_logger.setLevel(saved[2])


@pytest.mark.parametrize("size,expected", [
    ("10MB", 10 * 1024 * 1024),
    ("1gb", 1024 ** 3),
    ("512KB", 512 * 1024),
    ("1.5MB", int(1.5 * 1024 * 1024)),
    ("100B", 100),
    ("2048", 2048),
])
def test_parse_size(size, expected):
    assert _parse_size(size) == expected
