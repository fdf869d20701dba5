"""Unit tests for configuration schema validation."""

import pytest
from pydantic import ValidationError

from dalkit.config.schema import (
    DalkitConfig,
    DatabaseConfig,
    DatabaseConnectionConfig,
    DuckDBSettingsConfig,
    LoggingConfig,
    validate_config,
)


class TestDatabaseSchema:

    def test_defaults(self):
        config = DatabaseConfig()
        assert config.type == "duckdb"
        assert config.connection.database_path == ":memory:"
        assert config.duckdb.threads == 4
        assert config.slow_query_threshold_ms == 200.0

    def test_type_is_normalized(self):
        assert DatabaseConfig(type="DuckDB").type == "duckdb"

    def test_unsupported_type(self):
        with pytest.raises(ValidationError) as exc_info:
            DatabaseConfig(type="postgres")
        assert "unsupported database type" in str(exc_info.value)

    @pytest.mark.parametrize("threshold", [0, -5])
    def test_threshold_must_be_positive(self, threshold):
        with pytest.raises(ValidationError):
            DatabaseConfig(slow_query_threshold_ms=threshold)

    @pytest.mark.parametrize("path", ["", "   "])
    def test_database_path_required(self, path):
        with pytest.raises(ValidationError):
            DatabaseConnectionConfig(database_path=path)

    def test_threads_at_least_one(self):
        with pytest.raises(ValidationError):
            DuckDBSettingsConfig(threads=0)

    def test_pragmas(self):
        connection = DatabaseConnectionConfig(pragmas={"default_order": "desc", "checkpoint_threshold_mb": 16})
        assert connection.pragmas["checkpoint_threshold_mb"] == 16


class TestLoggingSchema:

    def test_levels_are_upper_cased(self):
        config = LoggingConfig(level="debug", database_level="warning")
        assert config.level == "DEBUG"
        assert config.database_level == "WARNING"

    def test_database_level_is_optional(self):
        assert LoggingConfig().database_level is None

    @pytest.mark.parametrize("field", ["level", "database_level"])
    def test_invalid_level(self, field):
        with pytest.raises(ValidationError):
            LoggingConfig(**{field: "LOUD"})

    def test_handlers(self):
        config = LoggingConfig(handlers={"file": {"enabled": True, "path": "/var/log/x.log", "backup_count": 3}})
        assert config.handlers["file"].backup_count == 3
        assert config.handlers["file"].max_size is None


class TestValidateConfig:

    def test_full_document(self):
        config = validate_config({
            "application": {"name": "inventory", "environment": "testing", "debug": True},
            "database": {
                "connection": {"database_path": ":memory:", "memory": True},
                "duckdb": {"memory_limit": "256MB", "threads": 1},
                "slow_query_threshold_ms": 50,
            },
            "logging": {"level": "warning", "database_level": "debug"},
        })

        assert isinstance(config, DalkitConfig)
        assert config.application.name == "inventory"
        assert config.database.connection.memory is True
        assert config.database.slow_query_threshold_ms == 50.0
        assert config.logging.database_level == "DEBUG"

    def test_empty_document_uses_defaults(self):
        config = validate_config({})
        assert config.application.environment == "development"
        assert config.database.type == "duckdb"

    def test_unknown_sections_are_kept(self):
        config = validate_config({"features": {"audit": True}})
        assert config.model_extra == {"features": {"audit": True}}

    def test_nested_errors_are_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_config({"database": {"duckdb": {"threads": "many"}}})
        assert "threads" in str(exc_info.value)
