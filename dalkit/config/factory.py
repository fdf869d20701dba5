"""
Configuration-based factory for creating data access components.

This module wires connections and the record operations facade from the
centralized configuration system.
"""

import logging
from typing import Any, Dict, Optional

from dalkit.infrastructure.data_access.database import Database
from dalkit.infrastructure.duckdb import DuckDBConfig, DuckDBConnection
from dalkit.infrastructure.structured_logger import StructuredLogger

from .schema import DalkitConfig, DatabaseConfig, validate_config
from .settings import ConfigManager, ConfigurationError


class ConfiguredDatabaseFactory:
    """
    Factory for creating database components with configuration injection.

    The configuration is validated once, on construction.
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        Initialize the factory with configuration.

        Args:
            config_manager: Configuration manager instance (a default one is created if None)
        """
        self.config_manager = config_manager or ConfigManager()
        self._logger = logging.getLogger(__name__)
        self._validated_config: Optional[DalkitConfig] = None
        self._validate_configuration()

    def _validate_configuration(self) -> None:
        try:
            self._validated_config = validate_config(self.config_manager.get_all())
        except Exception as e:
            self._logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        self._logger.info("Configuration validation successful")

    @property
    def validated_config(self) -> DalkitConfig:
        if self._validated_config is None:
            raise ConfigurationError("Configuration not validated")
        return self._validated_config

    def get_database_config(self) -> DatabaseConfig:
        return self.validated_config.database

    def get_connection_parameters(self) -> Dict[str, Any]:
        """
        Get database connection parameters from configuration.

        Returns:
            Dictionary with connection parameters
        """
        db_config = self.get_database_config()
        connection = db_config.connection

        return {
            'database_path': ":memory:" if connection.memory else connection.database_path,
            'read_only': connection.read_only,
            'pragmas': connection.pragmas,
        }

    def create_duckdb_config(self) -> DuckDBConfig:
        db_config = self.get_database_config()
        settings = db_config.duckdb
        return DuckDBConfig(
            memory_limit=settings.memory_limit,
            threads=settings.threads,
            timezone=settings.timezone,
            enable_optimizer=settings.enable_optimizer,
            enable_profiling=settings.enable_profiling,
            read_only=db_config.connection.read_only,
            pragmas=dict(db_config.connection.pragmas),
        )

    def create_connection(self) -> DuckDBConnection:
        """Create an unconnected DuckDB connection from configuration."""
        parameters = self.get_connection_parameters()
        self._logger.info(f"Creating DuckDB connection for database: {parameters['database_path']}")
        return DuckDBConnection(parameters['database_path'], config=self.create_duckdb_config())

    async def create_database(self, logger: Optional[StructuredLogger] = None) -> Database:
        """
        Create a connected record operations facade.

        Returns:
            Database bound to a freshly connected DuckDB connection
        """
        connection = self.create_connection()
        await connection.connect()
        return Database(
            connection,
            logger=logger,
            slow_query_threshold_ms=self.get_database_config().slow_query_threshold_ms,
        )

    def is_development(self) -> bool:
        return self.config_manager.is_development()

    def is_production(self) -> bool:
        return self.config_manager.is_production()

    def is_testing(self) -> bool:
        return self.config_manager.is_testing()
