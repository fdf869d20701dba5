"""DuckDB configuration management."""

import json
import os
from dataclasses import dataclass, field


@dataclass
class DuckDBConfig:
    """Configuration settings for DuckDB connections.

    Centralizes the engine settings applied to every new connection and
    supports environment-based overrides for different deployments.
    """

    # Memory settings
    memory_limit: str = "1GB"

    # Threading settings
    threads: int = 4

    # Timezone settings
    timezone: str = "UTC"

    # Performance settings
    enable_optimizer: bool = True
    enable_profiling: bool = False

    # Connection settings
    read_only: bool = False

    # Extra SET statements, name -> value
    pragmas: dict[str, str | int] = field(default_factory=dict)

    @classmethod
    def from_environment(cls, **overrides) -> "DuckDBConfig":
        """Create configuration from environment variables with optional overrides.

        Environment variables:
        - DUCKDB_MEMORY_LIMIT: Memory limit (default: 1GB)
        - DUCKDB_THREADS: Number of threads (default: 4)
        - DUCKDB_TIMEZONE: Timezone (default: UTC)
        - DUCKDB_ENABLE_OPTIMIZER: Enable optimizer (default: true)
        - DUCKDB_ENABLE_PROFILING: Enable profiling (default: false)
        - DUCKDB_READ_ONLY: Read-only mode (default: false)
        - DUCKDB_PRAGMAS: JSON object of extra settings (default: {})

        Args:
            **overrides: Configuration overrides

        Returns:
            DuckDBConfig instance with environment-based settings
        """
        config = cls(
            memory_limit=os.getenv("DUCKDB_MEMORY_LIMIT", cls.memory_limit),
            threads=int(os.getenv("DUCKDB_THREADS", str(cls.threads))),
            timezone=os.getenv("DUCKDB_TIMEZONE", cls.timezone),
            enable_optimizer=os.getenv("DUCKDB_ENABLE_OPTIMIZER", "true").lower() == "true",
            enable_profiling=os.getenv("DUCKDB_ENABLE_PROFILING", "false").lower() == "true",
            read_only=os.getenv("DUCKDB_READ_ONLY", "false").lower() == "true",
            pragmas=json.loads(os.getenv("DUCKDB_PRAGMAS", "{}")),
        )

        for key, value in overrides.items():
            if hasattr(config, key):
                setattr(config, key, value)

        return config

    def get_connection_settings(self) -> list[str]:
        """Get list of SQL commands to configure a DuckDB connection.

        Returns:
            List of SQL SET commands for DuckDB configuration
        """
        settings = [
            f"SET memory_limit='{self.memory_limit}'",
            f"SET threads TO {self.threads}",
            f"SET TimeZone='{self.timezone}'",
        ]

        if self.enable_optimizer:
            settings.append("SET enable_optimizer = true")

        if self.enable_profiling:
            settings.append("SET enable_profiling = 'json'")

        for name, value in (self.pragmas or {}).items():
            if isinstance(value, str):
                settings.append(f"SET {name} = '{value}'")
            else:
                settings.append(f"SET {name} = {value}")

        return settings

    def __str__(self) -> str:
        return (
            f"DuckDBConfig(memory_limit={self.memory_limit}, "
            f"threads={self.threads}, timezone={self.timezone}, "
            f"optimizer={self.enable_optimizer}, profiling={self.enable_profiling}, "
            f"pragmas={self.pragmas or {}})"
        )
