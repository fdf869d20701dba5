"""Configuration validation schemas using Pydantic."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DatabaseConnectionConfig(BaseModel):
    """Database connection configuration."""

    database_path: str = Field(":memory:", description="Path to DuckDB database file")
    memory: bool = Field(False, description="Use in-memory database")
    read_only: bool = Field(False, description="Open database in read-only mode")
    pragmas: dict[str, str | int] = Field(
        default_factory=dict, description="DuckDB pragma settings"
    )

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v):
        if not v or not v.strip():
            raise ValueError("database_path cannot be empty")
        return v


class DuckDBSettingsConfig(BaseModel):
    """Engine settings applied to every DuckDB connection."""

    memory_limit: str = Field("1GB", description="Memory limit")
    threads: int = Field(4, ge=1, description="Worker threads")
    timezone: str = Field("UTC", description="Session time zone")
    enable_optimizer: bool = Field(True, description="Enable query optimizer")
    enable_profiling: bool = Field(False, description="Enable query profiling")


class DatabaseConfig(BaseModel):
    """Complete database configuration."""

    type: str = Field("duckdb", description="Database type")
    connection: DatabaseConnectionConfig = Field(default_factory=DatabaseConnectionConfig)
    duckdb: DuckDBSettingsConfig = Field(default_factory=DuckDBSettingsConfig)
    slow_query_threshold_ms: float = Field(
        200.0, gt=0, description="Operations slower than this are logged as warnings"
    )

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v.lower() != "duckdb":
            raise ValueError(f"unsupported database type: {v}")
        return v.lower()


class LogHandlerConfig(BaseModel):
    """Log handler configuration."""

    enabled: bool = Field(True, description="Enable handler")
    path: str | None = Field(None, description="Log file path")
    max_size: str | None = Field(None, description="Maximum log file size")
    backup_count: int | None = Field(None, description="Number of backup files")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    database_level: str | None = Field(None, description="Level of the dalkit.database logger")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format"
    )
    handlers: dict[str, LogHandlerConfig] = Field(default_factory=dict)

    @field_validator("level", "database_level")
    @classmethod
    def validate_log_level(cls, v):
        if v is None:
            return v
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log level must be one of {valid_levels}")
        return v.upper()


class ApplicationConfig(BaseModel):
    """Application-level configuration."""

    name: str = Field("dalkit", description="Application name")
    environment: str = Field("development", description="Environment name")
    debug: bool = Field(False, description="Debug mode")


class DalkitConfig(BaseModel):
    """Complete data access configuration schema."""

    model_config = ConfigDict(extra="allow")

    application: ApplicationConfig = Field(default_factory=ApplicationConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def validate_config(config_dict: dict) -> DalkitConfig:
    """
    Validate configuration dictionary against schema.

    Args:
        config_dict: Configuration dictionary to validate

    Returns:
        Validated configuration object

    Raises:
        ValidationError: If configuration is invalid
    """
    return DalkitConfig(**config_dict)
