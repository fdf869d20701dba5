"""Configuration settings management for the data access layer."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from dalkit.domain.exceptions import DomainError

logger = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "DALKIT"


class ConfigurationError(DomainError):
    """Raised when configuration loading or validation fails."""

    code = "invalid_configuration"


class ConfigManager:
    """Manages configuration with environment-specific files and variable overrides.

    Values are layered in this order, later layers winning:
    ``base.yaml``, ``<environment>.yaml``, then ``<PREFIX>_*`` environment
    variables (``DALKIT_DATABASE_SLOW_QUERY_THRESHOLD_MS=500``).
    """

    def __init__(self, config_dir: Optional[Path] = None, env_prefix: str = DEFAULT_ENV_PREFIX):
        """Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files. If None, uses default.
            env_prefix: Prefix for environment variables.
        """
        self.config_dir = Path(config_dir) if config_dir else self._get_default_config_dir()
        self.env_prefix = env_prefix
        self._config: Optional[Dict[str, Any]] = None

        # Load configuration immediately to catch errors during construction
        self.load_config()

    def _get_default_config_dir(self) -> Path:
        return Path(__file__).parent / "defaults"

    @property
    def config_path(self) -> Path:
        return self.config_dir

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from files and environment."""
        if self._config is not None:
            return self._config

        try:
            config_data = self._load_base_config()
            config_data = self._load_environment_config(config_data)
            config_data = self._apply_env_overrides(config_data)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            raise ConfigurationError(f"Configuration loading failed: {e}") from e

        self._config = config_data
        logger.info(f"Configuration loaded successfully for environment: {self.get_environment()}")
        return self._config

    def reload(self) -> Dict[str, Any]:
        """Discard the cached configuration and load it again."""
        self._config = None
        return self.load_config()

    def _load_base_config(self) -> Dict[str, Any]:
        """Load base configuration from base.yaml."""
        base_file = self.config_dir / "base.yaml"
        try:
            with open(base_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.error(f"Base configuration file not found: {base_file}")
            raise ConfigurationError(f"Base configuration file not found: {base_file}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in base config file: {e}")

        logger.debug("Loaded base configuration")
        return config

    def _load_environment_config(self, base_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load environment-specific configuration on top of the base."""
        env_var = f"{self.env_prefix}_ENVIRONMENT"
        environment = os.environ.get(
            env_var, base_config.get("application", {}).get("environment", "development")
        )
        base_config.setdefault("application", {})["environment"] = environment

        env_file = self.config_dir / f"{environment}.yaml"
        if not env_file.exists():
            logger.debug(f"No configuration file for environment: {environment}")
            return base_config

        try:
            with open(env_file, 'r', encoding='utf-8') as f:
                env_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Invalid YAML in environment config file: {e}")
            return base_config

        logger.debug(f"Loaded {environment} configuration")
        result = self._deep_merge(base_config, env_config)
        result["application"]["environment"] = environment
        return result

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value
        return base

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        prefix = f"{self.env_prefix}_"
        applied_overrides = 0
        for env_var, value in os.environ.items():
            if not env_var.startswith(prefix):
                continue

            config_key = env_var[len(prefix):].lower()
            # Handled by _load_environment_config
            if config_key == "environment":
                continue

            config_path = self._resolve_path(config, config_key.split('_'))
            try:
                self._set_nested_value(config, config_path, self._parse_env_value(value))
            except ConfigurationError as e:
                logger.warning(f"Failed to apply environment override {config_key}: {e}")
                continue

            applied_overrides += 1
            logger.debug(f"Applied environment override: {'.'.join(config_path)} = {value}")

        if applied_overrides > 0:
            logger.info(f"Applied {applied_overrides} environment variable overrides")

        return config

    def _resolve_path(self, config: Dict[str, Any], parts: list[str]) -> list[str]:
        """Map underscore-separated parts onto existing keys, longest key first.

        ``database_slow_query_threshold_ms`` resolves to
        ``["database", "slow_query_threshold_ms"]`` when that key exists.
        """
        path = []
        current: Any = config
        index = 0
        while index < len(parts):
            for end in range(len(parts), index, -1):
                candidate = "_".join(parts[index:end])
                if isinstance(current, dict) and candidate in current:
                    path.append(candidate)
                    current = current[candidate]
                    index = end
                    break
            else:
                path.append(parts[index])
                current = None
                index += 1
        return path

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ('', 'null', 'none'):
            return None
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        if ',' in value:
            return [item.strip() for item in value.split(',') if item.strip()]
        try:
            if '.' in value:
                return float(value)
            return int(value)
        except ValueError:
            return value

    def _set_nested_value(self, config: Dict[str, Any], path: list, value: Any) -> None:
        current = config
        for key in path[:-1]:
            if key not in current or current[key] is None:
                current[key] = {}
            elif not isinstance(current[key], dict):
                raise ConfigurationError(f"Cannot set nested value under '{key}'")
            current = current[key]
        current[path[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key."""
        value: Any = self.load_config()
        for k in key.split('.'):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        value = self.get(section, {})
        return value if isinstance(value, dict) else {}

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def set(self, key: str, value: Any) -> None:
        self._set_nested_value(self.load_config(), key.split('.'), value)

    def get_all(self) -> Dict[str, Any]:
        return self.load_config().copy()

    def get_environment(self) -> str:
        return self.get("application.environment", "development")

    def is_debug(self) -> bool:
        return bool(self.get("application.debug", False))

    def is_production(self) -> bool:
        return self.get_environment().lower() == "production"

    def is_development(self) -> bool:
        return self.get_environment().lower() == "development"

    def is_testing(self) -> bool:
        return self.get_environment().lower() == "testing"
