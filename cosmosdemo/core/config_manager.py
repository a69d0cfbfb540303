"""
Configuration management for the Cosmos DB demo.

Handles loading, validation, and access to configuration settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

from cosmosdemo.services.cosmosdb.models import IndexingPolicy

logger = logging.getLogger(__name__)

# Values shipped in sample settings files that must be replaced before use
PLACEHOLDER_ENDPOINTS = {"EndPoint", "https://<your-account>.documents.azure.com:443/"}
PLACEHOLDER_KEYS = {"AuthorizationKey", "Super secret key"}


class ConfigurationError(ValueError):
    """Raised when the configuration cannot be used to reach the service."""


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CosmosConfig(BaseModel):
    """Account connection settings."""
    endpoint: str = ""
    key: str = ""
    connection_timeout: Optional[int] = Field(
        default=None,
        ge=1,
        description="Connection timeout in seconds passed to the SDK client"
    )
    in_memory: bool = Field(
        default=False,
        description="Run against the in-memory service model instead of an account"
    )

    def validate_credentials(self) -> None:
        """
        Check that endpoint and key are usable.

        Raises:
            ConfigurationError: If either is missing or still a placeholder
        """
        if not self.endpoint or self.endpoint in PLACEHOLDER_ENDPOINTS:
            raise ConfigurationError(
                "Please specify a valid endpoint in the configuration file or COSMOSDEMO_ENDPOINT"
            )
        if not self.endpoint.startswith(("https://", "http://")):
            raise ConfigurationError(f"Endpoint must be an http(s) URL: {self.endpoint}")
        if not self.key or self.key in PLACEHOLDER_KEYS:
            raise ConfigurationError(
                "Please specify a valid authorization key in the configuration file or COSMOSDEMO_KEY"
            )


class DatabaseConfig(BaseModel):
    """Database used by the demo."""
    id: str = "samples"
    throughput: Optional[int] = Field(
        default=10000,
        description="Shared throughput provisioned on the database (RU/s); None for none"
    )
    replacement_throughput: Optional[int] = Field(
        default=11000,
        description="Value the database throughput is replaced with, if it has one"
    )


class ContainerConfig(BaseModel):
    """Container used by the demo."""
    id: str = "container-samples"
    partition_key_path: str = "/activityId"
    throughput: Optional[int] = 400
    replacement_throughput: int = 500
    default_ttl: Optional[int] = None
    indexing_policy: Optional[IndexingPolicy] = None


class FeedConfig(BaseModel):
    """Read feed settings."""
    max_item_count: Optional[int] = Field(
        default=None,
        ge=1,
        description="Page size for enumerations; service default when unset"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.WARNING
    format: str = "text"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'azure.core': 'WARNING'}"
    )


class DemoConfig(BaseModel):
    """Main demo configuration schema."""

    version: str = Field(default="0.1.0", description="Configuration version")

    cosmos: CosmosConfig = Field(default_factory=CosmosConfig)

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    container: ContainerConfig = Field(default_factory=ContainerConfig)

    feed: FeedConfig = Field(default_factory=FeedConfig)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format."""
        parts = v.split(".")
        if len(parts) != 3:
            raise ValueError("Version must be in format x.y.z")
        for part in parts:
            if not part.isdigit():
                raise ValueError("Version components must be numeric")
        return v

    model_config = ConfigDict(use_enum_values=True)


class ConfigManager:
    """
    Manages demo configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (COSMOSDEMO_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[DemoConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> DemoConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            Validated DemoConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        logger.info("Loading demo configuration")

        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.info(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.info(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            config_dict = self._merge_configs(config_dict, cli_overrides)
            logger.info(f"Applied {len(cli_overrides)} CLI argument overrides")

        try:
            self._config = DemoConfig(**config_dict)
            logger.info("Configuration validated successfully")
            self._log_configuration()
            return self._config
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        # Account configuration
        if endpoint := os.getenv("COSMOSDEMO_ENDPOINT"):
            config.setdefault("cosmos", {})["endpoint"] = endpoint
        if key := os.getenv("COSMOSDEMO_KEY"):
            config.setdefault("cosmos", {})["key"] = key

        # Resource names
        if database_id := os.getenv("COSMOSDEMO_DATABASE"):
            config.setdefault("database", {})["id"] = database_id
        if container_id := os.getenv("COSMOSDEMO_CONTAINER"):
            config.setdefault("container", {})["id"] = container_id

        # Logging configuration
        if log_level := os.getenv("COSMOSDEMO_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_file := os.getenv("COSMOSDEMO_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _log_configuration(self) -> None:
        """Log the loaded configuration (with the account key redacted)."""
        if not self._config:
            return

        config_dict = self._config.model_dump()

        if config_dict["cosmos"]["key"]:
            config_dict["cosmos"]["key"] = "***REDACTED***"

        logger.info(f"Active configuration: {json.dumps(config_dict, indent=2)}")

    def get_config(self) -> DemoConfig:
        """
        Get the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> DemoConfig:
        """Reload configuration from the same sources."""
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
