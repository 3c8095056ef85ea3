"""
Configuration system for schemakeeper using Pydantic.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .database.connection import ConnectionConfig
from .dialects import DIALECTS
from .exceptions import ConfigurationError


class DatabaseSettings(BaseModel):
    """Database connection settings, given as a URL or as separate fields."""

    url: Optional[str] = Field(None, description="postgresql:// connection URL")
    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: Optional[str] = Field(None, description="Database name")
    user: str = Field("", description="Database user")
    password: str = Field("", description="Database password")
    command_timeout: float = Field(60.0, description="Command timeout in seconds")
    ssl_mode: Optional[str] = Field(None, description="SSL mode")

    def to_connection_config(self) -> ConnectionConfig:
        """Build the asyncpg connection configuration."""
        if self.url:
            config = ConnectionConfig.from_url(self.url)
            return config.model_copy(update={"command_timeout": self.command_timeout})

        if not self.database:
            raise ConfigurationError("Database name is required")

        try:
            return ConnectionConfig(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                command_timeout=self.command_timeout,
                ssl_mode=self.ssl_mode,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid database configuration: {e}")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class SchemaKeeperConfig(BaseSettings):
    """Main schemakeeper configuration."""

    dialect: str = Field("postgresql", description="SQL dialect name")
    dry_run: bool = Field(False, description="Log statements instead of executing them")

    database: Optional[DatabaseSettings] = Field(
        None, description="Database connection settings"
    )
    schema_name: str = Field("public", description="Schema to introspect")

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SCHEMAKEEPER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("dialect")
    @classmethod
    def validate_dialect(cls, v: str) -> str:
        name = v.strip().lower()
        if name not in DIALECTS:
            raise ValueError(
                f"Unknown dialect '{v}', expected one of: {', '.join(sorted(DIALECTS))}"
            )
        return name

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SchemaKeeperConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def connection_config(self) -> ConnectionConfig:
        """Connection configuration; raises if no database is configured."""
        if self.database is None:
            raise ConfigurationError("No database configured")
        return self.database.to_connection_config()

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def configure_logging(config: LoggingConfig, debug: bool = False) -> None:
    """Configure the schemakeeper logger from a LoggingConfig."""
    logger = logging.getLogger("schemakeeper")
    logger.setLevel(logging.DEBUG if debug else getattr(logging, config.level))

    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.handlers.RotatingFileHandler(
            config.file,
            maxBytes=config.max_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
