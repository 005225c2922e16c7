"""
Configuration system for schemerge using Pydantic.
"""

import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class ReconcilerConfig(BaseModel):
    """Schema reconciliation configuration."""

    id_strategy: Literal["uuid", "counter", "timestamp"] = Field(
        "uuid", description="How fresh column ids are generated"
    )
    id_prefix: str = Field("col-", description="Prefix for generated column ids")
    sync_foreign_keys: bool = Field(
        False, description="Derive isForeignKey/references from relationships"
    )
    drop_unresolved_relationships: bool = Field(
        False, description="Drop relationships whose endpoints are missing"
    )
    warn_unresolved_relationships: bool = Field(
        True, description="Log a warning for each unresolved relationship"
    )


class OutputConfig(BaseModel):
    """Schema document output configuration."""

    format: Literal["json", "yaml"] = Field("json", description="Output format")
    indent: int = Field(2, description="Indentation for written documents")

    @field_validator("indent")
    @classmethod
    def check_indent(cls, v: int) -> int:
        if v < 0:
            raise ValueError("indent must not be negative")
        return v


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


class SchemergeConfig(BaseSettings):
    """Main schemerge configuration."""

    service_name: str = Field("schemerge", description="Service name")
    debug: bool = Field(False, description="Enable debug mode")

    reconciler: ReconcilerConfig = Field(
        default_factory=ReconcilerConfig,
        description="Schema reconciliation configuration",
    )
    output: OutputConfig = Field(
        default_factory=OutputConfig, description="Output configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SCHEMERGE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SchemergeConfig":
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
        except TypeError as e:
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

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
