"""Configuration management for adminkit."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from adminkit.core.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = "~/.adminkit/config.yaml"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    format: str = "console"
    output: str = "stderr"


class TokenConfig(BaseModel):
    """Credential minting configuration."""

    token_api_min_minor: int = Field(default=24, ge=0)
    legacy_secret_poll_attempts: int = Field(default=5, ge=1)
    legacy_secret_poll_interval_seconds: float = Field(default=1.0, ge=0)


class VerificationConfig(BaseModel):
    """Post-export verification configuration."""

    enabled: bool = True
    list_permissions: bool = True


class AdminKitConfig(BaseModel):
    """Main adminkit configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    token: TokenConfig = Field(default_factory=TokenConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "AdminKitConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            AdminKitConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid configuration: expected a mapping in {config_path}")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def load(cls, path: str | None = None) -> "AdminKitConfig":
        """Load an explicit config file, or the default one if it exists.

        Args:
            path: Explicit path; must exist when given

        Returns:
            AdminKitConfig instance (all defaults when no file is found)
        """
        if path:
            return cls.from_file(path)

        default_path = Path(DEFAULT_CONFIG_PATH).expanduser()
        if default_path.exists():
            return cls.from_file(default_path)
        return cls()

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()
