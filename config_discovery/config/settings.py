"""Client settings and configuration management."""

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)


class DiscoverySettings(BaseSettings):
    """Config discovery client settings with environment variable support."""

    # Discovery service
    config_url: str = Field(description="Base URL of the config discovery service")

    # Refresh loop
    refresh_interval_seconds: float = Field(
        default=5.0, gt=0, description="Delay between refresh cycles in seconds"
    )
    request_timeout_seconds: float = Field(
        default=4.0, gt=0, description="Timeout of a single request in seconds"
    )
    max_backoff_seconds: float = Field(
        default=60.0, gt=0, description="Maximum delay after repeated failures"
    )

    # Startup
    initial_fetch_attempts: int = Field(
        default=3, ge=1, description="Attempts for the mandatory first fetch"
    )

    # Subscribers
    update_buffer_size: int = Field(
        default=1, ge=1, description="Pending updates kept per subscriber"
    )

    model_config = {
        "env_prefix": "CONFIG_DISCOVERY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def check_timeouts(self) -> "DiscoverySettings":
        if self.request_timeout_seconds >= self.refresh_interval_seconds:
            raise ValueError(
                f"request_timeout_seconds ({self.request_timeout_seconds}) must be "
                f"shorter than refresh_interval_seconds "
                f"({self.refresh_interval_seconds})"
            )
        return self

    @property
    def base_url(self) -> str:
        return self.config_url.rstrip("/")


def load_settings(yaml_path: str | None = None, **overrides: Any) -> DiscoverySettings:
    """Load settings from an optional YAML file and environment variables.

    Args:
        yaml_path: Path to YAML configuration file
        **overrides: Values taking precedence over the file

    Returns:
        DiscoverySettings instance with loaded configuration

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValidationError: If configuration is invalid
        ValueError: If the YAML cannot be parsed
    """
    yaml_config: dict[str, Any] = {}

    if yaml_path is not None:
        yaml_file = Path(yaml_path)
        if not yaml_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_file, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML configuration", error=str(e))
            raise ValueError(f"Invalid YAML configuration: {e}") from e

        if not isinstance(yaml_config, dict):
            raise ValueError(
                f"Invalid YAML configuration: expected a mapping in {yaml_path}"
            )

    yaml_config.update({k: v for k, v in overrides.items() if v is not None})

    logger.info("Loading configuration", yaml_path=yaml_path)

    try:
        settings = DiscoverySettings(**yaml_config)
    except ValidationError as e:
        logger.error("Configuration validation failed", error=str(e))
        raise

    logger.info(
        "Configuration loaded successfully",
        config_url=settings.config_url,
        refresh_interval_seconds=settings.refresh_interval_seconds,
    )
    return settings
