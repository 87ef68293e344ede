"""
Configuration management for the RailConnect journey planner.

This module handles loading, saving, and validating application configuration
using Pydantic models for type safety and validation. Credentials and a few
transport settings may be overridden from the environment.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from .connection_policy_config import (
    ConnectionPolicyConfig,
    ConnectionPolicyConfigFactory,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_DEV_ID = "YOUR_DEV_ID_HERE"
PLACEHOLDER_API_KEY = "YOUR_API_KEY_HERE"


class APIConfig(BaseModel):
    """Configuration for PTV Timetable API access."""

    dev_id: str = Field(default=PLACEHOLDER_DEV_ID, description="PTV developer id")
    api_key: str = Field(default=PLACEHOLDER_API_KEY, description="PTV signing key")
    base_url: str = "https://timetableapi.ptv.vic.gov.au"
    timeout_seconds: float = Field(default=8, gt=0)
    max_retries: int = Field(default=3, ge=0)
    rate_limit_per_minute: int = Field(default=60, ge=1)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        """Validate the base URL and strip any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError('Base URL must start with http:// or https://')
        return v.rstrip("/")


class CacheConfig(BaseModel):
    """Configuration for upstream data caching."""

    pattern_ttl_seconds: int = Field(default=300, ge=1)
    reference_ttl_hours: int = Field(default=12, ge=1)
    max_size: int = Field(default=1000, ge=1)


class PlanningConfig(BaseModel):
    """Configuration for the journey timing engine."""

    default_search_window_minutes: int = Field(default=180, ge=1)
    default_max_results: int = Field(default=3, ge=1)
    origin_departures_max_results: int = Field(default=20, ge=1)
    interchange_departures_max_results: int = Field(default=15, ge=1)
    first_leg_candidate_limit: int = Field(default=3, ge=1)
    second_legs_per_candidate: int = Field(default=2, ge=1)
    max_concurrent_candidates: int = Field(default=3, ge=1)
    tight_connection_penalty_minutes: int = Field(default=5, ge=0)


class DisplayConfig(BaseModel):
    """Configuration for rendering local times."""

    timezone: str = "Australia/Melbourne"


class LoggingConfig(BaseModel):
    """Configuration for application logging."""

    level: str = "INFO"
    log_to_file: bool = True

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError('Log level must be DEBUG, INFO, WARNING or ERROR')
        return level


class ConfigData(BaseModel):
    """Main configuration data model."""

    api: APIConfig = Field(default_factory=APIConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    planning: PlanningConfig = Field(default_factory=PlanningConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    log_settings: LoggingConfig = Field(default_factory=LoggingConfig)
    connection_policy: ConnectionPolicyConfig = Field(
        default_factory=ConnectionPolicyConfigFactory.create_melbourne_config
    )


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


class ConfigManager:
    """
    Manages application configuration with file persistence.

    Handles loading configuration from JSON files, creating default
    configurations, applying environment overrides and saving changes back
    to disk.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses the
                user's config directory
        """
        if config_path is None:
            self.config_path = self.get_default_config_path()
        else:
            self.config_path = Path(config_path)
        self.config: Optional[ConfigData] = None

        logger.debug(f"ConfigManager initialized with path: {self.config_path}")

    @staticmethod
    def get_default_config_path() -> Path:
        """
        Get the default configuration file path.

        On Windows, uses AppData/Roaming/RailConnect/config.json
        Elsewhere uses XDG_CONFIG_HOME/RailConnect/config.json or
        ~/.config/RailConnect/config.json

        Returns:
            Path: Default configuration file path
        """
        if os.name == "nt":
            appdata = os.environ.get("APPDATA")
            if appdata:
                return Path(appdata) / "RailConnect" / "config.json"
        else:
            xdg_config = os.environ.get("XDG_CONFIG_HOME")
            if xdg_config:
                return Path(xdg_config) / "RailConnect" / "config.json"
            return Path.home() / ".config" / "RailConnect" / "config.json"

        return Path("config.json")

    def load_config(self) -> ConfigData:
        """
        Load configuration from file.

        If the configuration file doesn't exist, creates a default one.
        Environment overrides are applied after loading and are never
        written back to disk.

        Returns:
            ConfigData: The loaded configuration

        Raises:
            ConfigurationError: If the configuration file is invalid
        """
        logger.debug(f"Loading config from: {self.config_path}")

        if not self.config_path.exists():
            logger.info(
                f"Config file doesn't exist, creating default at: {self.config_path}"
            )
            self.create_default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            config = ConfigData(**data)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file: {e}")
        except Exception as e:
            raise ConfigurationError(f"Failed to load config: {e}")

        self.config = self.apply_environment_overrides(config)
        logger.debug(f"Successfully loaded config from: {self.config_path}")
        return self.config

    @staticmethod
    def apply_environment_overrides(config: ConfigData) -> ConfigData:
        """
        Apply PTV_* and related environment variables over a configuration.

        Returns:
            ConfigData: A new configuration with overrides applied

        Raises:
            ConfigurationError: If a numeric override is not a number
        """
        api_updates = {}
        if os.environ.get("PTV_DEV_ID"):
            api_updates["dev_id"] = os.environ["PTV_DEV_ID"]
        if os.environ.get("PTV_API_KEY"):
            api_updates["api_key"] = os.environ["PTV_API_KEY"]
        if os.environ.get("PTV_BASE_URL"):
            api_updates["base_url"] = os.environ["PTV_BASE_URL"].rstrip("/")

        try:
            if os.environ.get("HTTP_TIMEOUT_MS"):
                api_updates["timeout_seconds"] = int(os.environ["HTTP_TIMEOUT_MS"]) / 1000
            if os.environ.get("HTTP_MAX_RETRIES"):
                api_updates["max_retries"] = int(os.environ["HTTP_MAX_RETRIES"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment override: {e}")

        updates = {}
        if api_updates:
            updates["api"] = config.api.model_copy(update=api_updates)
        if os.environ.get("LOG_LEVEL"):
            try:
                updates["log_settings"] = LoggingConfig(
                    level=os.environ["LOG_LEVEL"],
                    log_to_file=config.log_settings.log_to_file,
                )
            except ValueError as e:
                raise ConfigurationError(f"Invalid LOG_LEVEL override: {e}")

        if not updates:
            return config
        return config.model_copy(update=updates)

    def save_config(self, config: ConfigData) -> bool:
        """
        Save configuration to file.

        Args:
            config: Configuration data to save

        Returns:
            bool: True if saved successfully, False otherwise
        """
        logger.info(f"Saving config to: {self.config_path}")

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(config.model_dump(), f, indent=2, ensure_ascii=False)
            self.config = config
            return True
        except OSError as e:
            logger.error(f"Failed to save config to {self.config_path}: {e}")
            return False

    def create_default_config(self) -> None:
        """Create a default configuration file."""
        self.save_config(ConfigData())

    def validate_api_credentials(self) -> bool:
        """
        Check if API credentials are configured.

        Returns:
            bool: True if credentials are set, False otherwise
        """
        if self.config is None:
            self.load_config()

        if not self.config:
            return False

        return (
            self.config.api.dev_id != PLACEHOLDER_DEV_ID
            and self.config.api.api_key != PLACEHOLDER_API_KEY
            and bool(self.config.api.dev_id)
            and bool(self.config.api.api_key)
        )

    def missing_credentials(self) -> List[str]:
        """
        List the environment variables needed for unset credentials.

        Returns:
            List of missing variable names (empty if all present)
        """
        if self.config is None:
            self.load_config()

        missing = []
        if not self.config.api.dev_id or self.config.api.dev_id == PLACEHOLDER_DEV_ID:
            missing.append("PTV_DEV_ID")
        if not self.config.api.api_key or self.config.api.api_key == PLACEHOLDER_API_KEY:
            missing.append("PTV_API_KEY")
        return missing

    def get_config_summary(self) -> dict:
        """
        Get a summary of current configuration for display.

        Returns:
            dict: Configuration summary
        """
        if self.config is None:
            self.load_config()

        planning = self.config.planning
        return {
            "base_url": self.config.api.base_url,
            "api_configured": "Yes" if self.validate_api_credentials() else "No",
            "pattern_cache_ttl": f"{self.config.cache.pattern_ttl_seconds} seconds",
            "search_window": f"{planning.default_search_window_minutes} minutes",
            "max_results": planning.default_max_results,
            "station_overrides": len(self.config.connection_policy.station_overrides),
            "timezone": self.config.display.timezone,
        }
