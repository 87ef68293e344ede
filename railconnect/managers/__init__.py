"""
Configuration managers for the RailConnect journey planner.
"""

from .config_manager import (
    APIConfig,
    CacheConfig,
    ConfigData,
    ConfigManager,
    ConfigurationError,
    DisplayConfig,
    LoggingConfig,
    PlanningConfig,
)
from .connection_policy_config import (
    ConnectionPolicyConfig,
    ConnectionPolicyConfigFactory,
    StationOverride,
)

__all__ = [
    "APIConfig",
    "CacheConfig",
    "ConfigData",
    "ConfigManager",
    "ConfigurationError",
    "DisplayConfig",
    "LoggingConfig",
    "PlanningConfig",
    "ConnectionPolicyConfig",
    "ConnectionPolicyConfigFactory",
    "StationOverride",
]
