"""
Connection policy configuration for the RailConnect journey planner.

Minimum connection times between train services, per-station overrides,
platform groups and warning texts. The configuration is a plain value passed
to the policy engine, so tests can build synthetic policy tables freely.
"""

import logging
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, StrictInt, field_validator

logger = logging.getLogger(__name__)

POLICY_KEYS = (
    "metro_to_metro",
    "metro_to_regional",
    "regional_to_metro",
    "regional_to_regional",
)
PLATFORM_POLICY_KEYS = ("same_platform", "same_group", "cross_platform")


def _validate_minutes(policies: Dict[str, int], allowed_keys) -> Dict[str, int]:
    unknown = set(policies) - set(allowed_keys)
    if unknown:
        raise ValueError(f"Unknown policy keys: {sorted(unknown)}")
    for key, minutes in policies.items():
        if minutes < 0:
            raise ValueError(f"Policy '{key}' must not be negative")
    return policies


class StationOverride(BaseModel):
    """Station-specific connection policy."""

    name: str = Field(..., description="Station display name")
    policies: Dict[str, StrictInt] = Field(
        default_factory=dict,
        description="Minimum minutes keyed by service-type pair or platform relation",
    )
    platform_groups: Optional[Dict[str, List[str]]] = Field(
        default=None,
        description="Named groups of platforms that are close to each other",
    )

    @field_validator('policies')
    @classmethod
    def validate_policies(cls, v):
        """Validate policy keys and that minutes are non-negative."""
        return _validate_minutes(v, POLICY_KEYS + PLATFORM_POLICY_KEYS)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate station name is not empty."""
        if not v.strip():
            raise ValueError('Station name cannot be empty')
        return v.strip()


class InterchangeStation(BaseModel):
    """A well-known interchange station."""

    stop_id: int
    name: str


class ConnectionPolicyConfig(BaseModel):
    """
    Configuration for minimum connection times.

    Every (from, to) service-type pair resolves to a non-negative integer,
    falling back to ``fallback_minutes`` when nothing else matches.
    """

    default_policies: Dict[str, StrictInt] = Field(
        default_factory=lambda: {
            "metro_to_metro": 5,
            "metro_to_regional": 10,
            "regional_to_metro": 10,
            "regional_to_regional": 8,
        },
        description="Default minimum connection minutes by service-type pair",
    )
    station_overrides: Dict[str, StationOverride] = Field(
        default_factory=dict,
        description="Per-station policies keyed by stop id",
    )
    fallback_minutes: int = Field(
        default=8, ge=0, description="Global default when no policy matches"
    )
    tight_connection_threshold: int = Field(
        default=3, ge=0, description="Slack minutes at or below which a connection is tight"
    )
    regional_interchange: InterchangeStation = Field(
        default_factory=lambda: InterchangeStation(stop_id=1181, name="Southern Cross Station"),
        description="Interchange used for regional first legs",
    )
    metro_interchange: InterchangeStation = Field(
        default_factory=lambda: InterchangeStation(stop_id=1071, name="Flinders Street Station"),
        description="Interchange used for metro first legs",
    )
    warnings: Dict[str, str] = Field(
        default_factory=lambda: {
            "tight_connection": "Tight connection - allow extra time if services are running late",
            "infeasible": "Connection time insufficient - service will have departed",
        },
        description="Warning message templates",
    )

    @field_validator('default_policies')
    @classmethod
    def validate_default_policies(cls, v):
        """Validate default policies use known keys and non-negative minutes."""
        return _validate_minutes(v, POLICY_KEYS)

    @field_validator('station_overrides')
    @classmethod
    def validate_station_ids(cls, v):
        """Validate override keys are stop ids."""
        for stop_id in v:
            if not str(stop_id).isdigit():
                raise ValueError(f"Station override key '{stop_id}' is not a stop id")
        return v

    def get_override(self, stop_id: int) -> Optional[StationOverride]:
        """Get the override for a stop id, if any."""
        return self.station_overrides.get(str(stop_id))

    def warning_text(self, key: str) -> Optional[str]:
        return self.warnings.get(key)


class ConnectionPolicyConfigFactory:
    """Factory for connection policy configurations."""

    @staticmethod
    def create_melbourne_config() -> ConnectionPolicyConfig:
        """
        Create the default Melbourne policy.

        Southern Cross: V/Line platforms 1-8 and 15-16, metro platforms 9-14;
        a regional-to-metro change there needs 12 minutes.
        """
        return ConnectionPolicyConfig(
            station_overrides={
                "1181": StationOverride(
                    name="Southern Cross Station",
                    policies={
                        "metro_to_metro": 5,
                        "metro_to_regional": 10,
                        "regional_to_metro": 12,
                        "regional_to_regional": 8,
                        "same_platform": 3,
                        "same_group": 6,
                        "cross_platform": 12,
                    },
                    platform_groups={
                        "regional": ["1", "2", "3", "4", "5", "6", "7", "8", "15", "16"],
                        "metro": ["9", "10", "11", "12", "13", "14"],
                    },
                ),
                "1071": StationOverride(
                    name="Flinders Street Station",
                    policies={
                        "metro_to_metro": 6,
                        "metro_to_regional": 10,
                        "regional_to_metro": 8,
                    },
                ),
            }
        )

    @staticmethod
    def create_uniform_config(minutes: int, tight_threshold: int = 3) -> ConnectionPolicyConfig:
        """Create a policy with the same minimum for every pair and no overrides."""
        return ConnectionPolicyConfig(
            default_policies={key: minutes for key in POLICY_KEYS},
            fallback_minutes=minutes,
            tight_connection_threshold=tight_threshold,
        )
