"""
Connection Policy Engine

Minimum connection times at interchanges and classification of a planned
wait as feasible, tight or infeasible.
"""

import logging
from typing import Optional

from ...managers.connection_policy_config import (
    ConnectionPolicyConfig,
    ConnectionPolicyConfigFactory,
    InterchangeStation,
    StationOverride,
)
from ...models.journey_data import (
    ConnectionValidation,
    ConnectionValidityStatus,
    ServiceType,
)

logger = logging.getLogger(__name__)


def policy_key(from_type: ServiceType, to_type: ServiceType) -> str:
    """Policy table key for a service-type pair, e.g. "regional_to_metro"."""
    return f"{from_type.value}_to_{to_type.value}"


class ConnectionPolicyEngine:
    """
    Deterministic lookups over a connection policy configuration.

    The same inputs always produce the same minimum; nothing here touches the
    network or mutable state.
    """

    def __init__(self, config: Optional[ConnectionPolicyConfig] = None):
        self.config = config or ConnectionPolicyConfigFactory.create_melbourne_config()

    def get_min_connection_time(
        self,
        stop_id: int,
        from_type: ServiceType,
        to_type: ServiceType,
        from_platform: Optional[str] = None,
        to_platform: Optional[str] = None,
    ) -> int:
        """
        Minimum minutes needed to change services at a stop.

        Platform-specific minimums apply only when both platforms are known
        and the station defines platform groups.

        Args:
            stop_id: Interchange stop id
            from_type: Service type of the arriving leg
            to_type: Service type of the departing leg
            from_platform: Arrival platform, if known
            to_platform: Departure platform, if known

        Returns:
            int: Non-negative minimum connection minutes
        """
        key = policy_key(from_type, to_type)
        override = self.config.get_override(stop_id)

        if override is not None:
            if from_platform and to_platform and override.platform_groups:
                platform_minutes = self._platform_minutes(override, from_platform, to_platform)
                if platform_minutes > 0:
                    logger.debug(
                        f"Platform policy at {stop_id} ({from_platform}->{to_platform}): {platform_minutes} min"
                    )
                    return platform_minutes

            if key in override.policies:
                return override.policies[key]
            if "metro_to_metro" in override.policies:
                return override.policies["metro_to_metro"]

        return self.config.default_policies.get(key, self.config.fallback_minutes)

    @staticmethod
    def _platform_minutes(override: StationOverride, from_platform: str, to_platform: str) -> int:
        """Minimum for a platform change, or 0 when the override has no matching entry."""
        policies = override.policies
        if from_platform == to_platform:
            return policies.get("same_platform", 0)

        from_group = to_group = None
        for group_name, platforms in (override.platform_groups or {}).items():
            if from_platform in platforms:
                from_group = group_name
            if to_platform in platforms:
                to_group = group_name

        if from_group is not None and from_group == to_group:
            return policies.get("same_group", policies.get("same_platform", 0))
        return policies.get("cross_platform", 0)

    def validate_connection(self, actual_wait_minutes: int, min_required_minutes: int) -> ConnectionValidation:
        """
        Classify a wait against a minimum.

        A wait below the minimum is infeasible; slack up to and including the
        tight threshold is tight.
        """
        if actual_wait_minutes < min_required_minutes:
            return ConnectionValidation(
                status=ConnectionValidityStatus.INFEASIBLE,
                warning=self.config.warning_text("infeasible"),
            )

        slack = actual_wait_minutes - min_required_minutes
        if slack <= self.config.tight_connection_threshold:
            return ConnectionValidation(
                status=ConnectionValidityStatus.TIGHT,
                warning=self.config.warning_text("tight_connection"),
            )

        return ConnectionValidation(status=ConnectionValidityStatus.FEASIBLE)

    def interchange_for(self, service_type: ServiceType) -> InterchangeStation:
        """Default interchange for a first leg of the given service type."""
        if service_type == ServiceType.REGIONAL:
            return self.config.regional_interchange
        return self.config.metro_interchange

    def station_name(self, stop_id: int) -> Optional[str]:
        """Known display name of a stop, if the policy knows it."""
        override = self.config.get_override(stop_id)
        if override is not None:
            return override.name
        for station in (self.config.regional_interchange, self.config.metro_interchange):
            if station.stop_id == stop_id:
                return station.name
        return None
