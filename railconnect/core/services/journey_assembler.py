"""
Journey Assembler

Builds scored two-leg journey options from a first leg, its interchange
arrival and a connecting second leg.
"""

import logging
from typing import Optional

from ...managers.config_manager import DisplayConfig
from ...models.journey_data import (
    ConnectionInfo,
    ConnectionValidityStatus,
    DepartureCandidate,
    JourneyLeg,
    JourneyOption,
    SecondLegCandidate,
    ServiceType,
    StoppingPatternEntry,
)
from ...utils.helpers import epoch_millis, minutes_between, to_local_iso
from .connection_policy import ConnectionPolicyEngine

logger = logging.getLogger(__name__)

SERVICE_DISPLAY_NAMES = {
    ServiceType.METRO: "Metro Trains",
    ServiceType.REGIONAL: "V/Line",
}


class JourneyAssembler:
    """Assembles and scores journey options."""

    def __init__(
        self,
        policy: ConnectionPolicyEngine,
        display: Optional[DisplayConfig] = None,
        tight_penalty_minutes: int = 5,
    ):
        self.policy = policy
        self.display = display or DisplayConfig()
        self.tight_penalty_ms = tight_penalty_minutes * 60 * 1000

    def assemble(
        self,
        first_leg: DepartureCandidate,
        second_leg: SecondLegCandidate,
        interchange_arrival: StoppingPatternEntry,
        min_connection_minutes: int,
        destination_stop_id: int,
    ) -> Optional[JourneyOption]:
        """
        Assemble a two-leg journey.

        Infeasible connections are still assembled; the caller decides
        whether to keep them.

        Args:
            first_leg: Origin departure and chosen interchange
            second_leg: Interchange departure and its destination arrival
            interchange_arrival: Pattern entry of the first run at the interchange
            min_connection_minutes: Required minimum connection time
            destination_stop_id: Destination stop id

        Returns:
            Optional[JourneyOption]: The journey, or None if a required time is missing
        """
        first_departure = first_leg.departure
        second_departure = second_leg.departure

        departure_time = first_departure.scheduled_departure
        interchange_time = interchange_arrival.scheduled_time
        connection_time = second_departure.scheduled_departure
        arrival_time = second_leg.destination_arrival_time

        if None in (departure_time, interchange_time, connection_time, arrival_time):
            logger.warning(
                f"Missing timestamps for runs {first_departure.run_id}/{second_departure.run_id}"
            )
            return None

        actual_wait = minutes_between(interchange_time, connection_time)
        validation = self.policy.validate_connection(actual_wait, min_connection_minutes)

        interchange_name = (
            first_leg.interchange_name
            or interchange_arrival.stop_name
            or self._stop_name(first_leg.interchange_stop_id)
        )

        legs = [
            self._build_leg(
                origin_stop_id=first_departure.stop_id,
                origin_stop_name=first_departure.stop_name,
                destination_stop_id=first_leg.interchange_stop_id,
                destination_stop_name=interchange_name,
                departure=first_departure,
                service_type=first_leg.service_type,
                departure_time=departure_time,
                arrival_time=interchange_time,
            ),
            self._build_leg(
                origin_stop_id=first_leg.interchange_stop_id,
                origin_stop_name=interchange_name,
                destination_stop_id=destination_stop_id,
                destination_stop_name=second_leg.destination_arrival.stop_name,
                departure=second_departure,
                service_type=second_departure.service_type,
                departure_time=connection_time,
                arrival_time=arrival_time,
            ),
        ]

        connection = ConnectionInfo(
            at_stop_id=first_leg.interchange_stop_id,
            at_stop_name=interchange_name,
            min_required_minutes=min_connection_minutes,
            actual_wait_minutes=actual_wait,
            validity_status=validation.status,
            from_platform=interchange_arrival.platform,
            to_platform=second_departure.platform,
            warning_message=validation.warning,
        )

        score = epoch_millis(arrival_time)
        if validation.status == ConnectionValidityStatus.TIGHT:
            score += self.tight_penalty_ms

        return JourneyOption(
            legs=legs,
            connections=[connection],
            total_journey_minutes=minutes_between(departure_time, arrival_time),
            arrival_utc=arrival_time,
            score=score,
            warnings=[validation.warning] if validation.warning else [],
        )

    def _build_leg(
        self,
        origin_stop_id,
        origin_stop_name,
        destination_stop_id,
        destination_stop_name,
        departure,
        service_type,
        departure_time,
        arrival_time,
    ) -> JourneyLeg:
        tz_name = self.display.timezone
        return JourneyLeg(
            origin_stop_id=origin_stop_id,
            origin_stop_name=origin_stop_name or self._stop_name(origin_stop_id),
            destination_stop_id=destination_stop_id,
            destination_stop_name=destination_stop_name or self._stop_name(destination_stop_id),
            route_id=departure.route_id,
            route_name=departure.route_name or SERVICE_DISPLAY_NAMES[service_type],
            service_type=service_type,
            run_id=departure.run_id,
            departure_utc=departure_time,
            arrival_utc=arrival_time,
            departure_local=to_local_iso(departure_time, tz_name),
            arrival_local=to_local_iso(arrival_time, tz_name),
            duration_minutes=minutes_between(departure_time, arrival_time),
            platform=departure.platform,
            realtime_used=departure.realtime_used,
            cancelled=departure.cancelled,
        )

    def _stop_name(self, stop_id: Optional[int]) -> str:
        return self.policy.station_name(stop_id) or f"Stop {stop_id}"
