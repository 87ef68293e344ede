"""
Candidate Leg Finder

Finds first-leg departures from the origin and picks an interchange for each.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from ...models.journey_data import DepartureCandidate, PlanningMetadata, ServiceType
from ..interfaces.i_timetable_client import ITimetableClient
from .connection_policy import ConnectionPolicyEngine

logger = logging.getLogger(__name__)

PREFERRED_INTERCHANGE_NAME = "Preferred Interchange"


class CandidateLegFinder:
    """Service for finding first-leg departures within a search window."""

    def __init__(
        self,
        client: ITimetableClient,
        policy: ConnectionPolicyEngine,
        max_results: int = 20,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.client = client
        self.policy = policy
        self.max_results = max_results
        self.logger = log or logger

    async def find_candidates(
        self,
        origin_stop_id: int,
        earliest_departure: datetime,
        window_end: datetime,
        preferred_interchanges: Sequence[int],
        counters: PlanningMetadata,
    ) -> List[DepartureCandidate]:
        """
        Find departures from the origin inside the window.

        Metro departures are tried first; regional departures only when the
        metro query returns nothing. Upstream errors propagate.

        Args:
            origin_stop_id: Origin stop id
            earliest_departure: Window start
            window_end: Latest acceptable departure
            preferred_interchanges: Ordered preferred interchange stop ids
            counters: Metadata counters updated in place

        Returns:
            List[DepartureCandidate]: Candidates in upstream (time) order
        """
        result = None
        for service_type in (ServiceType.METRO, ServiceType.REGIONAL):
            result = await self.client.get_departures(
                service_type, origin_stop_id, earliest_departure, self.max_results
            )
            counters.api_calls += 1
            if result.departures:
                break
            self.logger.debug(f"No {service_type.value} departures from {origin_stop_id}")

        candidates = []
        for departure in result.departures if result else []:
            if departure.run_id is None or departure.scheduled_departure is None:
                continue
            if departure.scheduled_departure > window_end:
                continue
            if departure.cancelled:
                self.logger.debug(f"Skipping cancelled run {departure.run_id}")
                continue

            interchange_id, interchange_name = self._choose_interchange(
                departure.service_type, preferred_interchanges
            )
            candidates.append(
                DepartureCandidate(
                    departure=departure,
                    interchange_stop_id=interchange_id,
                    interchange_name=interchange_name,
                    service_type=departure.service_type,
                )
            )

        self.logger.info(f"Found {len(candidates)} first-leg candidates from {origin_stop_id}")
        return candidates

    def _choose_interchange(self, service_type: ServiceType, preferred_interchanges: Sequence[int]):
        if preferred_interchanges:
            stop_id = preferred_interchanges[0]
            override = self.policy.config.get_override(stop_id)
            return stop_id, override.name if override else PREFERRED_INTERCHANGE_NAME

        station = self.policy.interchange_for(service_type)
        return station.stop_id, station.name
