"""
Second Leg Finder

Finds onward departures from an interchange whose stopping pattern actually
reaches the destination.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ...models.journey_data import PlanningMetadata, SecondLegCandidate, ServiceType
from ..interfaces.i_timetable_client import ITimetableClient
from ...api.exceptions import TimetableAPIException
from .stopping_pattern_resolver import StoppingPatternResolver

logger = logging.getLogger(__name__)


class SecondLegFinder:
    """Service for finding connecting services from an interchange."""

    def __init__(
        self,
        client: ITimetableClient,
        resolver: StoppingPatternResolver,
        max_results: int = 15,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.client = client
        self.resolver = resolver
        self.max_results = max_results
        self.logger = log or logger

    async def find_connections(
        self,
        interchange_stop_id: int,
        destination_stop_id: int,
        earliest_connection: datetime,
        window_end: datetime,
        counters: PlanningMetadata,
    ) -> List[SecondLegCandidate]:
        """
        Find metro departures from the interchange that reach the destination.

        Patterns are resolved one run at a time in departure order. A run
        that fails to resolve or does not serve the destination is skipped.

        Args:
            interchange_stop_id: Stop to depart from
            destination_stop_id: Stop that must appear in the run's pattern
            earliest_connection: Interchange arrival plus minimum connection
            window_end: Latest acceptable departure
            counters: Metadata counters updated in place

        Returns:
            List[SecondLegCandidate]: Serving runs in departure order
        """
        result = await self.client.get_departures(
            ServiceType.METRO, interchange_stop_id, earliest_connection, self.max_results
        )
        counters.api_calls += 1

        connections = []
        for departure in result.departures:
            scheduled = departure.scheduled_departure
            if departure.run_id is None or scheduled is None:
                continue
            if scheduled < earliest_connection or scheduled > window_end:
                continue
            if departure.cancelled:
                continue

            try:
                pattern = await self.resolver.resolve(departure.run_id, departure.service_type, counters)
            except TimetableAPIException as e:
                self.logger.warning(f"Could not resolve pattern for run {departure.run_id}: {e}")
                continue

            arrival = self.resolver.find_destination_arrival(pattern, destination_stop_id)
            if arrival is None or arrival.scheduled_time is None:
                self.logger.debug(f"Run {departure.run_id} does not serve {destination_stop_id}")
                continue
            if arrival.scheduled_time <= scheduled:
                continue

            connections.append(SecondLegCandidate(departure=departure, destination_arrival=arrival))

        self.logger.debug(
            f"{len(connections)} connections from {interchange_stop_id} reach {destination_stop_id}"
        )
        return connections
