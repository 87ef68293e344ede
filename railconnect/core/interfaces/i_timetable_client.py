"""
Timetable Client Interface

Interface for the upstream timetable/real-time API consumed by the journey
timing engine.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ...models.journey_data import DeparturesResult, ServiceType, StoppingPattern


class ITimetableClient(ABC):
    """Interface for upstream timetable queries."""

    @abstractmethod
    async def get_departures(
        self,
        service_type: ServiceType,
        stop_id: int,
        window_start: Optional[datetime] = None,
        max_results: int = 20,
    ) -> DeparturesResult:
        """
        Get upcoming departures from a stop.

        Args:
            service_type: Service type to query (metro or regional)
            stop_id: Stop to depart from
            window_start: Earliest departure instant (defaults to now)
            max_results: Maximum departures to return

        Returns:
            DeparturesResult with departures in time order

        Raises:
            TimetableAPIException: On timeout or HTTP/network failure
        """
        pass

    @abstractmethod
    async def get_run_pattern(self, run_id: str, service_type: ServiceType) -> StoppingPattern:
        """
        Get the full stopping pattern of a run.

        Args:
            run_id: Run reference
            service_type: Service type of the run

        Returns:
            StoppingPattern ordered by visit sequence

        Raises:
            TimetableAPIException: On timeout or HTTP/network failure
        """
        pass
