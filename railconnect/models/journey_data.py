"""
Journey planning data models and enums.

This module defines the core data structures used by the connection-aware
journey timing engine: upstream departure records, stopping patterns,
connection information, journey legs and the planning request/result.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum


class ServiceType(Enum):
    """Enumeration of train service types."""

    METRO = "metro"
    REGIONAL = "regional"

    @property
    def route_type(self) -> int:
        """PTV route_type code for this service type."""
        return 3 if self is ServiceType.REGIONAL else 0

    @classmethod
    def from_route_type(cls, route_type: Optional[int]) -> "ServiceType":
        """Map a PTV route_type code to a service type (unknown codes are metro)."""
        if route_type == 3:
            return cls.REGIONAL
        return cls.METRO


class ConnectionValidityStatus(Enum):
    """Classification of a connection at an interchange."""

    FEASIBLE = "feasible"
    TIGHT = "tight"
    INFEASIBLE = "infeasible"


class JourneyErrorCode(Enum):
    """Engine-level error codes returned in a planning result."""

    NO_DEPARTURES_IN_WINDOW = "NO_DEPARTURES_IN_WINDOW"
    NO_FEASIBLE_CONNECTIONS = "NO_FEASIBLE_CONNECTIONS"
    API_TIMEOUT = "API_TIMEOUT"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Departure:
    """
    A single scheduled/estimated departure record from the timetable API.
    """
    run_id: Optional[str]
    service_type: ServiceType
    scheduled_departure: Optional[datetime]
    stop_id: Optional[int]
    estimated_departure: Optional[datetime] = None
    platform: Optional[str] = None
    route_id: Optional[int] = None
    route_name: Optional[str] = None
    stop_name: Optional[str] = None
    cancelled: bool = False

    @property
    def departure_time(self) -> Optional[datetime]:
        """Best known departure time (estimate if present)."""
        return self.estimated_departure or self.scheduled_departure

    @property
    def realtime_used(self) -> bool:
        return self.estimated_departure is not None


@dataclass(frozen=True)
class DeparturesResult:
    """Departures returned by one upstream departures query."""

    departures: List[Departure] = field(default_factory=list)


@dataclass(frozen=True)
class DepartureCandidate:
    """
    A first-leg departure annotated with the interchange chosen for it.
    """
    departure: Departure
    interchange_stop_id: int
    interchange_name: str
    service_type: ServiceType

    @property
    def run_id(self) -> Optional[str]:
        return self.departure.run_id

    @property
    def scheduled_departure(self) -> Optional[datetime]:
        return self.departure.scheduled_departure


@dataclass(frozen=True)
class StoppingPatternEntry:
    """One stop visited by a run."""

    stop_id: int
    scheduled_time: Optional[datetime]
    estimated_time: Optional[datetime] = None
    platform: Optional[str] = None
    stop_name: Optional[str] = None


@dataclass(frozen=True)
class StoppingPattern:
    """
    Full ordered stop sequence of one run.

    Immutable once fetched; the only source of truth for when a run reaches
    a given stop.
    """
    run_id: str
    service_type: ServiceType
    entries: Tuple[StoppingPatternEntry, ...] = ()

    def find_entry(self, stop_id: int) -> Optional[StoppingPatternEntry]:
        """Return the first entry for stop_id, or None if the run does not serve it."""
        for entry in self.entries:
            if entry.stop_id == stop_id:
                return entry
        return None

    @property
    def stop_ids(self) -> List[int]:
        return [entry.stop_id for entry in self.entries]


@dataclass(frozen=True)
class SecondLegCandidate:
    """A departure from the interchange whose stopping pattern reaches the destination."""

    departure: Departure
    destination_arrival: StoppingPatternEntry

    @property
    def destination_arrival_time(self) -> Optional[datetime]:
        return self.destination_arrival.scheduled_time


@dataclass(frozen=True)
class ConnectionValidation:
    """Outcome of validating a wait against a minimum connection time."""

    status: ConnectionValidityStatus
    warning: Optional[str] = None


@dataclass(frozen=True)
class ConnectionInfo:
    """Details of the change between two legs."""

    at_stop_id: int
    at_stop_name: str
    min_required_minutes: int
    actual_wait_minutes: int
    validity_status: ConnectionValidityStatus
    from_platform: Optional[str] = None
    to_platform: Optional[str] = None
    warning_message: Optional[str] = None

    @property
    def slack_minutes(self) -> int:
        """Connection slack (actual wait minus required minimum)."""
        return self.actual_wait_minutes - self.min_required_minutes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "at_stop_id": self.at_stop_id,
            "at_stop_name": self.at_stop_name,
            "min_required_minutes": self.min_required_minutes,
            "actual_wait_minutes": self.actual_wait_minutes,
            "from_platform": self.from_platform,
            "to_platform": self.to_platform,
            "validity_status": self.validity_status.value,
            "warning_message": self.warning_message,
        }


@dataclass(frozen=True)
class JourneyLeg:
    """
    Immutable data class representing one single-run segment of a journey.
    """

    origin_stop_id: int
    origin_stop_name: str
    destination_stop_id: int
    destination_stop_name: str
    route_id: Optional[int]
    route_name: str
    service_type: ServiceType
    run_id: str
    departure_utc: datetime
    arrival_utc: datetime
    departure_local: str
    arrival_local: str
    duration_minutes: int
    platform: Optional[str] = None
    realtime_used: bool = False
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin_stop_id": self.origin_stop_id,
            "origin_stop_name": self.origin_stop_name,
            "destination_stop_id": self.destination_stop_id,
            "destination_stop_name": self.destination_stop_name,
            "route_id": self.route_id,
            "route_name": self.route_name,
            "service_type": self.service_type.value,
            "run_id": self.run_id,
            "departure_utc": _iso(self.departure_utc),
            "arrival_utc": _iso(self.arrival_utc),
            "departure_local": self.departure_local,
            "arrival_local": self.arrival_local,
            "platform": self.platform,
            "realtime_used": self.realtime_used,
            "cancelled": self.cancelled,
            "duration_minutes": self.duration_minutes,
        }


@dataclass
class JourneyOption:
    """A complete two-leg journey. Lower score ranks first."""

    legs: List[JourneyLeg]
    connections: List[ConnectionInfo]
    total_journey_minutes: int
    arrival_utc: datetime
    score: int
    warnings: List[str] = field(default_factory=list)

    @property
    def is_feasible(self) -> bool:
        """True when no connection is infeasible."""
        return all(
            c.validity_status != ConnectionValidityStatus.INFEASIBLE
            for c in self.connections
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "legs": [leg.to_dict() for leg in self.legs],
            "connections": [c.to_dict() for c in self.connections],
            "total_journey_minutes": self.total_journey_minutes,
            "arrival_utc": _iso(self.arrival_utc),
            "warnings": list(self.warnings),
            "score": self.score,
        }


@dataclass(frozen=True)
class JourneyPlanningRequest:
    """
    Request for a two-leg journey between two stops.

    Raises:
        ValueError: if the window or result limit is not positive, or the
            origin equals the destination
    """

    origin_stop_id: int
    destination_stop_id: int
    earliest_departure: Optional[datetime] = None
    preferred_interchanges: Tuple[int, ...] = ()
    max_results: int = 3
    search_window_minutes: int = 180

    def __post_init__(self):
        if self.search_window_minutes <= 0:
            raise ValueError("search_window_minutes must be greater than zero")
        if self.max_results <= 0:
            raise ValueError("max_results must be greater than zero")
        if self.origin_stop_id == self.destination_stop_id:
            raise ValueError("origin and destination must be different stops")
        if self.earliest_departure is not None and self.earliest_departure.tzinfo is None:
            # Naive instants are taken as UTC
            object.__setattr__(
                self,
                "earliest_departure",
                self.earliest_departure.replace(tzinfo=timezone.utc),
            )
        object.__setattr__(
            self, "preferred_interchanges", tuple(self.preferred_interchanges or ())
        )


@dataclass
class PlanningMetadata:
    """Counters accumulated while planning, across all window attempts."""

    api_calls: int = 0
    cache_hits: int = 0
    execution_time_ms: int = 0
    routes_considered: int = 0
    connections_evaluated: int = 0
    infeasible_rejected: int = 0
    windows_tried: List[int] = field(default_factory=list)

    def merge(self, other: "PlanningMetadata") -> None:
        """Add another attempt's counters into this one (execution time excluded)."""
        self.api_calls += other.api_calls
        self.cache_hits += other.cache_hits
        self.routes_considered += other.routes_considered
        self.connections_evaluated += other.connections_evaluated
        self.infeasible_rejected += other.infeasible_rejected
        self.windows_tried.extend(other.windows_tried)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_calls": self.api_calls,
            "cache_hits": self.cache_hits,
            "execution_time_ms": self.execution_time_ms,
            "routes_considered": self.routes_considered,
            "connections_evaluated": self.connections_evaluated,
            "infeasible_rejected": self.infeasible_rejected,
            "windows_tried": list(self.windows_tried),
        }


@dataclass
class JourneyPlanningResult:
    """Journeys found (best first) or an error, plus planning counters."""

    journeys: List[JourneyOption] = field(default_factory=list)
    metadata: PlanningMetadata = field(default_factory=PlanningMetadata)
    error_code: Optional[JourneyErrorCode] = None
    error_message: Optional[str] = None
    search_window_minutes: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return bool(self.journeys) and self.error_code is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "journeys": [j.to_dict() for j in self.journeys],
            "metadata": self.metadata.to_dict(),
            "search_window_minutes": self.search_window_minutes,
        }
        if self.error_code is not None:
            data["error_code"] = self.error_code.value
            data["error_message"] = self.error_message
        return data
