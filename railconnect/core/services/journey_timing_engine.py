"""
Journey Timing Engine

Plans two-leg journeys (origin -> interchange -> destination) whose
connections are realizable, using stopping-pattern arrival times and
minimum connection policies. When the requested window yields nothing the
engine retries with progressively wider windows, up to a hard cap.
"""

import asyncio
import logging
import time
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ...api.exceptions import APITimeoutException, TimetableAPIException
from ...cache.memory_cache import MemoryCache
from ...managers.config_manager import ConfigData, DisplayConfig, PlanningConfig
from ...managers.connection_policy_config import ConnectionPolicyConfig
from ...models.journey_data import (
    DepartureCandidate,
    JourneyErrorCode,
    JourneyOption,
    JourneyPlanningRequest,
    JourneyPlanningResult,
    PlanningMetadata,
    ServiceType,
)
from ...utils.helpers import add_minutes, utc_now
from ...utils.logging_utils import get_request_logger
from ..interfaces.i_timetable_client import ITimetableClient
from .candidate_leg_finder import CandidateLegFinder
from .connection_policy import ConnectionPolicyEngine
from .journey_assembler import JourneyAssembler
from .second_leg_finder import SecondLegFinder
from .stopping_pattern_resolver import StoppingPatternResolver

logger = logging.getLogger(__name__)

WINDOW_EXPANSION_STEPS_MINUTES = (240, 360, 480)
MAX_SEARCH_WINDOW_MINUTES = 480
EXPANDED_SEARCH_MAX_RESULTS = 1
EXPANDED_WINDOW_WARNING = (
    "Journey found using extended {minutes}-minute search window due to long travel distance."
)


class PlanningState(Enum):
    """States of the window-expansion controller."""

    INITIAL_ATTEMPT = "initial_attempt"
    EXPANDING = "expanding"
    DONE = "done"
    FAILED = "failed"


def expansion_windows(original_window_minutes: int) -> List[int]:
    """Expansion steps strictly wider than the original window, capped."""
    return [
        step
        for step in WINDOW_EXPANSION_STEPS_MINUTES
        if original_window_minutes < step <= MAX_SEARCH_WINDOW_MINUTES
    ]


class JourneyTimingEngine:
    """
    Connection-aware two-leg journey planner.

    Components are created per request so that every log line of a request
    carries its id; only the stopping-pattern cache outlives a request.
    """

    def __init__(
        self,
        client: ITimetableClient,
        policy_config: Optional[ConnectionPolicyConfig] = None,
        planning: Optional[PlanningConfig] = None,
        display: Optional[DisplayConfig] = None,
        pattern_cache: Optional[MemoryCache] = None,
        pattern_ttl_seconds: Optional[float] = None,
    ):
        """
        Initialize the engine.

        Args:
            client: Upstream timetable client
            policy_config: Connection policy (defaults to the Melbourne policy)
            planning: Planning limits
            display: Local-time rendering settings
            pattern_cache: Stopping-pattern cache (defaults to the process-wide cache)
            pattern_ttl_seconds: TTL for cached patterns (defaults to the cache's TTL)
        """
        self.client = client
        self.policy = ConnectionPolicyEngine(policy_config)
        self.planning = planning or PlanningConfig()
        self.display = display or DisplayConfig()
        self.pattern_cache = pattern_cache
        self.pattern_ttl_seconds = pattern_ttl_seconds

    @classmethod
    def from_config(cls, client: ITimetableClient, config: ConfigData,
                    pattern_cache: Optional[MemoryCache] = None) -> "JourneyTimingEngine":
        """Create an engine from the application configuration."""
        return cls(
            client,
            policy_config=config.connection_policy,
            planning=config.planning,
            display=config.display,
            pattern_cache=pattern_cache,
            pattern_ttl_seconds=config.cache.pattern_ttl_seconds,
        )

    async def plan_two_leg_journey(self, request: JourneyPlanningRequest) -> JourneyPlanningResult:
        """
        Plan two-leg journeys for a request.

        Expected failures are reported through the result's error code; this
        method does not raise for them.

        Returns:
            JourneyPlanningResult: Journeys sorted best first, or an error
        """
        log = get_request_logger(__name__)
        started = time.monotonic()
        earliest = request.earliest_departure or utc_now()
        totals = PlanningMetadata()
        found_departures = False

        log.info(
            f"Planning {request.origin_stop_id} -> {request.destination_stop_id} "
            f"from {earliest.isoformat()} ({request.search_window_minutes} min window)"
        )

        state = PlanningState.INITIAL_ATTEMPT
        journeys: List[JourneyOption] = []
        window_used = request.search_window_minutes

        try:
            attempt = PlanningMetadata()
            try:
                candidates = await self._find_origin_candidates(
                    request, earliest, request.search_window_minutes, attempt, log
                )
            except APITimeoutException as e:
                totals.merge(attempt)
                log.error(f"Timed out fetching origin departures: {e}")
                return self._error_result(
                    JourneyErrorCode.API_TIMEOUT,
                    f"Timed out fetching departures from stop {request.origin_stop_id}",
                    totals, started, window_used,
                )
            except Exception as e:
                totals.merge(attempt)
                log.error(f"Failed to fetch origin departures: {e}")
                return self._error_result(
                    JourneyErrorCode.UPSTREAM_ERROR,
                    f"Upstream error fetching departures from stop {request.origin_stop_id}: {e}",
                    totals, started, window_used,
                )
            found_departures = bool(candidates)
            journeys = await self._evaluate_window(
                request, candidates, earliest, request.search_window_minutes,
                request.max_results, attempt, log,
            )
            totals.merge(attempt)
            state = PlanningState.DONE if journeys else PlanningState.EXPANDING

            if state is PlanningState.EXPANDING:
                state = PlanningState.FAILED
                for window in expansion_windows(request.search_window_minutes):
                    window_used = window
                    log.info(f"No journeys found, expanding search window to {window} minutes")
                    attempt = PlanningMetadata()
                    try:
                        candidates = await self._find_origin_candidates(
                            request, earliest, window, attempt, log
                        )
                    except Exception as e:
                        log.warning(f"Expanded search ({window} min) failed: {e}")
                        candidates = []
                    journeys = await self._evaluate_window(
                        request, candidates, earliest, window,
                        EXPANDED_SEARCH_MAX_RESULTS, attempt, log,
                    )
                    totals.merge(attempt)
                    found_departures = found_departures or bool(candidates)

                    if journeys:
                        journeys[0].warnings.append(EXPANDED_WINDOW_WARNING.format(minutes=window))
                        state = PlanningState.DONE
                        break

        except Exception as e:
            log.exception(f"Unexpected planning failure: {e}")
            return self._error_result(
                JourneyErrorCode.UPSTREAM_ERROR, f"Unexpected planning failure: {e}",
                totals, started, window_used,
            )

        if state is PlanningState.FAILED:
            if found_departures:
                code = JourneyErrorCode.NO_FEASIBLE_CONNECTIONS
                message = (
                    f"No feasible two-leg journey from {request.origin_stop_id} to "
                    f"{request.destination_stop_id} within {window_used} minutes"
                )
            else:
                code = JourneyErrorCode.NO_DEPARTURES_IN_WINDOW
                message = f"No departures from stop {request.origin_stop_id} within {window_used} minutes"
            log.info(f"Planning failed: {code.value}")
            return self._error_result(code, message, totals, started, window_used)

        totals.execution_time_ms = self._elapsed_ms(started)
        log.info(
            f"Found {len(journeys)} journeys using a {window_used} minute window "
            f"({totals.api_calls} API calls, {totals.cache_hits} cache hits)"
        )
        return JourneyPlanningResult(
            journeys=journeys, metadata=totals, search_window_minutes=window_used
        )

    async def _find_origin_candidates(
        self,
        request: JourneyPlanningRequest,
        earliest: datetime,
        window_minutes: int,
        counters: PlanningMetadata,
        log: logging.LoggerAdapter,
    ) -> List[DepartureCandidate]:
        """Fetch first-leg candidates for one window. Upstream errors propagate."""
        counters.windows_tried.append(window_minutes)
        candidate_finder = CandidateLegFinder(
            self.client, self.policy, self.planning.origin_departures_max_results, log
        )
        return await candidate_finder.find_candidates(
            request.origin_stop_id, earliest, add_minutes(earliest, window_minutes),
            request.preferred_interchanges, counters,
        )

    async def _evaluate_window(
        self,
        request: JourneyPlanningRequest,
        candidates: List[DepartureCandidate],
        earliest: datetime,
        window_minutes: int,
        max_results: int,
        counters: PlanningMetadata,
        log: logging.LoggerAdapter,
    ) -> List[JourneyOption]:
        """
        Turn first-leg candidates into journeys.

        Failures while evaluating a single candidate are logged and
        contribute nothing.

        Returns:
            Feasible journeys sorted by score and truncated to ``max_results``
        """
        if not candidates:
            return []

        window_end = add_minutes(earliest, window_minutes)
        resolver = StoppingPatternResolver(
            self.client, self.pattern_cache, self.pattern_ttl_seconds, log
        )
        second_leg_finder = SecondLegFinder(
            self.client, resolver, self.planning.interchange_departures_max_results, log
        )
        assembler = JourneyAssembler(
            self.policy, self.display, self.planning.tight_connection_penalty_minutes
        )

        candidates = candidates[: self.planning.first_leg_candidate_limit]
        counters.routes_considered += len(candidates)
        semaphore = asyncio.Semaphore(self.planning.max_concurrent_candidates)

        async def evaluate(candidate: DepartureCandidate) -> List[JourneyOption]:
            async with semaphore:
                return await self._evaluate_candidate(
                    candidate, request.destination_stop_id, window_end,
                    resolver, second_leg_finder, assembler, counters, log,
                )

        batches = await asyncio.gather(*(evaluate(c) for c in candidates))
        journeys = [journey for batch in batches for journey in batch]

        feasible = [journey for journey in journeys if journey.is_feasible]
        counters.infeasible_rejected += len(journeys) - len(feasible)

        feasible.sort(key=lambda journey: journey.score)
        log.debug(f"Window {window_minutes} min: {len(feasible)} feasible of {len(journeys)} assembled")
        return feasible[:max_results]

    async def _evaluate_candidate(
        self,
        candidate: DepartureCandidate,
        destination_stop_id: int,
        window_end: datetime,
        resolver: StoppingPatternResolver,
        second_leg_finder: SecondLegFinder,
        assembler: JourneyAssembler,
        counters: PlanningMetadata,
        log: logging.LoggerAdapter,
    ) -> List[JourneyOption]:
        interchange_id = candidate.interchange_stop_id
        if interchange_id == destination_stop_id:
            log.debug(f"Run {candidate.run_id}: interchange is the destination, skipping")
            return []

        try:
            pattern = await resolver.resolve(candidate.run_id, candidate.service_type, counters)
            arrival = resolver.find_interchange_arrival(pattern, interchange_id)
            if arrival is None or arrival.scheduled_time is None:
                log.debug(f"Run {candidate.run_id} does not stop at interchange {interchange_id}")
                return []
            if arrival.scheduled_time <= candidate.scheduled_departure:
                log.debug(f"Run {candidate.run_id} reaches {interchange_id} before departing, skipping")
                return []

            min_connection = self.policy.get_min_connection_time(
                interchange_id, candidate.service_type, ServiceType.METRO,
                from_platform=arrival.platform,
            )
            earliest_connection = add_minutes(arrival.scheduled_time, min_connection)

            second_legs = await second_leg_finder.find_connections(
                interchange_id, destination_stop_id, earliest_connection, window_end, counters
            )
            counters.connections_evaluated += len(second_legs)

            journeys = []
            for second_leg in second_legs[: self.planning.second_legs_per_candidate]:
                refined_minimum = self.policy.get_min_connection_time(
                    interchange_id,
                    candidate.service_type,
                    second_leg.departure.service_type,
                    from_platform=arrival.platform,
                    to_platform=second_leg.departure.platform,
                )
                journey = assembler.assemble(
                    candidate, second_leg, arrival, refined_minimum, destination_stop_id
                )
                if journey is not None:
                    journeys.append(journey)
            return journeys

        except TimetableAPIException as e:
            log.warning(f"Skipping candidate run {candidate.run_id}: {e}")
            return []
        except Exception as e:
            log.exception(f"Error evaluating candidate run {candidate.run_id}: {e}")
            return []

    def _error_result(
        self,
        code: JourneyErrorCode,
        message: str,
        metadata: PlanningMetadata,
        started: float,
        window_minutes: int,
    ) -> JourneyPlanningResult:
        metadata.execution_time_ms = self._elapsed_ms(started)
        return JourneyPlanningResult(
            journeys=[],
            metadata=metadata,
            error_code=code,
            error_message=message,
            search_window_minutes=window_minutes,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
