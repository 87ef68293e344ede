"""
Unit tests for the journey timing engine.

Covers window expansion, error mapping, candidate limits, infeasible
filtering and metadata accounting against a scripted timetable client.
"""

import pytest

from fakes import T0, at, make_departure, make_pattern
from railconnect.api.exceptions import APIHTTPException, APITimeoutException, NetworkException
from railconnect.core.services.journey_timing_engine import (
    EXPANDED_WINDOW_WARNING,
    MAX_SEARCH_WINDOW_MINUTES,
    JourneyTimingEngine,
    expansion_windows,
)
from railconnect.managers.connection_policy_config import ConnectionPolicyConfig, StationOverride
from railconnect.models.journey_data import (
    ConnectionValidityStatus,
    JourneyErrorCode,
    JourneyPlanningRequest,
    ServiceType,
)

METRO = ServiceType.METRO
REGIONAL = ServiceType.REGIONAL


def script_regional_trip(fake_client, connection_minutes=150, arrival_minutes=170, serves_destination=True):
    """Bendigo (1509) -> Southern Cross (1181) by V/Line, then a metro run towards Flinders Street (1071)."""
    fake_client.add_departures(REGIONAL, 1509, [make_departure("9737", 1509, 0, REGIONAL)])
    fake_client.add_pattern(make_pattern("9737", [(1509, 0), (1181, 138)], REGIONAL))
    fake_client.add_departures(METRO, 1181, [make_departure("M1", 1181, connection_minutes)])
    last_stop = 1071 if serves_destination else 1155
    fake_client.add_pattern(make_pattern("M1", [(1181, connection_minutes), (last_stop, arrival_minutes)]))


def request(**kwargs):
    params = {"origin_stop_id": 1509, "destination_stop_id": 1071, "earliest_departure": T0}
    params.update(kwargs)
    return JourneyPlanningRequest(**params)


@pytest.fixture
def engine(fake_client, pattern_cache):
    return JourneyTimingEngine(fake_client, pattern_cache=pattern_cache)


class TestExpansionWindows:
    """Test the expansion schedule."""

    @pytest.mark.parametrize("original,expected", [
        (180, [240, 360, 480]),
        (240, [360, 480]),
        (300, [360, 480]),
        (480, []),
        (600, []),
    ])
    def test_steps_strictly_wider_than_original(self, original, expected):
        assert expansion_windows(original) == expected

    def test_never_exceeds_cap(self):
        assert all(w <= MAX_SEARCH_WINDOW_MINUTES for w in expansion_windows(1))


class TestPlanning:
    """Test successful planning."""

    @pytest.mark.asyncio
    async def test_journey_found_in_initial_window(self, engine, fake_client):
        script_regional_trip(fake_client)

        result = await engine.plan_two_leg_journey(request())

        assert result.is_success
        assert result.search_window_minutes == 180
        assert result.metadata.windows_tried == [180]
        journey = result.journeys[0]
        assert journey.connections[0].validity_status == ConnectionValidityStatus.TIGHT
        assert journey.total_journey_minutes == 170

    @pytest.mark.asyncio
    async def test_metadata_counters(self, engine, fake_client):
        script_regional_trip(fake_client)

        result = await engine.plan_two_leg_journey(request())
        metadata = result.metadata

        # metro + regional origin queries, first-leg pattern, interchange departures, second-leg pattern
        assert metadata.api_calls == 5
        assert metadata.cache_hits == 0
        assert metadata.routes_considered == 1
        assert metadata.connections_evaluated == 1
        assert metadata.execution_time_ms >= 0

    @pytest.mark.asyncio
    async def test_patterns_cached_across_requests(self, engine, fake_client):
        script_regional_trip(fake_client)

        await engine.plan_two_leg_journey(request())
        second = await engine.plan_two_leg_journey(request())

        assert second.metadata.cache_hits == 2
        assert second.metadata.api_calls == 3
        assert len(fake_client.pattern_calls) == 2

    @pytest.mark.asyncio
    async def test_default_departure_time_is_now(self, engine, fake_client):
        result = await engine.plan_two_leg_journey(request(earliest_departure=None))

        assert fake_client.departure_calls[0][2] is not None
        assert result.error_code == JourneyErrorCode.NO_DEPARTURES_IN_WINDOW

    @pytest.mark.asyncio
    async def test_preferred_interchange(self, engine, fake_client):
        fake_client.add_departures(METRO, 1162, [make_departure("R1", 1162, 0)])
        fake_client.add_pattern(make_pattern("R1", [(1162, 0), (1155, 10), (1071, 20)]))
        fake_client.add_departures(METRO, 1155, [make_departure("X", 1155, 30)])
        fake_client.add_pattern(make_pattern("X", [(1155, 30), (1104, 45)]))

        result = await engine.plan_two_leg_journey(
            request(origin_stop_id=1162, destination_stop_id=1104, preferred_interchanges=(1155,))
        )

        assert result.is_success
        assert result.journeys[0].connections[0].at_stop_id == 1155
        assert result.journeys[0].connections[0].at_stop_name == "Preferred Interchange"

    @pytest.mark.asyncio
    async def test_candidate_limit_and_result_limit(self, engine, fake_client):
        fake_client.add_departures(METRO, 1162, [make_departure(f"R{i}", 1162, i * 5) for i in range(5)])
        for i in range(5):
            fake_client.add_pattern(make_pattern(f"R{i}", [(1162, i * 5), (1071, i * 5 + 20)]))
        fake_client.add_departures(METRO, 1071, [make_departure("X", 1071, 60)])
        fake_client.add_pattern(make_pattern("X", [(1071, 60), (1155, 75)]))

        result = await engine.plan_two_leg_journey(
            request(origin_stop_id=1162, destination_stop_id=1155, max_results=2)
        )

        first_leg_runs = {run for run, _ in fake_client.pattern_calls if run.startswith("R")}
        assert first_leg_runs == {"R0", "R1", "R2"}
        assert result.metadata.routes_considered == 3
        assert result.metadata.connections_evaluated == 3
        assert len(result.journeys) == 2
        scores = [j.score for j in result.journeys]
        assert scores == sorted(scores)

    @pytest.mark.asyncio
    async def test_infeasible_connections_rejected(self, fake_client, pattern_cache):
        policy = ConnectionPolicyConfig(station_overrides={
            "1181": StationOverride(
                name="Southern Cross Station",
                policies={"regional_to_metro": 5, "cross_platform": 15},
                platform_groups={"regional": ["3"], "metro": ["10"]},
            )
        })
        engine = JourneyTimingEngine(fake_client, policy_config=policy, pattern_cache=pattern_cache)
        fake_client.add_departures(REGIONAL, 1509, [make_departure("9737", 1509, 0, REGIONAL)])
        fake_client.add_pattern(make_pattern("9737", [(1509, 0), (1181, 138, "3")], REGIONAL))
        fake_client.add_departures(METRO, 1181, [
            make_departure("quick", 1181, 145, platform="10"),
            make_departure("relaxed", 1181, 160, platform="10"),
        ])
        fake_client.add_pattern(make_pattern("quick", [(1181, 145), (1071, 165)]))
        fake_client.add_pattern(make_pattern("relaxed", [(1181, 160), (1071, 180)]))

        result = await engine.plan_two_leg_journey(request())

        assert [j.legs[1].run_id for j in result.journeys] == ["relaxed"]
        assert result.metadata.infeasible_rejected == 1
        assert result.journeys[0].connections[0].min_required_minutes == 15

    @pytest.mark.asyncio
    async def test_candidate_failures_do_not_fail_request(self, engine, fake_client):
        script_regional_trip(fake_client)
        fake_client.fail_pattern("9737", NetworkException("reset"))

        result = await engine.plan_two_leg_journey(request(search_window_minutes=480))

        assert result.error_code == JourneyErrorCode.NO_FEASIBLE_CONNECTIONS
        assert result.metadata.windows_tried == [480]

    @pytest.mark.asyncio
    async def test_unexpected_candidate_error_keeps_other_journeys(self, engine, fake_client):
        fake_client.add_departures(METRO, 1162, [
            make_departure("BAD", 1162, 0),
            make_departure("GOOD", 1162, 5),
        ])
        fake_client.fail_pattern("BAD", ValueError("Expecting value: line 1 column 1 (char 0)"))
        fake_client.add_pattern(make_pattern("GOOD", [(1162, 5), (1071, 25)]))
        fake_client.add_departures(METRO, 1071, [make_departure("X", 1071, 40)])
        fake_client.add_pattern(make_pattern("X", [(1071, 40), (1155, 55)]))

        result = await engine.plan_two_leg_journey(
            request(origin_stop_id=1162, destination_stop_id=1155)
        )

        assert result.is_success
        assert result.error_code is None
        assert [j.legs[0].run_id for j in result.journeys] == ["GOOD"]
        assert result.metadata.windows_tried == [180]

    @pytest.mark.asyncio
    async def test_interchange_reached_before_departure_skipped(self, engine, fake_client):
        fake_client.add_departures(REGIONAL, 1509, [make_departure("odd", 1509, 30, REGIONAL)])
        fake_client.add_pattern(make_pattern("odd", [(1181, 10), (1509, 30)], REGIONAL))

        result = await engine.plan_two_leg_journey(request(search_window_minutes=480))

        assert result.error_code == JourneyErrorCode.NO_FEASIBLE_CONNECTIONS
        assert not any(call[1] == 1181 for call in fake_client.departure_calls)


class TestWindowExpansion:
    """Test the bounded window expansion."""

    @pytest.mark.asyncio
    async def test_expansion_finds_later_connection(self, engine, fake_client):
        script_regional_trip(fake_client, connection_minutes=200, arrival_minutes=220)

        result = await engine.plan_two_leg_journey(request())

        assert result.is_success
        assert result.search_window_minutes == 240
        assert result.metadata.windows_tried == [180, 240]
        assert len(result.journeys) == 1
        assert result.journeys[0].warnings[-1] == EXPANDED_WINDOW_WARNING.format(minutes=240)
        assert "extended 240-minute search window" in result.journeys[0].warnings[-1]

    @pytest.mark.asyncio
    async def test_expansion_counters_merged(self, engine, fake_client):
        script_regional_trip(fake_client, connection_minutes=200, arrival_minutes=220)

        result = await engine.plan_two_leg_journey(request())

        # initial: 2 origin + first-leg pattern + interchange; expanded: 2 origin + interchange + pattern
        assert result.metadata.api_calls == 8
        assert result.metadata.cache_hits == 1
        assert result.metadata.routes_considered == 2

    @pytest.mark.asyncio
    async def test_expansion_exhausted(self, engine, fake_client):
        script_regional_trip(fake_client, serves_destination=False)

        result = await engine.plan_two_leg_journey(request())

        assert result.error_code == JourneyErrorCode.NO_FEASIBLE_CONNECTIONS
        assert result.journeys == []
        assert result.search_window_minutes == 480
        assert result.metadata.windows_tried == [180, 240, 360, 480]

    @pytest.mark.asyncio
    async def test_windows_tried_strictly_increase(self, engine, fake_client):
        script_regional_trip(fake_client, serves_destination=False)

        result = await engine.plan_two_leg_journey(request(search_window_minutes=300))
        windows = result.metadata.windows_tried

        assert windows == [300, 360, 480]
        assert all(a < b for a, b in zip(windows, windows[1:]))

    @pytest.mark.asyncio
    async def test_failed_expansion_step_is_skipped(self, engine, fake_client):
        script_regional_trip(fake_client, connection_minutes=300, arrival_minutes=320)
        original = fake_client.get_departures
        origin_calls = []

        async def flaky_get_departures(service_type, stop_id, window_start=None, max_results=20):
            if stop_id == 1509 and service_type == REGIONAL:
                origin_calls.append(stop_id)
                if len(origin_calls) == 2:
                    raise APITimeoutException("timeout")
            return await original(service_type, stop_id, window_start, max_results)

        fake_client.get_departures = flaky_get_departures

        result = await engine.plan_two_leg_journey(request())

        assert result.is_success
        assert result.search_window_minutes == 360
        assert result.metadata.windows_tried == [180, 240, 360]

    @pytest.mark.asyncio
    async def test_no_departures_anywhere(self, engine, fake_client):
        result = await engine.plan_two_leg_journey(request())

        assert result.error_code == JourneyErrorCode.NO_DEPARTURES_IN_WINDOW
        assert result.metadata.windows_tried == [180, 240, 360, 480]
        assert result.metadata.api_calls == 8


class TestErrors:
    """Test error mapping for origin failures."""

    @pytest.mark.asyncio
    async def test_origin_timeout(self, engine, fake_client):
        fake_client.fail_departures(METRO, 1509, APITimeoutException("timeout"))

        result = await engine.plan_two_leg_journey(request())

        assert result.error_code == JourneyErrorCode.API_TIMEOUT
        assert result.journeys == []
        assert result.metadata.windows_tried == [180]
        assert "1509" in result.error_message

    @pytest.mark.asyncio
    async def test_origin_http_error(self, engine, fake_client):
        fake_client.fail_departures(METRO, 1509, APIHTTPException("boom", 500))

        result = await engine.plan_two_leg_journey(request())

        assert result.error_code == JourneyErrorCode.UPSTREAM_ERROR
        assert result.to_dict()["error_code"] == "UPSTREAM_ERROR"

    @pytest.mark.asyncio
    async def test_regional_fallback_failure_keeps_counters(self, engine, fake_client):
        fake_client.fail_departures(REGIONAL, 1509, NetworkException("reset"))

        result = await engine.plan_two_leg_journey(request())

        assert result.error_code == JourneyErrorCode.UPSTREAM_ERROR
        assert result.metadata.api_calls == 1


class TestFromConfig:
    """Test construction from application configuration."""

    def test_from_config(self, fake_client, test_config, pattern_cache):
        engine = JourneyTimingEngine.from_config(fake_client, test_config, pattern_cache)

        assert engine.planning == test_config.planning
        assert engine.display == test_config.display
        assert engine.pattern_ttl_seconds == test_config.cache.pattern_ttl_seconds
        assert engine.policy.config == test_config.connection_policy
