"""
Unit tests for the second leg finder.
"""

import pytest

from fakes import at, make_departure, make_pattern
from railconnect.api.exceptions import NetworkException
from railconnect.core.services.second_leg_finder import SecondLegFinder
from railconnect.core.services.stopping_pattern_resolver import StoppingPatternResolver
from railconnect.models.journey_data import PlanningMetadata, ServiceType


@pytest.fixture
def finder(fake_client, pattern_cache):
    resolver = StoppingPatternResolver(fake_client, pattern_cache)
    return SecondLegFinder(fake_client, resolver, max_results=15)


class TestFindConnections:
    """Test onward connection discovery."""

    @pytest.mark.asyncio
    async def test_keeps_only_runs_serving_destination(self, finder, fake_client):
        fake_client.add_departures(ServiceType.METRO, 1181, [
            make_departure("serves", 1181, 150, platform="10"),
            make_departure("elsewhere", 1181, 155),
        ])
        fake_client.add_pattern(make_pattern("serves", [(1181, 150), (1071, 170)]))
        fake_client.add_pattern(make_pattern("elsewhere", [(1181, 155), (1155, 160)]))
        counters = PlanningMetadata()

        connections = await finder.find_connections(1181, 1071, at(150), at(180), counters)

        assert [c.departure.run_id for c in connections] == ["serves"]
        assert connections[0].destination_arrival_time == at(170)
        assert counters.api_calls == 3
        assert fake_client.departure_calls[0][1:] == (1181, at(150), 15)

    @pytest.mark.asyncio
    async def test_drops_departures_outside_window_and_cancelled(self, finder, fake_client):
        fake_client.add_departures(ServiceType.METRO, 1181, [
            make_departure(None, 1181, 152),
            make_departure("cancelled", 1181, 155, cancelled=True),
            make_departure("too-late", 1181, 200),
        ])

        connections = await finder.find_connections(1181, 1071, at(150), at(180), PlanningMetadata())

        assert connections == []
        assert fake_client.pattern_calls == []

    @pytest.mark.asyncio
    async def test_destination_must_be_after_departure(self, finder, fake_client):
        fake_client.add_departures(ServiceType.METRO, 1181, [make_departure("backwards", 1181, 160)])
        fake_client.add_pattern(make_pattern("backwards", [(1071, 140), (1181, 160)]))

        connections = await finder.find_connections(1181, 1071, at(150), at(180), PlanningMetadata())

        assert connections == []

    @pytest.mark.asyncio
    async def test_pattern_failures_skipped(self, finder, fake_client):
        fake_client.add_departures(ServiceType.METRO, 1181, [
            make_departure("broken", 1181, 151),
            make_departure("good", 1181, 152),
        ])
        fake_client.fail_pattern("broken", NetworkException("reset"))
        fake_client.add_pattern(make_pattern("good", [(1181, 152), (1071, 171)]))

        connections = await finder.find_connections(1181, 1071, at(150), at(180), PlanningMetadata())

        assert [c.departure.run_id for c in connections] == ["good"]

    @pytest.mark.asyncio
    async def test_cached_patterns_count_as_hits(self, finder, fake_client):
        fake_client.add_departures(ServiceType.METRO, 1181, [make_departure("serves", 1181, 150)])
        fake_client.add_pattern(make_pattern("serves", [(1181, 150), (1071, 170)]))
        counters = PlanningMetadata()

        await finder.find_connections(1181, 1071, at(150), at(180), counters)
        await finder.find_connections(1181, 1071, at(150), at(180), counters)

        assert counters.cache_hits == 1
        assert len(fake_client.pattern_calls) == 1
