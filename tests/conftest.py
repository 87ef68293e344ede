"""
Global pytest configuration and fixtures.
"""

import warnings
import pytest

from fakes import FakeTimetableClient
from railconnect.cache.memory_cache import MemoryCache
from railconnect.managers.config_manager import (
    APIConfig,
    CacheConfig,
    ConfigData,
    DisplayConfig,
    LoggingConfig,
    PlanningConfig,
)
from railconnect.managers.connection_policy_config import ConnectionPolicyConfigFactory
from railconnect.core.services.connection_policy import ConnectionPolicyEngine

warnings.filterwarnings("ignore", message="coroutine 'AsyncMockMixin._execute_mock_call' was never awaited")


def pytest_configure(config):
    """Configure pytest to suppress noisy mock warnings."""
    warnings.filterwarnings("ignore", message=".*AsyncMockMixin.*was never awaited.*")


@pytest.fixture
def test_config():
    """Provide a test configuration."""
    return ConfigData(
        api=APIConfig(
            dev_id="3000123",
            api_key="9c132d31-6a30-4cac-8d8b-8a1970834799",
            base_url="https://timetableapi.ptv.vic.gov.au",
            timeout_seconds=5,
            max_retries=2,
            rate_limit_per_minute=600,
        ),
        cache=CacheConfig(pattern_ttl_seconds=300, reference_ttl_hours=12, max_size=100),
        planning=PlanningConfig(),
        display=DisplayConfig(timezone="Australia/Melbourne"),
        log_settings=LoggingConfig(level="DEBUG", log_to_file=False),
    )


@pytest.fixture
def melbourne_policy():
    """Policy engine over the default Melbourne configuration."""
    return ConnectionPolicyEngine(ConnectionPolicyConfigFactory.create_melbourne_config())


@pytest.fixture
def fake_client():
    """Scripted timetable client with no data."""
    return FakeTimetableClient()


@pytest.fixture
def pattern_cache():
    """Fresh stopping-pattern cache, isolated from the process-wide one."""
    return MemoryCache(max_size=100, default_ttl=300)


@pytest.fixture
def test_api_responses():
    """Provide PTV API response payloads."""
    return {
        "departures_success": {
            "departures": [
                {
                    "stop_id": 1509,
                    "route_id": 4,
                    "run_id": 9737,
                    "run_ref": "9737",
                    "direction_id": 1,
                    "scheduled_departure_utc": "2025-08-14T03:00:00Z",
                    "estimated_departure_utc": "2025-08-14T03:02:00Z",
                    "platform_number": "2",
                },
                {
                    "stop_id": 1509,
                    "route_id": 4,
                    "run_id": 9741,
                    "run_ref": "9741",
                    "direction_id": 1,
                    "scheduled_departure_utc": "2025-08-14T02:30:00Z",
                    "estimated_departure_utc": None,
                    "platform_number": None,
                },
                {
                    "stop_id": 1509,
                    "route_id": 4,
                    "run_ref": "9745",
                    "scheduled_departure_utc": "2025-08-14T04:00:00Z",
                    "platform_number": "1",
                },
            ],
            "stops": {
                "1509": {"stop_id": 1509, "stop_name": "Bendigo Station", "route_type": 3},
            },
            "routes": {
                "4": {"route_id": 4, "route_type": 3, "route_name": "Bendigo"},
            },
            "runs": {
                "9737": {"run_ref": "9737", "route_type": 3, "status": "scheduled"},
                "9745": {"run_ref": "9745", "route_type": 3, "status": "cancelled"},
            },
        },
        "pattern_success": {
            "departures": [
                {
                    "stop_id": 1509,
                    "scheduled_departure_utc": "2025-08-14T03:00:00Z",
                    "platform_number": "2",
                },
                {
                    "stop_id": 1181,
                    "scheduled_departure_utc": "2025-08-14T05:18:00Z",
                    "estimated_departure_utc": "2025-08-14T05:20:00Z",
                    "platform_number": "3",
                },
            ],
            "stops": {
                "1509": {"stop_id": 1509, "stop_name": "Bendigo Station"},
                "1181": {"stop_id": 1181, "stop_name": "Southern Cross Station"},
            },
        },
        "search_success": {
            "stops": [
                {"stop_id": 1509, "stop_name": "Bendigo Station", "route_type": 3},
                {"stop_id": 20831, "stop_name": "Bendigo Bus Stop", "route_type": 2},
            ],
        },
        "routes_success": {
            "routes": [
                {"route_id": 4, "route_type": 3, "route_name": "Bendigo"},
            ],
        },
    }
