"""
Stopping Pattern Resolver

Resolves run stopping patterns through a short-lived cache. Patterns are the
only source of arrival times used by the journey timing engine.
"""

import logging
from typing import Optional

from ...cache.memory_cache import CacheKey, MemoryCache
from ...models.journey_data import (
    PlanningMetadata,
    ServiceType,
    StoppingPattern,
    StoppingPatternEntry,
)
from ..interfaces.i_timetable_client import ITimetableClient

logger = logging.getLogger(__name__)

PATTERN_CACHE_TTL_SECONDS = 300

# Shared by every engine in the process unless a cache is injected
_default_pattern_cache = MemoryCache(max_size=1000, default_ttl=PATTERN_CACHE_TTL_SECONDS)


def get_default_pattern_cache() -> MemoryCache:
    return _default_pattern_cache


class StoppingPatternResolver:
    """Cached access to run stopping patterns."""

    def __init__(
        self,
        client: ITimetableClient,
        cache: Optional[MemoryCache] = None,
        ttl_seconds: Optional[float] = None,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.client = client
        self.cache = cache if cache is not None else get_default_pattern_cache()
        self.ttl_seconds = ttl_seconds
        self.logger = log or logger

    async def resolve(self, run_id: str, service_type: ServiceType, counters: PlanningMetadata) -> StoppingPattern:
        """
        Get the stopping pattern of a run.

        A fresh cached pattern is returned without touching the network;
        otherwise the pattern is fetched and cached.

        Raises:
            TimetableAPIException: When the upstream fetch fails
        """
        key = CacheKey.pattern_key(run_id, service_type.value)
        cached = self.cache.get(key)
        if cached is not None:
            counters.cache_hits += 1
            self.logger.debug(f"Pattern cache hit for run {run_id}")
            return cached

        pattern = await self.client.get_run_pattern(run_id, service_type)
        counters.api_calls += 1
        self.cache.put(key, pattern, self.ttl_seconds)
        self.logger.debug(f"Fetched pattern for run {run_id} ({len(pattern.entries)} stops)")
        return pattern

    @staticmethod
    def find_interchange_arrival(pattern: StoppingPattern, stop_id: int) -> Optional[StoppingPatternEntry]:
        """Entry at which the run reaches the interchange, or None if it does not stop there."""
        return pattern.find_entry(stop_id)

    @staticmethod
    def find_destination_arrival(pattern: StoppingPattern, stop_id: int) -> Optional[StoppingPatternEntry]:
        """Entry at which the run reaches the destination, or None if it does not stop there."""
        return pattern.find_entry(stop_id)
