"""
PTV Timetable API manager.

This module handles all communication with the PTV Timetable API v3,
including request signing, rate limiting, retries with backoff, error
handling, and parsing of departures and stopping patterns.
"""

import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from ..cache.memory_cache import CacheKey, MemoryCache
from ..core.interfaces.i_timetable_client import ITimetableClient
from ..managers.config_manager import APIConfig, CacheConfig
from ..models.journey_data import (
    Departure,
    DeparturesResult,
    ServiceType,
    StoppingPattern,
    StoppingPatternEntry,
)
from ..utils.helpers import format_utc, parse_utc
from .exceptions import (
    APIHTTPException,
    APITimeoutException,
    AuthenticationException,
    NetworkException,
    RateLimitException,
)
from .request_signing import build_signed_url

logger = logging.getLogger(__name__)

# PTV "expand" codes
EXPAND_STOP = 1
EXPAND_ROUTE = 2
EXPAND_RUN = 3

MAX_BACKOFF_SECONDS = 8.0
MAX_JITTER_SECONDS = 0.25


class RateLimiter:
    """Rate limiter for API calls to respect upstream limits."""

    def __init__(self, calls_per_minute: int):
        """
        Initialize rate limiter.

        Args:
            calls_per_minute: Maximum calls allowed per minute
        """
        self.calls_per_minute = calls_per_minute
        self.calls: List[datetime] = []
        self.lock = asyncio.Lock()

    async def wait_if_needed(self):
        """Wait if rate limit would be exceeded."""
        async with self.lock:
            now = datetime.now()
            self.calls = [
                call_time
                for call_time in self.calls
                if now - call_time < timedelta(minutes=1)
            ]

            if len(self.calls) >= self.calls_per_minute:
                oldest_call = min(self.calls)
                wait_time = 60 - (now - oldest_call).total_seconds()
                if wait_time > 0:
                    logger.info(f"Rate limit reached, waiting {wait_time:.1f} seconds")
                    await asyncio.sleep(wait_time)

            self.calls.append(now)


def parse_retry_after(header: Optional[str]) -> Optional[float]:
    """
    Parse a Retry-After header (seconds or HTTP date) into seconds.
    """
    if not header:
        return None
    try:
        return max(0.0, float(header))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(header)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class TimetableAPIManager(ITimetableClient):
    """
    Handles PTV Timetable API communications.

    Provides departures and stopping patterns for the journey timing engine,
    plus cached stop searches, while respecting rate limits and retrying
    transient failures.
    """

    def __init__(self, config: APIConfig, cache_config: Optional[CacheConfig] = None):
        """
        Initialize API manager.

        Args:
            config: API credentials and transport settings
            cache_config: Reference-data cache settings
        """
        self.config = config
        cache_config = cache_config or CacheConfig()
        self.session: Optional[aiohttp.ClientSession] = None
        self.rate_limiter = RateLimiter(config.rate_limit_per_minute)
        self.reference_cache = MemoryCache(
            max_size=cache_config.max_size,
            default_ttl=cache_config.reference_ttl_hours * 3600,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        self.session = aiohttp.ClientSession(
            timeout=timeout, headers={"User-Agent": "RailConnect/1.0"}
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.session:
            await self.session.close()
            self.session = None

    def _retry_delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        """Backoff before retry number ``attempt`` (1-based)."""
        server_delay = parse_retry_after(retry_after)
        if server_delay is not None:
            return server_delay
        base_delay = min(float(2 ** (attempt - 1)), MAX_BACKOFF_SECONDS)
        return base_delay + random.uniform(0, MAX_JITTER_SECONDS)

    async def _fetch(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Perform a signed GET request and decode the JSON body.

        Retries 429/5xx responses, timeouts and connection errors up to
        ``max_retries`` times.

        Raises:
            APITimeoutException: Timed out on every attempt
            AuthenticationException: Credentials rejected (401/403)
            RateLimitException: Still rate limited after retries
            APIHTTPException: Any other non-success status, or a body that is not JSON
            NetworkException: Connection failures, or session not initialized
        """
        if not self.session:
            raise NetworkException("Session not initialized", path)

        url = build_signed_url(
            self.config.base_url, path, params or {}, self.config.dev_id, self.config.api_key
        )
        max_retries = self.config.max_retries
        attempt = 0

        while True:
            await self.rate_limiter.wait_if_needed()
            try:
                async with self.session.get(url) as response:
                    if response.status == 200:
                        try:
                            return await response.json()
                        except (aiohttp.ContentTypeError, ValueError) as e:
                            raise APIHTTPException(
                                f"Invalid JSON response: {e}", response.status, path
                            ) from e

                    if response.status in (401, 403):
                        raise AuthenticationException(
                            "Invalid API credentials", response.status, path
                        )

                    retryable = response.status == 429 or response.status >= 500
                    if retryable and attempt < max_retries:
                        attempt += 1
                        delay = self._retry_delay(attempt, response.headers.get("Retry-After"))
                        logger.warning(
                            f"HTTP {response.status} for {path}, retry {attempt}/{max_retries} in {delay:.1f}s"
                        )
                        await asyncio.sleep(delay)
                        continue

                    error_text = await response.text()
                    if response.status == 429:
                        raise RateLimitException("Rate limit exceeded", 429, path)
                    raise APIHTTPException(
                        f"HTTP {response.status}: {error_text[:200]}", response.status, path
                    )

            except asyncio.TimeoutError:
                if attempt < max_retries:
                    attempt += 1
                    delay = self._retry_delay(attempt)
                    logger.warning(
                        f"Timeout for {path}, retry {attempt}/{max_retries} in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise APITimeoutException("Request timeout", path)

            except aiohttp.ClientError as e:
                if attempt < max_retries:
                    attempt += 1
                    delay = self._retry_delay(attempt)
                    logger.warning(
                        f"Network error for {path} on attempt {attempt}, retrying in {delay:.1f}s: {e}"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise NetworkException(f"Network error: {str(e)}", path)

    async def get_departures(
        self,
        service_type: ServiceType,
        stop_id: int,
        window_start: Optional[datetime] = None,
        max_results: int = 20,
    ) -> DeparturesResult:
        """
        Fetch departures from a stop with run, route and stop expansion.

        Args:
            service_type: Metro or regional
            stop_id: PTV stop id
            window_start: Earliest departure instant (API default is now)
            max_results: Maximum departures per route/direction

        Returns:
            DeparturesResult: Parsed departures sorted by scheduled time
        """
        path = f"/v3/departures/route_type/{service_type.route_type}/stop/{stop_id}"
        params = {
            "date_utc": format_utc(window_start) if window_start else None,
            "max_results": max_results,
            "expand": [EXPAND_RUN, EXPAND_ROUTE, EXPAND_STOP],
        }

        logger.debug(f"Fetching {service_type.value} departures from stop {stop_id}")
        data = await self._fetch(path, params)
        departures = self._parse_departures_response(data, service_type)
        logger.info(f"Fetched {len(departures)} {service_type.value} departures from stop {stop_id}")
        return DeparturesResult(departures=departures)

    async def get_run_pattern(self, run_id: str, service_type: ServiceType) -> StoppingPattern:
        """
        Fetch the stopping pattern of a run.

        Args:
            run_id: Run reference
            service_type: Service type of the run

        Returns:
            StoppingPattern: All stops visited by the run, in visit order
        """
        path = f"/v3/pattern/run/{quote(str(run_id), safe='')}/route_type/{service_type.route_type}"
        data = await self._fetch(path, {"expand": [EXPAND_STOP]})
        return self._parse_pattern_response(data, run_id, service_type)

    async def search_stops(self, term: str, service_types: Optional[List[ServiceType]] = None) -> List[Dict[str, Any]]:
        """
        Search stops by name (cached for the reference-data TTL).

        Args:
            term: Search text, e.g. "Bendigo"
            service_types: Restrict to these service types

        Returns:
            List of raw stop records (stop_id, stop_name, route_type, ...)
        """
        route_types = [st.route_type for st in service_types] if service_types else None
        cache_key = CacheKey.search_key(
            term, ",".join(str(rt) for rt in route_types) if route_types else "all"
        )
        cached = self.reference_cache.get(cache_key)
        if cached is not None:
            return cached

        data = await self._fetch(
            f"/v3/search/{quote(term, safe='')}", {"route_types": route_types}
        )
        stops = data.get("stops") or []
        self.reference_cache.put(cache_key, stops)
        return stops

    async def get_routes(self, service_type: Optional[ServiceType] = None) -> List[Dict[str, Any]]:
        """
        List routes, optionally for one service type (cached).

        Returns:
            List of raw route records (route_id, route_name, route_type, ...)
        """
        cache_key = CacheKey.routes_key(service_type.value if service_type else "all")
        cached = self.reference_cache.get(cache_key)
        if cached is not None:
            return cached

        params = {"route_types": [service_type.route_type] if service_type else None}
        data = await self._fetch("/v3/routes", params)
        routes = data.get("routes") or []
        self.reference_cache.put(cache_key, routes)
        return routes

    async def find_train_stops(self, name: str) -> List[Dict[str, Any]]:
        """Find metro and regional train stops matching a name."""
        stops = await self.search_stops(name, [ServiceType.METRO, ServiceType.REGIONAL])
        train_route_types = {ServiceType.METRO.route_type, ServiceType.REGIONAL.route_type}
        return [s for s in stops if s.get("route_type") in train_route_types]

    def clear_caches(self) -> None:
        """Clear reference-data caches."""
        self.reference_cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        return {"reference": self.reference_cache.get_stats()}

    def _parse_departures_response(self, data: Dict, service_type: ServiceType) -> List[Departure]:
        """
        Parse API departures response into Departure objects.

        Args:
            data: Raw API response data
            service_type: Service type that was queried (fallback when the
                route expansion is missing)

        Returns:
            List[Departure]: Parsed departures sorted by scheduled time
        """
        items = data.get("departures")
        if not isinstance(items, list):
            logger.warning("No departures data in API response")
            return []

        stops = data.get("stops") or {}
        routes = data.get("routes") or {}
        runs = data.get("runs") or {}

        departures = []
        for item in items:
            departure = self._create_departure(item, stops, routes, runs, service_type)
            if departure:
                departures.append(departure)

        far_future = datetime.max.replace(tzinfo=timezone.utc)
        return sorted(departures, key=lambda d: d.scheduled_departure or far_future)

    def _create_departure(
        self,
        item: Dict,
        stops: Dict,
        routes: Dict,
        runs: Dict,
        service_type: ServiceType,
    ) -> Optional[Departure]:
        """
        Create a Departure from a single departure entry.

        Returns:
            Optional[Departure]: Parsed departure or None if the entry is malformed
        """
        try:
            run_ref = item.get("run_ref")
            if run_ref is None and item.get("run_id") is not None:
                run_ref = str(item["run_id"])

            route_id = item.get("route_id")
            route = routes.get(str(route_id), {}) if route_id is not None else {}
            if route.get("route_type") is not None:
                resolved_type = ServiceType.from_route_type(route["route_type"])
            else:
                resolved_type = service_type

            stop_id = item.get("stop_id")
            stop = stops.get(str(stop_id), {}) if stop_id is not None else {}
            run = runs.get(str(run_ref), {}) if run_ref is not None else {}
            platform = item.get("platform_number")

            return Departure(
                run_id=str(run_ref) if run_ref is not None else None,
                service_type=resolved_type,
                scheduled_departure=parse_utc(item.get("scheduled_departure_utc")),
                estimated_departure=parse_utc(item.get("estimated_departure_utc")),
                stop_id=int(stop_id) if stop_id is not None else None,
                platform=str(platform) if platform is not None else None,
                route_id=int(route_id) if route_id is not None else None,
                route_name=route.get("route_name"),
                stop_name=stop.get("stop_name"),
                cancelled=str(run.get("status", "")).lower() == "cancelled",
            )
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Failed to parse departure: {e}")
            return None

    def _parse_pattern_response(self, data: Dict, run_id: str, service_type: ServiceType) -> StoppingPattern:
        """
        Parse a stopping-pattern response.

        Entries keep the API's visit order; malformed entries are skipped.
        """
        stops = data.get("stops") or {}
        entries = []

        for item in data.get("departures") or []:
            try:
                stop_id = int(item["stop_id"])
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Failed to parse pattern stop for run {run_id}: {e}")
                continue

            platform = item.get("platform_number")
            entries.append(
                StoppingPatternEntry(
                    stop_id=stop_id,
                    scheduled_time=parse_utc(item.get("scheduled_departure_utc")),
                    estimated_time=parse_utc(item.get("estimated_departure_utc")),
                    platform=str(platform) if platform is not None else None,
                    stop_name=stops.get(str(stop_id), {}).get("stop_name"),
                )
            )

        return StoppingPattern(run_id=str(run_id), service_type=service_type, entries=tuple(entries))
