"""
Command-line runner for the RailConnect journey planner.

Sets up logging, loads the configuration, plans one two-leg journey
against the PTV Timetable API and prints the result as JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from railconnect.api import TimetableAPIException, TimetableAPIManager
from railconnect.core.services import JourneyTimingEngine
from railconnect.managers.config_manager import ConfigData, ConfigManager, ConfigurationError
from railconnect.models.journey_data import JourneyPlanningRequest, ServiceType
from railconnect.utils.helpers import parse_utc
from railconnect.utils.logging_utils import setup_logging
from version import get_full_version_info, get_version_string

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=get_full_version_info())
    parser.add_argument("origin", nargs="?", help="Origin stop id or station name")
    parser.add_argument("destination", nargs="?", help="Destination stop id or station name")
    parser.add_argument("--via", type=int, action="append", default=[],
                        help="Preferred interchange stop id (repeatable)")
    parser.add_argument("--at", help="Earliest departure, ISO 8601 (default: now)")
    parser.add_argument("--window", type=int, help="Search window in minutes")
    parser.add_argument("--max-results", type=int, help="Maximum journeys to return")
    parser.add_argument("--list-routes", choices=[st.value for st in ServiceType],
                        help="List routes of a service type and exit")
    parser.add_argument("--config", help="Path to config.json")
    parser.add_argument("--version", action="version", version=get_version_string())
    return parser.parse_args(argv)


async def resolve_stop(api: TimetableAPIManager, value: str) -> int:
    """Resolve a stop id or a station name to a stop id."""
    if value.isdigit():
        return int(value)

    stops = await api.find_train_stops(value)
    if not stops:
        raise ValueError(f"No train station matches '{value}'")
    stop = stops[0]
    logger.info(f"Resolved '{value}' to {stop.get('stop_name')} ({stop['stop_id']})")
    return int(stop["stop_id"])


async def run(args: argparse.Namespace, config_manager: ConfigManager, config: ConfigData) -> int:

    missing = config_manager.missing_credentials()
    if missing:
        print(f"Missing PTV credentials: set {', '.join(missing)} or edit {config_manager.config_path}",
              file=sys.stderr)
        return 2

    async with TimetableAPIManager(config.api, config.cache) as api:
        if args.list_routes:
            routes = await api.get_routes(ServiceType(args.list_routes))
            print(json.dumps(routes, indent=2))
            return 0

        if not args.origin or not args.destination:
            print("origin and destination are required", file=sys.stderr)
            return 2

        earliest = parse_utc(args.at) if args.at else None
        if args.at and earliest is None:
            print(f"Invalid --at time: {args.at}", file=sys.stderr)
            return 2

        try:
            request = JourneyPlanningRequest(
                origin_stop_id=await resolve_stop(api, args.origin),
                destination_stop_id=await resolve_stop(api, args.destination),
                earliest_departure=earliest,
                preferred_interchanges=tuple(args.via),
                max_results=args.max_results or config.planning.default_max_results,
                search_window_minutes=args.window or config.planning.default_search_window_minutes,
            )
        except (ValueError, TimetableAPIException) as e:
            print(f"Invalid request: {e}", file=sys.stderr)
            return 2

        engine = JourneyTimingEngine.from_config(api, config)
        result = await engine.plan_two_leg_journey(request)

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.is_success else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = parse_args(argv)

    config_manager = ConfigManager(args.config)
    try:
        config = config_manager.load_config()
        setup_logging(config.log_settings.level, config.log_settings.log_to_file)
    except ConfigurationError as e:
        setup_logging("INFO", log_to_file=False)
        logger.error(f"Configuration error: {e}")
        return 2

    logger.info(f"Starting {get_version_string()}")
    try:
        return asyncio.run(run(args, config_manager, config))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
