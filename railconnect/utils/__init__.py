"""
Utility functions for the RailConnect journey planner.
"""

from .helpers import format_duration, format_local_time, minutes_between, parse_utc
from .logging_utils import RequestLoggerAdapter, get_request_logger, setup_logging

__all__ = [
    "format_duration",
    "format_local_time",
    "minutes_between",
    "parse_utc",
    "RequestLoggerAdapter",
    "get_request_logger",
    "setup_logging",
]
