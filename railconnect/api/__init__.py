"""
API integration for the RailConnect journey planner.

This module handles communication with the PTV Timetable API,
including request signing, rate limiting, error handling, and response parsing.
"""

from .exceptions import (
    APIHTTPException,
    APITimeoutException,
    AuthenticationException,
    NetworkException,
    RateLimitException,
    TimetableAPIException,
)
from .timetable_api_manager import TimetableAPIManager

__all__ = [
    "APIHTTPException",
    "APITimeoutException",
    "AuthenticationException",
    "NetworkException",
    "RateLimitException",
    "TimetableAPIException",
    "TimetableAPIManager",
]
