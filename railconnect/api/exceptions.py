"""
Exception hierarchy for timetable API failures.
"""

from typing import Optional


class TimetableAPIException(Exception):
    """Base exception for timetable API errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class APITimeoutException(TimetableAPIException):
    """Exception raised when a request times out after all retries."""

    pass


class APIHTTPException(TimetableAPIException):
    """Exception for non-success HTTP responses."""

    def __init__(self, message: str, status: int, path: Optional[str] = None):
        super().__init__(message, path)
        self.status = status


class NetworkException(TimetableAPIException):
    """Exception for network-related errors."""

    pass


class RateLimitException(APIHTTPException):
    """Exception for rate limit exceeded errors."""

    pass


class AuthenticationException(APIHTTPException):
    """Exception for authentication failures."""

    pass
