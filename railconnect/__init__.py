"""
RailConnect journey planner

Connection-aware two-leg journey planning for Melbourne's metropolitan and
V/Line train networks, built on the PTV Timetable API.

Features:
- Stopping-pattern arrival times instead of timetable guesses
- Station and platform specific minimum connection times
- Bounded search window expansion for long regional trips
- Signed, rate-limited and retrying API client
"""

__version__ = "1.0.0"
__author__ = "RailConnect Development Team"
__description__ = "Connection-aware journey timing engine"
