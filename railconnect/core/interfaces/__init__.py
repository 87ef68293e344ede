"""
Core interfaces for the RailConnect journey planner.
"""

from .i_timetable_client import ITimetableClient

__all__ = [
    'ITimetableClient',
]
