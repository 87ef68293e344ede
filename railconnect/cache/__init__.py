"""
Caching for upstream timetable data.

Stopping patterns are memoized for a few minutes; reference data such as
stop searches and route lists for several hours.
"""

from .memory_cache import CacheKey, MemoryCache

__all__ = [
    'CacheKey',
    'MemoryCache',
]
