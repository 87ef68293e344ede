"""
Core Services Package

Services of the connection-aware journey timing engine.
"""

from .candidate_leg_finder import CandidateLegFinder
from .connection_policy import ConnectionPolicyEngine
from .journey_assembler import JourneyAssembler
from .journey_timing_engine import (
    EXPANDED_SEARCH_MAX_RESULTS,
    MAX_SEARCH_WINDOW_MINUTES,
    WINDOW_EXPANSION_STEPS_MINUTES,
    JourneyTimingEngine,
    PlanningState,
)
from .second_leg_finder import SecondLegFinder
from .stopping_pattern_resolver import StoppingPatternResolver, get_default_pattern_cache

__all__ = [
    'CandidateLegFinder',
    'ConnectionPolicyEngine',
    'JourneyAssembler',
    'JourneyTimingEngine',
    'PlanningState',
    'SecondLegFinder',
    'StoppingPatternResolver',
    'get_default_pattern_cache',
    'EXPANDED_SEARCH_MAX_RESULTS',
    'MAX_SEARCH_WINDOW_MINUTES',
    'WINDOW_EXPANSION_STEPS_MINUTES',
]
