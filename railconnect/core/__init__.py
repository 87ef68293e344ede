"""
Core Package

Core interfaces and services of the journey timing engine.
"""

# Import interfaces
from .interfaces import ITimetableClient

# Import services
from .services import (
    CandidateLegFinder, ConnectionPolicyEngine, JourneyAssembler,
    JourneyTimingEngine, PlanningState, SecondLegFinder, StoppingPatternResolver,
)

__all__ = [
    # Interfaces
    'ITimetableClient',

    # Services
    'CandidateLegFinder',
    'ConnectionPolicyEngine',
    'JourneyAssembler',
    'JourneyTimingEngine',
    'PlanningState',
    'SecondLegFinder',
    'StoppingPatternResolver',
]
