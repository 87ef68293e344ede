"""
Data models for the RailConnect journey planner.

This module contains the data structures used throughout the engine,
including departures, stopping patterns, journeys and planning results.
"""

from .journey_data import (
    ConnectionInfo,
    ConnectionValidation,
    ConnectionValidityStatus,
    Departure,
    DepartureCandidate,
    DeparturesResult,
    JourneyErrorCode,
    JourneyLeg,
    JourneyOption,
    JourneyPlanningRequest,
    JourneyPlanningResult,
    PlanningMetadata,
    SecondLegCandidate,
    ServiceType,
    StoppingPattern,
    StoppingPatternEntry,
)

__all__ = [
    "ConnectionInfo",
    "ConnectionValidation",
    "ConnectionValidityStatus",
    "Departure",
    "DepartureCandidate",
    "DeparturesResult",
    "JourneyErrorCode",
    "JourneyLeg",
    "JourneyOption",
    "JourneyPlanningRequest",
    "JourneyPlanningResult",
    "PlanningMetadata",
    "SecondLegCandidate",
    "ServiceType",
    "StoppingPattern",
    "StoppingPatternEntry",
]
