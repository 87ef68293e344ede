"""
Version information for RailConnect.

Centralized version management for the journey planner and its runner.
"""

# Core application information
__version__ = "1.0.0"
__version_info__ = (1, 0, 0)
__app_name__ = "RailConnect"
__app_display_name__ = "RailConnect - Connection-Aware Journey Timing"
__description__ = "Two-leg train journey planning with realistic connection times"

# API information
__train_api_provider__ = "PTV Timetable API v3"
__train_api_url__ = "https://timetableapi.ptv.vic.gov.au"

# Python requirement
__python_version_required__ = "3.9+"


def get_version_string() -> str:
    """Get formatted version string."""
    return f"{__app_name__} v{__version__}"


def get_full_version_info() -> str:
    """Get version string with the upstream data provider."""
    return f"{__app_display_name__} v{__version__} (data: {__train_api_provider__})"
