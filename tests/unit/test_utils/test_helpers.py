"""
Unit tests for utility helper functions.

Tests the time parsing and formatting helpers shared by the API client and
the journey timing engine.
"""

import pytest
from datetime import datetime, timedelta, timezone

from railconnect.utils.helpers import (
    add_minutes,
    epoch_millis,
    format_duration,
    format_local_time,
    format_utc,
    get_timezone,
    minutes_between,
    parse_utc,
    to_local_iso,
)


class TestParsing:
    """Test API timestamp parsing."""

    def test_parse_zulu(self):
        assert parse_utc("2025-08-14T03:26:00Z") == datetime(2025, 8, 14, 3, 26, tzinfo=timezone.utc)

    def test_parse_offset_converted_to_utc(self):
        parsed = parse_utc("2025-08-14T13:26:00+10:00")

        assert parsed == datetime(2025, 8, 14, 3, 26, tzinfo=timezone.utc)
        assert parsed.tzinfo == timezone.utc

    def test_parse_naive_taken_as_utc(self):
        assert parse_utc("2025-08-14T03:26:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "not a time", 1723604760, ["2025-08-14T03:26:00Z"]])
    def test_parse_invalid(self, value):
        assert parse_utc(value) is None

    def test_format_utc(self):
        dt = datetime(2025, 8, 14, 13, 26, 45, tzinfo=timezone(timedelta(hours=10)))

        assert format_utc(dt) == "2025-08-14T03:26:45Z"


class TestArithmetic:
    """Test minute arithmetic."""

    def test_minutes_between_rounds(self):
        start = datetime(2025, 8, 14, 3, 0, tzinfo=timezone.utc)

        assert minutes_between(start, start + timedelta(minutes=12, seconds=20)) == 12
        assert minutes_between(start, start + timedelta(minutes=12, seconds=40)) == 13
        assert minutes_between(start, start - timedelta(minutes=3)) == -3

    def test_add_minutes_and_epoch(self):
        start = datetime(1970, 1, 1, tzinfo=timezone.utc)

        assert add_minutes(start, 5) == start + timedelta(minutes=5)
        assert epoch_millis(add_minutes(start, 5)) == 300000


class TestLocalTime:
    """Test local time rendering."""

    def test_melbourne_standard_time(self):
        dt = datetime(2025, 8, 14, 3, 26, tzinfo=timezone.utc)

        assert format_local_time(dt, "Australia/Melbourne") == "13:26"
        assert to_local_iso(dt, "Australia/Melbourne") == "2025-08-14T13:26+10:00"

    def test_melbourne_daylight_saving(self):
        dt = datetime(2025, 1, 14, 3, 26, tzinfo=timezone.utc)

        assert format_local_time(dt, "Australia/Melbourne") == "14:26"

    def test_unknown_timezone_falls_back(self):
        assert str(get_timezone("Mars/Olympus_Mons")) == "Australia/Melbourne"


class TestDurationFormatting:
    """Test duration formatting."""

    @pytest.mark.parametrize("minutes,expected", [
        (45, "45m"),
        (60, "1h 0m"),
        (170, "2h 50m"),
        (-5, "0m"),
    ])
    def test_format_duration(self, minutes, expected):
        assert format_duration(minutes) == expected
