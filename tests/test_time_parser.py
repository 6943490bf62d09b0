"""Unit tests for date and time normalization."""
from datetime import date

import pytest

from processor.models import ClockTime
from processor.time_parser import (
    DEFAULT_WINDOW,
    extract_time_window,
    normalize_meridiem,
    parse_date_label,
    parse_start_and_duration,
    parse_time_range,
    to_local_iso,
)


class TestParseDateLabel:
    """Test cases for availability date labels."""

    def test_with_weekday(self):
        assert parse_date_label("Saturday, January 31, 2026") == date(2026, 1, 31)

    def test_without_weekday(self):
        assert parse_date_label("March 7, 2026") == date(2026, 3, 7)

    def test_month_is_case_insensitive(self):
        assert parse_date_label("friday, DECEMBER 4, 2026") == date(2026, 12, 4)

    def test_unknown_month(self):
        assert parse_date_label("Saturday, Smarch 3, 2026") is None

    def test_impossible_day(self):
        assert parse_date_label("February 30, 2026") is None

    def test_unparseable_label(self):
        assert parse_date_label("Next available date") is None
        assert parse_date_label(None) is None


class TestParseTimeRange:
    """Test cases for explicit time ranges."""

    def test_both_sides_marked(self):
        window = parse_time_range("Event is 10AM - 12PM at the lodge")

        assert window.start == ClockTime(10, 0, 'AM')
        assert window.end == ClockTime(12, 0, 'PM')

    def test_end_side_meridiem_is_inherited(self):
        """A range like "6 - 10PM" puts both ends in the evening."""
        window = parse_time_range("Doors 6 - 10PM")

        assert window.start == ClockTime(6, 0, 'PM')
        assert window.end == ClockTime(10, 0, 'PM')
        assert window.start.to_24h() == (18, 0)
        assert window.end.to_24h() == (22, 0)

    @pytest.mark.parametrize("text", ["6-9pm", "6 to 9 PM", "6:00 - 9:00 PM"])
    def test_unmarked_start_takes_end_meridiem(self, text):
        window = parse_time_range(text)

        assert window.start.to_24h() == (18, 0)
        assert window.end.to_24h() == (21, 0)

    def test_start_side_meridiem_is_inherited(self):
        window = parse_time_range("9am to 11")

        assert window.end == ClockTime(11, 0, 'AM')

    def test_minutes_and_dotted_markers(self):
        window = parse_time_range("6:30 p.m. – 9:45 p.m.")

        assert window.start == ClockTime(6, 30, 'PM')
        assert window.end == ClockTime(9, 45, 'PM')

    def test_em_dash_and_non_breaking_space(self):
        window = parse_time_range("7\u00a0PM\u2014 11 PM")

        assert window.start.to_24h() == (19, 0)
        assert window.end.to_24h() == (23, 0)

    def test_unmarked_range_is_rejected(self):
        assert parse_time_range("Ages 8-12 welcome") is None

    def test_ambiguous_range_is_skipped_for_a_later_one(self):
        window = parse_time_range("Ages 13-17 only. Class runs 1pm-3pm.")

        assert window.start == ClockTime(1, 0, 'PM')
        assert window.end == ClockTime(3, 0, 'PM')

    def test_no_range(self):
        assert parse_time_range("Join us for an evening of fun") is None
        assert parse_time_range("") is None


class TestParseStartAndDuration:
    """Test cases for the start time plus duration fallback."""

    def test_hours_duration(self):
        window = parse_start_and_duration("6:00 PM 2 Hours • Ages 13+")

        assert window.start.to_24h() == (18, 0)
        assert window.end.to_24h() == (20, 0)

    def test_hours_and_minutes(self):
        window = parse_start_and_duration("Starts 10:15 AM. Duration: 1 Hour 30 Minutes")

        assert window.end.to_24h() == (11, 45)

    def test_fractional_hours(self):
        window = parse_start_and_duration("7 PM, 1.5 hours")

        assert window.end.to_24h() == (20, 30)

    def test_wraps_past_midnight_without_day_rollover(self):
        """11:30 PM plus two hours ends at 01:30 on the same calendar day."""
        window = parse_start_and_duration("11:30 PM 2 Hours")

        assert window.end == ClockTime(1, 30, 'AM')
        assert window.end.to_24h() == (1, 30)

    def test_requires_duration(self):
        assert parse_start_and_duration("Starts at 6:00 PM") is None

    def test_requires_meridiem_on_start(self):
        assert parse_start_and_duration("Starts at 18:00, 2 Hours") is None


class TestExtractTimeWindow:
    """Test cases for the combined extraction order."""

    def test_range_preferred_over_duration(self):
        window = extract_time_window("6pm - 9pm. 2 Hours")

        assert window.end.to_24h() == (21, 0)

    def test_duration_when_no_range(self):
        window = extract_time_window("6:00 PM 2 Hours")

        assert window.end.to_24h() == (20, 0)

    def test_nothing_found(self):
        assert extract_time_window("Bring a towel") is None

    def test_default_window_is_ten_to_eight(self):
        assert DEFAULT_WINDOW.start.to_24h() == (10, 0)
        assert DEFAULT_WINDOW.end.to_24h() == (20, 0)


def test_normalize_meridiem():
    assert normalize_meridiem("p.m.") == "PM"
    assert normalize_meridiem("Am") == "AM"
    assert normalize_meridiem(None) is None


def test_twelve_oclock_conversion():
    assert ClockTime(12, 0, 'AM').to_24h() == (0, 0)
    assert ClockTime(12, 15, 'PM').to_24h() == (12, 15)


def test_to_local_iso_is_zero_padded_without_offset():
    assert to_local_iso(date(2026, 3, 7), 9, 5) == "2026-03-07T09:05:00"
