"""
Unit tests for report date windows.
"""
from datetime import datetime

import pytest

from tracker.date_ranges import (
    filter_by_date,
    format_display_date,
    parse_record_date,
    resolve_window,
    subtract_months,
)

NOW = datetime(2024, 3, 31, 15, 30)


@pytest.mark.unit
class TestResolveWindow:
    """Tests for resolve_window()."""

    def test_today_starts_at_midnight(self):
        window = resolve_window("today", now=NOW)
        assert window.start == datetime(2024, 3, 31, 0, 0)
        assert window.end == NOW

    def test_week_and_fifteen_days(self):
        assert resolve_window("1week", now=NOW).start == datetime(2024, 3, 24, 15, 30)
        assert resolve_window("15days", now=NOW).start == datetime(2024, 3, 16, 15, 30)

    def test_month_clamps_day(self):
        """Test that one month before 31 March is 29 February in a leap year."""
        assert resolve_window("1month", now=NOW).start == datetime(2024, 2, 29, 15, 30)

    def test_six_months_crosses_year(self):
        assert resolve_window("6months", now=NOW).start == datetime(2023, 9, 30, 15, 30)

    def test_custom_is_inclusive_whole_days(self):
        window = resolve_window("custom", "2024-01-01", "2024-01-31", now=NOW)
        assert window.contains(parse_record_date("2024-01-01"))
        assert window.contains(datetime(2024, 1, 31, 23, 59, 59))
        assert not window.contains(parse_record_date("2024-02-01"))

    def test_custom_defaults_to_now(self):
        window = resolve_window("custom", now=NOW)
        assert window.start == NOW
        assert window.end == NOW

    def test_unknown_range_raises(self):
        with pytest.raises(ValueError):
            resolve_window("fortnight", now=NOW)


@pytest.mark.unit
class TestDateHelpers:
    """Tests for parsing, filtering and formatting."""

    def test_parse_plain_date_and_iso_datetime(self):
        assert parse_record_date("2024-01-05") == datetime(2024, 1, 5)
        assert parse_record_date("2024-01-05T10:15:00") == datetime(2024, 1, 5, 10, 15)

    def test_subtract_months(self):
        assert subtract_months(datetime(2024, 1, 15), 1) == datetime(2023, 12, 15)

    def test_filter_skips_unparseable_dates(self):
        class Rec:
            def __init__(self, date):
                self.date = date

        window = resolve_window("custom", "2024-01-01", "2024-01-31", now=NOW)
        kept = filter_by_date([Rec("2024-01-10"), Rec("not a date"), Rec("2024-02-10")], window)
        assert [r.date for r in kept] == ["2024-01-10"]

    def test_format_display_date(self):
        assert format_display_date("2024-01-05") == "05/01/2024"
        assert format_display_date("garbage") == "garbage"
