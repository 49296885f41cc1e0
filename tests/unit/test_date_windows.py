"""
Unit tests for calendar windows and rounding helpers.
"""
from __future__ import annotations

from datetime import date

import pytest

from packages.shared.dates import build_explicit_window, build_range_window, list_iso_dates, parse_range_to_days
from packages.shared.utils.numeric import average, clamp_index, format_number, normalize_index, round_to


class TestWindows:
    def test_range_window_inclusive(self):
        window = build_range_window(7, "2025-03-10")
        assert window.from_date == "2025-03-04"
        assert window.to_date == "2025-03-10"
        assert window.days == 7
        assert window.dates[0] == "2025-03-04" and window.dates[-1] == "2025-03-10"

    def test_range_window_accepts_date(self):
        assert build_range_window(1, date(2024, 2, 29)).dates == ["2024-02-29"]

    def test_range_window_crosses_month(self):
        assert build_range_window(3, "2025-03-01").dates == ["2025-02-27", "2025-02-28", "2025-03-01"]

    def test_explicit_window_swaps_reversed_bounds(self):
        window = build_explicit_window("2025-03-10", "2025-03-08")
        assert (window.from_date, window.to_date, window.days) == ("2025-03-08", "2025-03-10", 3)

    def test_contains(self):
        window = build_range_window(7, "2025-03-10")
        assert window.contains("2025-03-04")
        assert not window.contains("2025-03-03")
        assert not window.contains(None)

    @pytest.mark.parametrize("value,days", [("7d", 7), ("30d", 30), ("90d", 90), ("1y", 30), (None, 30)])
    def test_parse_range(self, value, days):
        assert parse_range_to_days(value) == days

    def test_list_iso_dates_empty_when_reversed(self):
        assert list_iso_dates("2025-03-02", "2025-03-01") == []


class TestNumeric:
    @pytest.mark.parametrize("value,digits,expected", [
        (1.005, 2, 1.0), (2.675, 2, 2.67), (0.125, 2, 0.13), (-1.05, 1, -1.1), (float("nan"), 2, 0.0),
    ])
    def test_round_to(self, value, digits, expected):
        assert round_to(value, digits) == expected

    def test_clamp_index(self):
        assert clamp_index(-5) == 0
        assert clamp_index(150) == 100
        assert clamp_index(57.14) == 57
        assert clamp_index(49.5) == 50

    def test_normalize_index_guards(self):
        assert normalize_index(5, 0) == 0
        assert normalize_index(0, 10) == 0
        assert normalize_index(5, 10) == 50

    def test_format_number(self):
        assert format_number(12.0) == "12"
        assert format_number(5.6) == "5.6"

    def test_average(self):
        assert average([1, None, 2]) == 1.5
        assert average([None]) is None
