"""
Unit tests for the issue burden index (Step 3).
"""
from __future__ import annotations

import pytest

from apps.worker.lib.nlp import normalize_phrase
from apps.worker.steps.step03_burden import (
    derive_burden_window,
    derive_daily_burden_series,
    rolling_window_peak,
)
from packages.shared.dates import build_range_window
from packages.shared.models import DailyLogRecord, LexiconTerm, LogMode

TERMS = [
    LexiconTerm(id="t1", issue_key="vomiting", label="Vomiting", phrase="vomiting",
                normalized_phrase=normalize_phrase("vomiting"), weight=1.5),
    LexiconTerm(id="t2", issue_key="low-appetite", label="Low Appetite", phrase="low appetite",
                normalized_phrase=normalize_phrase("low appetite"), weight=1.2),
]


def _log(day: str, notes: str) -> DailyLogRecord:
    return DailyLogRecord(id=f"log-{day}", date=day, mode=LogMode.QUICK_TEXT, notes=notes)


class TestRollingWindowPeak:
    def test_basic(self):
        assert rolling_window_peak([1, 0, 3, 1, 0], 2) == 4

    def test_window_longer_than_values(self):
        assert rolling_window_peak([1, 2], 5) == 3

    @pytest.mark.parametrize("values,size", [([], 3), ([1, 2], 0)])
    def test_degenerate(self, values, size):
        assert rolling_window_peak(values, size) == 0.0


class TestBurdenWindow:
    def test_window_at_its_own_peak_is_100(self):
        logs = [_log("2025-03-05", "Vomiting and low appetite."), _log("2025-03-08", "More vomiting.")]
        result = derive_burden_window(logs, TERMS, build_range_window(7, "2025-03-10"))
        assert result.raw_score == 4.2
        assert result.reference_peak == 4.2
        assert result.index == 100
        assert result.analyzed_logs == 2

    def test_quieter_window_scored_against_busier_one(self):
        logs = [
            _log("2025-02-01", "Vomiting, vomiting, low appetite."),
            _log("2025-03-08", "Vomiting once."),
        ]
        result = derive_burden_window(logs, TERMS, build_range_window(7, "2025-03-10"))
        assert result.raw_score == 1.5
        assert result.reference_peak == 4.2
        assert result.index == 36

    def test_zero_when_nothing_mentioned(self):
        logs = [_log("2025-03-08", "Calm and eating well.")]
        result = derive_burden_window(logs, TERMS, build_range_window(7, "2025-03-10"))
        assert result.raw_score == 0.0
        assert result.index == 0
        assert result.analyzed_logs == 1

    def test_index_bounds(self):
        logs = [_log(f"2025-03-{d:02d}", "vomiting " * d) for d in range(1, 11)]
        for days in (7, 30, 90):
            result = derive_burden_window(logs, TERMS, build_range_window(days, "2025-03-10"))
            assert 0 <= result.index <= 100


def test_daily_series_normalized_to_busiest_day():
    logs = [_log("2025-03-05", "Vomiting and low appetite."), _log("2025-03-08", "Vomiting.")]
    series = derive_daily_burden_series(logs, TERMS, build_range_window(7, "2025-03-10"))
    assert len(series) == 7
    by_date = {p.date: p for p in series}
    assert by_date["2025-03-05"].raw_score == 2.7
    assert by_date["2025-03-05"].index == 100
    assert by_date["2025-03-08"].index == 56
    assert by_date["2025-03-04"].raw_score == 0.0
    assert by_date["2025-03-04"].index == 0
