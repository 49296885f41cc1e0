"""
Unit tests for weight delta and logging consistency (Step 4).
"""
from __future__ import annotations

from apps.worker.steps.step04_weight_consistency import derive_consistency, derive_weight_delta
from packages.shared.dates import build_range_window
from packages.shared.models import DailyLogRecord, LogMode

WINDOW = build_range_window(7, "2025-03-10")  # 2025-03-04 .. 2025-03-10


def _log(day: str, weight: float | None = None, updated_at: str | None = None) -> DailyLogRecord:
    return DailyLogRecord(
        id=f"log-{day}-{updated_at or 'x'}",
        date=day,
        mode=LogMode.FULL,
        weight_lb=weight,
        updated_at=updated_at or f"{day}T12:00:00.000Z",
    )


class TestWeightDelta:
    def test_baseline_before_window(self):
        result = derive_weight_delta([_log("2025-03-01", 10.0), _log("2025-03-09", 9.0)], WINDOW)
        assert result.latest_weight_lb == 9.0
        assert result.baseline_weight_lb == 10.0
        assert result.delta_lb == -1.0
        assert result.delta_pct == -10.0

    def test_most_recent_prior_weight_is_baseline(self):
        logs = [_log("2025-02-01", 12.0), _log("2025-03-02", 10.0), _log("2025-03-06", 10.5)]
        result = derive_weight_delta(logs, WINDOW)
        assert result.baseline_weight_lb == 10.0
        assert result.delta_lb == 0.5
        assert result.delta_pct == 5.0

    def test_log_on_window_start_is_not_baseline(self):
        logs = [_log("2025-03-01", 11.0), _log("2025-03-04", 10.0), _log("2025-03-08", 9.8)]
        result = derive_weight_delta(logs, WINDOW)
        assert result.baseline_weight_lb == 11.0
        assert result.delta_lb == -1.2
        assert result.delta_pct == -10.9

    def test_falls_back_to_first_in_window(self):
        logs = [_log("2025-03-05", 9.5), _log("2025-03-08", 9.4)]
        result = derive_weight_delta(logs, WINDOW)
        assert result.baseline_weight_lb == 9.5
        assert result.delta_lb == -0.1
        assert result.delta_pct == -1.1

    def test_same_day_latest_by_updated_at(self):
        logs = [
            _log("2025-03-08", 9.9, "2025-03-08T20:00:00.000Z"),
            _log("2025-03-08", 9.1, "2025-03-08T07:00:00.000Z"),
            _log("2025-03-01", 10.0),
        ]
        assert derive_weight_delta(logs, WINDOW).latest_weight_lb == 9.9

    def test_no_weight_in_window(self):
        result = derive_weight_delta([_log("2025-03-01", 10.0), _log("2025-03-08")], WINDOW)
        assert result.model_dump() == {
            "latest_weight_lb": None,
            "baseline_weight_lb": None,
            "delta_lb": None,
            "delta_pct": None,
        }

    def test_zero_baseline_has_no_percentage(self):
        result = derive_weight_delta([_log("2025-03-01", 0.0), _log("2025-03-08", 9.0)], WINDOW)
        assert result.delta_lb == 9.0
        assert result.delta_pct is None


class TestConsistency:
    def test_gap_percentage(self):
        logs = [_log("2025-03-05"), _log("2025-03-08"), _log("2025-03-10"), _log("2025-03-01")]
        result = derive_consistency(logs, WINDOW)
        assert result.logged_days == 3
        assert result.gap_days == 4
        assert result.range_days == 7
        assert result.percent == 57

    def test_duplicate_dates_count_once(self):
        logs = [_log("2025-03-05", updated_at="a"), _log("2025-03-05", updated_at="b")]
        assert derive_consistency(logs, WINDOW).logged_days == 1

    def test_full_coverage_is_zero_gap(self):
        logs = [_log(d) for d in WINDOW.dates]
        result = derive_consistency(logs, WINDOW)
        assert result.gap_days == 0
        assert result.percent == 0

    def test_no_logs(self):
        result = derive_consistency([], WINDOW)
        assert result.percent == 100
        assert result.gap_days == 7
