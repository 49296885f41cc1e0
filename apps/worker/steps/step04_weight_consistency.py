"""
Step 4 — Weight delta + logging consistency.
"""
from __future__ import annotations

from packages.shared.models import ConsistencyResult, DailyLogRecord, DateWindow, WeightDeltaResult
from packages.shared.utils.numeric import clamp_index, round_to


def _weighted_logs_ascending(logs: list[DailyLogRecord]) -> list[DailyLogRecord]:
    return sorted(
        (log for log in logs if log.weight_lb is not None),
        key=lambda log: (log.date, log.updated_at),
    )


def derive_weight_delta(logs: list[DailyLogRecord], window: DateWindow) -> WeightDeltaResult:
    """
    Latest in-window weight against a baseline: the most recent weight
    strictly before the window, else the earliest weight inside it.
    """
    weighted = _weighted_logs_ascending(logs)
    in_range = [log for log in weighted if window.contains(log.date)]
    if not in_range:
        return WeightDeltaResult()

    latest = in_range[-1]
    before_start = [log for log in weighted if log.date < window.from_date]
    baseline = before_start[-1] if before_start else in_range[0]

    delta_lb = round_to(latest.weight_lb - baseline.weight_lb, 2)
    delta_pct = round_to(delta_lb / baseline.weight_lb * 100, 1) if baseline.weight_lb > 0 else None

    return WeightDeltaResult(
        latest_weight_lb=latest.weight_lb,
        baseline_weight_lb=baseline.weight_lb,
        delta_lb=delta_lb,
        delta_pct=delta_pct,
    )


def derive_consistency(logs: list[DailyLogRecord], window: DateWindow) -> ConsistencyResult:
    """
    Gap severity for the window: `percent` is the share of days with no log.
    """
    logged_days = len({log.date for log in logs if window.contains(log.date)})
    gap_days = max(0, window.days - logged_days)
    return ConsistencyResult(
        percent=clamp_index(gap_days / window.days * 100),
        logged_days=logged_days,
        gap_days=gap_days,
        range_days=window.days,
    )
