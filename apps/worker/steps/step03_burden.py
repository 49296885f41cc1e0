"""
Step 3 — Issue burden index.
Window-level index is the window's weighted mention total against the
highest same-length rolling sum inside the reference window (90 days by
default). The per-day series is normalized against the single busiest day.
"""
from __future__ import annotations

from apps.worker.steps.step02_issue_mentions import collect_issue_rows, daily_weighted_totals
from packages.shared.dates import build_range_window
from packages.shared.models import BurdenSeriesPoint, BurdenWindowResult, DailyLogRecord, DateWindow, LexiconTerm
from packages.shared.utils.numeric import normalize_index, round_to

REFERENCE_DAYS = 90


def rolling_window_peak(values: list[float], window_size: int) -> float:
    """Maximum sum over any contiguous run of `window_size` values."""
    if not values or window_size <= 0:
        return 0.0
    if window_size >= len(values):
        return sum(values)

    running = sum(values[:window_size])
    peak = running
    for idx in range(window_size, len(values)):
        running += values[idx] - values[idx - window_size]
        if running > peak:
            peak = running
    return peak


def _reference_window(window: DateWindow, reference_days: int) -> DateWindow:
    return build_range_window(reference_days, window.to_date)


def derive_burden_window(
    logs: list[DailyLogRecord],
    terms: list[LexiconTerm],
    window: DateWindow,
    reference_days: int = REFERENCE_DAYS,
) -> BurdenWindowResult:
    rows, analyzed_logs = collect_issue_rows(logs, terms, window)
    raw_score = sum(row.weighted_score for row in rows)

    reference = _reference_window(window, reference_days)
    reference_rows, _ = collect_issue_rows(logs, terms, reference)
    reference_peak = rolling_window_peak(daily_weighted_totals(reference_rows, reference.dates), window.days)

    return BurdenWindowResult(
        raw_score=round_to(raw_score, 2),
        index=normalize_index(raw_score, reference_peak),
        reference_peak=round_to(reference_peak, 2),
        analyzed_logs=analyzed_logs,
    )


def derive_daily_burden_series(
    logs: list[DailyLogRecord],
    terms: list[LexiconTerm],
    window: DateWindow,
    reference_days: int = REFERENCE_DAYS,
) -> list[BurdenSeriesPoint]:
    rows, _ = collect_issue_rows(logs, terms, window)
    reference = _reference_window(window, reference_days)
    reference_rows, _ = collect_issue_rows(logs, terms, reference)

    daily_peak = max([0.0, *daily_weighted_totals(reference_rows, reference.dates)])

    series = []
    for day, total in zip(window.dates, daily_weighted_totals(rows, window.dates)):
        raw_score = round_to(total, 2)
        series.append(BurdenSeriesPoint(date=day, raw_score=raw_score, index=normalize_index(raw_score, daily_peak)))
    return series
