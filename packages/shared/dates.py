"""
Calendar-window helpers. All dates are ISO `YYYY-MM-DD` strings; windows are inclusive.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from packages.shared.models import DateWindow

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}


def parse_range_to_days(value: str | None) -> int:
    return RANGE_DAYS.get(value or "", 30)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def to_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def list_iso_dates(from_date: str, to_date: str) -> list[str]:
    current = date.fromisoformat(from_date)
    end = date.fromisoformat(to_date)
    dates: list[str] = []
    while current <= end:
        dates.append(current.isoformat())
        current += timedelta(days=1)
    return dates


def build_range_window(days: int, anchor: str | date) -> DateWindow:
    """Window of `days` dates ending on `anchor`."""
    days = max(1, int(days))
    end = to_date(anchor)
    start = end - timedelta(days=days - 1)
    return DateWindow(
        from_date=start.isoformat(),
        to_date=end.isoformat(),
        days=days,
        dates=list_iso_dates(start.isoformat(), end.isoformat()),
    )


def build_explicit_window(from_date: str, to_date: str) -> DateWindow:
    if from_date > to_date:
        from_date, to_date = to_date, from_date
    dates = list_iso_dates(from_date, to_date)
    return DateWindow(from_date=from_date, to_date=to_date, days=len(dates), dates=dates)
