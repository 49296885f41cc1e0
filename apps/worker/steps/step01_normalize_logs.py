"""
Step 1 — Log normalization + threshold alerts.
Annotate each log once with its threshold alerts, carrying the last known
weight forward in date order.
"""
from __future__ import annotations

import logging
from typing import Optional

from apps.worker.lib.threshold_alerts import compute_threshold_alerts
from packages.shared.models import AlertItem, AlertSource, DailyLogRecord, LogStats, ThresholdConfig
from packages.shared.utils.numeric import average

logger = logging.getLogger(__name__)

DEFAULT_FILTER_LIMIT = 200


def _ascending_key(log: DailyLogRecord) -> tuple[str, str]:
    return (log.date, log.updated_at)


def normalize_log(log: DailyLogRecord) -> DailyLogRecord:
    """Blank notes become None; quick-text logs keep whatever metrics they carry."""
    notes = log.notes if log.notes and log.notes.strip() else None
    return log.model_copy(update={"notes": notes, "alerts": []})


def derive_logs(entries: list[DailyLogRecord], thresholds: ThresholdConfig) -> list[DailyLogRecord]:
    """
    Normalize logs and attach threshold alerts.
    Returns records newest first.
    """
    chronological = sorted((normalize_log(e) for e in entries), key=_ascending_key)

    derived: list[DailyLogRecord] = []
    previous_weight_lb: Optional[float] = None
    alert_total = 0
    for log in chronological:
        alerts = compute_threshold_alerts(log, thresholds, previous_weight_lb, AlertSource.THRESHOLD_DEFAULT)
        alert_total += len(alerts)
        derived.append(log.model_copy(update={"alerts": alerts}))
        if log.weight_lb is not None:
            previous_weight_lb = log.weight_lb

    logger.debug(f"Derived {len(derived)} logs with {alert_total} threshold alerts")
    return sorted(derived, key=_ascending_key, reverse=True)


def filter_logs(
    logs: list[DailyLogRecord],
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    limit: int = DEFAULT_FILTER_LIMIT,
) -> list[DailyLogRecord]:
    filtered = [
        log for log in logs
        if not (from_date and log.date < from_date) and not (to_date and log.date > to_date)
    ]
    return filtered[:limit]


def derive_current_alerts(logs: list[DailyLogRecord], limit: int = 15) -> list[AlertItem]:
    flattened = [alert for log in logs for alert in log.alerts]
    return sorted(flattened, key=lambda a: a.date, reverse=True)[:limit]


def summarize_log_stats(logs: list[DailyLogRecord]) -> LogStats:
    return LogStats(
        avg_water_intake_oz=average([log.water_intake_oz for log in logs]),
        avg_appetite_score=average([log.appetite_score for log in logs]),
        avg_energy_score=average([log.energy_score for log in logs]),
        total_vomiting_events=sum(log.vomiting_count or 0 for log in logs),
    )
