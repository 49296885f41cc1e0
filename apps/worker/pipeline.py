"""
Payload orchestrator — composes the derivation steps into request payloads.

Every builder takes already-loaded content plus an optional anchor date.
The anchor is resolved to today's UTC date once here; the steps themselves
never read the clock.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from packages.shared.dates import (
    RANGE_DAYS,
    build_explicit_window,
    build_range_window,
    parse_range_to_days,
    today_utc,
)
from packages.shared.models import (
    AlertItem,
    ClinicalEvent,
    ContextEvent,
    DailyLogRecord,
    DashboardPayload,
    DateWindow,
    DeriveConfig,
    Direction,
    IssueInsights,
    LabWorkbenchPayload,
    LoadedContent,
    MainboardPayload,
    TrendPoint,
    Warning,
)
from packages.shared.schema_validator import validate_output

from apps.worker.lib.context_events import to_context_events
from apps.worker.steps.step01_normalize_logs import (
    derive_current_alerts,
    filter_logs,
    summarize_log_stats,
)
from apps.worker.steps.step02_issue_mentions import derive_issue_insights, derive_weighted_issue_series
from apps.worker.steps.step03_burden import derive_burden_window, derive_daily_burden_series
from apps.worker.steps.step04_weight_consistency import derive_consistency, derive_weight_delta
from apps.worker.steps.step05_hybrid_alerts import derive_hybrid_alerts
from apps.worker.steps.step06_clinical_zones import (
    derive_directional_panel,
    derive_measurement_snapshot,
    derive_weight_timeline,
)

logger = logging.getLogger(__name__)

LAB_RANGE_ALL = "all"
CONTEXT_EVENT_LIMIT = 500
MAX_SCHEMA_WARNINGS = 10


def _resolve_anchor(anchor: Optional[str | date]) -> str | date:
    return anchor if anchor is not None else today_utc()


def _normalize_range(range_key: Optional[str]) -> str:
    return range_key if range_key in RANGE_DAYS else "30d"


def _events_descending(events: list[ClinicalEvent]) -> list[ClinicalEvent]:
    return sorted(events, key=lambda e: (e.date, e.id), reverse=True)


def _latest_weight_by_date(logs: list[DailyLogRecord]) -> dict[str, float]:
    by_date: dict[str, float] = {}
    for log in sorted(logs, key=lambda l: (l.date, l.updated_at)):
        if log.weight_lb is not None:
            by_date[log.date] = log.weight_lb
    return by_date


def build_mainboard_payload(
    content: LoadedContent,
    range_key: str = "30d",
    anchor: Optional[str | date] = None,
    config: Optional[DeriveConfig] = None,
) -> MainboardPayload:
    """Summary board for one 7/30/90 day window."""
    config = config or DeriveConfig()
    range_key = _normalize_range(range_key)
    window = build_range_window(parse_range_to_days(range_key), _resolve_anchor(anchor))
    logs = content.logs
    terms = content.lexicon_terms

    logger.info(f"Building mainboard payload: range={range_key}, window={window.from_date}..{window.to_date}")

    logs_in_range = filter_logs(logs, window.from_date, window.to_date, limit=config.log_filter_limit)
    burden_series = derive_daily_burden_series(logs, terms, window, config.burden_reference_days)
    weights_by_date = _latest_weight_by_date(logs)
    issue_series = derive_weighted_issue_series(logs, terms, window, limit=config.issue_rank_limit)
    sorted_events = _events_descending(content.clinical_events)

    payload = MainboardPayload(
        range=range_key,
        from_date=window.from_date,
        to_date=window.to_date,
        latest_log_date=logs_in_range[0].date if logs_in_range else None,
        weight_delta=derive_weight_delta(logs, window),
        issue_burden=derive_burden_window(logs, terms, window, config.burden_reference_days),
        logging_consistency=derive_consistency(logs, window),
        trend_series=[
            TrendPoint(
                date=point.date,
                weight_lb=weights_by_date.get(point.date),
                burden_raw=point.raw_score,
                burden_index=point.index,
            )
            for point in burden_series
        ],
        hybrid_alerts=derive_hybrid_alerts(logs, terms, window),
        issue_rank=issue_series.rank,
        issue_daily_weighted_series=issue_series.daily_series,
        clinical_events_recent=sorted_events[:config.clinical_events_recent_limit],
        measurement_snapshot=derive_measurement_snapshot(sorted_events, limit=config.measurement_snapshot_limit),
    )

    # Validate against schema
    is_valid, errors = validate_output(payload.model_dump(mode="json", by_alias=True))
    if not is_valid:
        payload.warnings.extend(
            Warning(code="SCHEMA_VALIDATION_ERROR", message=err[:500]) for err in errors[:MAX_SCHEMA_WARNINGS]
        )
        logger.warning(f"Mainboard schema validation failed with {len(errors)} errors")

    logger.info(
        f"Mainboard payload built: {len(payload.hybrid_alerts)} alerts, {len(payload.issue_rank)} ranked issues, "
        f"burden index {payload.issue_burden.index}"
    )
    return payload


def resolve_lab_window(
    content: LoadedContent,
    range_key: str,
    anchor: Optional[str | date] = None,
) -> DateWindow:
    """`all` spans every log and clinical event date; other ranges end at the anchor."""
    if range_key == LAB_RANGE_ALL:
        all_dates = sorted([log.date for log in content.logs] + [e.date for e in content.clinical_events])
        if not all_dates:
            today = _resolve_anchor(anchor)
            today = today if isinstance(today, str) else today.isoformat()
            return build_explicit_window(today, today)
        return build_explicit_window(all_dates[0], all_dates[-1])
    return build_range_window(parse_range_to_days(range_key), _resolve_anchor(anchor))


def build_lab_workbench_payload(
    content: LoadedContent,
    range_key: str = LAB_RANGE_ALL,
    anchor: Optional[str | date] = None,
    config: Optional[DeriveConfig] = None,
) -> LabWorkbenchPayload:
    config = config or DeriveConfig()
    if range_key != LAB_RANGE_ALL:
        range_key = _normalize_range(range_key)
    window = resolve_lab_window(content, range_key, anchor)
    events = content.clinical_events

    logger.info(f"Building lab workbench payload: range={range_key}, window={window.from_date}..{window.to_date}")

    return LabWorkbenchPayload(
        range=range_key,
        from_date=window.from_date,
        to_date=window.to_date,
        weight_timeline=derive_weight_timeline(content.logs, events, window, config.healthy_reference_weight_lb),
        higher_worse=derive_directional_panel(events, Direction.HIGHER_WORSE, window),
        lower_worse=derive_directional_panel(events, Direction.LOWER_WORSE, window),
    )


def build_recent_issues(
    content: LoadedContent,
    days: int = 7,
    limit: int = 5,
    anchor: Optional[str | date] = None,
    include_snippets: bool = True,
) -> IssueInsights:
    window = build_range_window(days, _resolve_anchor(anchor))
    return derive_issue_insights(
        content.logs, content.lexicon_terms, window, limit=limit, include_snippets=include_snippets
    )


def build_current_alerts(content: LoadedContent, limit: Optional[int] = None) -> list[AlertItem]:
    limit = limit if limit is not None else DeriveConfig().current_alert_limit
    return derive_current_alerts(content.logs, limit=limit)


def build_context_events(
    content: LoadedContent,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    limit: int = CONTEXT_EVENT_LIMIT,
) -> list[ContextEvent]:
    return to_context_events(filter_logs(content.logs, from_date, to_date, limit=limit))


def build_dashboard_payload(
    content: LoadedContent,
    range_key: str = "30d",
    anchor: Optional[str | date] = None,
    config: Optional[DeriveConfig] = None,
) -> DashboardPayload:
    """
    Public dashboard: latest log with its alerts, the range's logs oldest
    first, a 7-day issue summary and log averages.
    """
    config = config or DeriveConfig()
    range_key = _normalize_range(range_key)
    resolved_anchor = _resolve_anchor(anchor)
    window = build_range_window(parse_range_to_days(range_key), resolved_anchor)
    logs_in_range = filter_logs(
        content.logs, from_date=window.from_date, to_date=window.to_date, limit=config.log_filter_limit
    )
    latest_log = next((log for log in content.logs if log.date <= window.to_date), None)

    return DashboardPayload(
        range=range_key,
        latest_log=latest_log,
        alerts=list(latest_log.alerts) if latest_log else [],
        trend=list(reversed(logs_in_range)),
        issue_insights=build_recent_issues(
            content,
            days=config.recent_issue_days,
            limit=config.issue_rank_limit,
            anchor=resolved_anchor,
            include_snippets=True,
        ),
        stats=summarize_log_stats(logs_in_range),
    )
