"""
Payload pipeline tests over the fixture content directory.
"""
from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from apps.worker.pipeline import (
    build_context_events,
    build_current_alerts,
    build_dashboard_payload,
    build_lab_workbench_payload,
    build_mainboard_payload,
    build_recent_issues,
)
from apps.worker.steps.step00_load_content import load_content_dir
from packages.shared.models import DeriveConfig, TriggerId, ZoneValue
from packages.shared.schema_validator import validate_output

FIXTURE_DIR = Path(__file__).resolve().parents[1] / "fixtures" / "content"
ANCHOR = "2025-03-10"


@pytest.fixture(scope="module")
def content():
    return load_content_dir(FIXTURE_DIR)


class TestMainboard:
    def test_window_and_kpis(self, content):
        payload = build_mainboard_payload(content, "7d", ANCHOR)
        assert payload.from_date == "2025-03-04"
        assert payload.to_date == "2025-03-10"
        assert payload.latest_log_date == "2025-03-10"
        assert payload.weight_delta.latest_weight_lb == 9.4
        assert payload.weight_delta.baseline_weight_lb == 10.0
        assert payload.weight_delta.delta_lb == -0.6
        assert payload.weight_delta.delta_pct == -6.0
        assert payload.logging_consistency.percent == 57
        assert payload.issue_burden.raw_score == 5.5
        assert payload.issue_burden.index == 100

    def test_trend_series(self, content):
        payload = build_mainboard_payload(content, "7d", ANCHOR)
        assert len(payload.trend_series) == 7
        by_date = {p.date: p for p in payload.trend_series}
        assert by_date["2025-03-05"].weight_lb == 9.5
        assert by_date["2025-03-05"].burden_index == 96
        assert by_date["2025-03-08"].burden_index == 100
        assert by_date["2025-03-10"].weight_lb is None

    def test_alerts_and_issues(self, content):
        payload = build_mainboard_payload(content, "7d", ANCHOR)
        assert [c.label for c in payload.hybrid_alerts] == [
            "Respiratory stress",
            "Appetite crisis",
            "Low water intake",
            "Oral bleeding",
            "Vomiting increase",
            "Low appetite",
            "Weight loss",
        ]
        appetite = next(c for c in payload.hybrid_alerts if c.trigger_id == TriggerId.APPETITE_CRISIS)
        assert appetite.id == "nlp-appetite_crisis-2025-03-08"
        assert [r.issue_key for r in payload.issue_rank] == ["low-appetite", "lethargy", "vomiting"]
        assert len(payload.issue_daily_weighted_series) == 7

    def test_clinical_sections(self, content):
        payload = build_mainboard_payload(content, "7d", ANCHOR)
        assert [e.id for e in payload.clinical_events_recent] == ["evt-3", "evt-2", "evt-1"]
        assert [s.key for s in payload.measurement_snapshot] == ["weight-lb", "bun", "creatinine", "sdma", "albumin"]

    def test_schema_valid_without_warnings(self, content):
        payload = build_mainboard_payload(content, "30d", ANCHOR)
        assert payload.warnings == []
        is_valid, errors = validate_output(payload.model_dump(mode="json", by_alias=True))
        assert is_valid, errors

    def test_schema_failure_becomes_warning(self, content):
        with patch("apps.worker.pipeline.validate_output", return_value=(False, ["range: bad"])):
            payload = build_mainboard_payload(content, "7d", ANCHOR)
        assert [(w.code, w.message) for w in payload.warnings] == [("SCHEMA_VALIDATION_ERROR", "range: bad")]

    def test_unknown_range_defaults_to_30d(self, content):
        payload = build_mainboard_payload(content, "12d", ANCHOR)
        assert payload.range == "30d"
        assert payload.from_date == "2025-02-09"

    def test_empty_window(self, content):
        payload = build_mainboard_payload(content, "7d", "2024-06-01")
        assert payload.latest_log_date is None
        assert payload.weight_delta.delta_lb is None
        assert payload.issue_burden.index == 0
        assert payload.hybrid_alerts == []
        assert payload.logging_consistency.percent == 100

    def test_config_limits(self, content):
        config = DeriveConfig(issue_rank_limit=1, clinical_events_recent_limit=1, measurement_snapshot_limit=2)
        payload = build_mainboard_payload(content, "7d", ANCHOR, config)
        assert len(payload.issue_rank) == 1
        assert len(payload.clinical_events_recent) == 1
        assert len(payload.measurement_snapshot) == 2

    def test_camel_case_output(self, content):
        dumped = build_mainboard_payload(content, "7d", ANCHOR).model_dump(mode="json", by_alias=True)
        assert "latestLogDate" in dumped
        assert "weightLb" in dumped["trendSeries"][0]
        assert dumped["hybridAlerts"][0]["triggerId"] == "respiratory_stress"


class TestLabWorkbench:
    def test_all_range_spans_every_record(self, content):
        payload = build_lab_workbench_payload(content, "all")
        assert payload.from_date == "2024-12-01"
        assert payload.to_date == "2025-03-10"
        assert [p.date for p in payload.weight_timeline.series] == [
            "2024-12-01", "2025-03-01", "2025-03-05", "2025-03-06", "2025-03-08",
        ]
        march_8 = payload.weight_timeline.series[-1]
        assert march_8.weight_lb == 9.4

    def test_ranged_panels(self, content):
        payload = build_lab_workbench_payload(content, "7d", ANCHOR)
        assert payload.range == "7d"
        assert [r.metric_key for r in payload.higher_worse.rows] == ["bun", "creatinine", "sdma"]
        assert [r.metric_key for r in payload.lower_worse.rows] == ["albumin"]
        assert payload.lower_worse.rows[0].severity_zone == ZoneValue.STAGE_4

    def test_all_range_with_no_content(self, content):
        empty = content.model_copy(update={"logs": [], "clinical_events": []})
        payload = build_lab_workbench_payload(empty, "all", ANCHOR)
        assert payload.from_date == payload.to_date == ANCHOR
        assert payload.higher_worse.rows == []


def test_recent_issues(content):
    insights = build_recent_issues(content, days=7, limit=2, anchor=ANCHOR)
    assert insights.window_days == 7
    assert [i.issue_key for i in insights.top_issues] == ["low-appetite", "lethargy"]
    assert insights.total_analyzed_logs == 2


def test_current_alerts(content):
    alerts = build_current_alerts(content)
    assert len(alerts) == 4
    assert {a.date for a in alerts} == {"2025-03-05"}
    assert len(build_current_alerts(content, limit=2)) == 2


def test_context_events(content):
    events = build_context_events(content, from_date="2025-03-05", to_date="2025-03-08")
    assert [e.id for e in events] == ["daily-log:log-2", "daily-log:log-3"]
    assert "mode quick_text" in events[1].canonical_text


def test_dashboard(content):
    payload = build_dashboard_payload(content, "7d", ANCHOR)
    assert payload.latest_log.id == "log-4"
    assert payload.alerts == []
    assert [l.id for l in payload.trend] == ["log-2", "log-3", "log-4"]
    assert payload.stats.avg_water_intake_oz == 9.0
    assert payload.stats.total_vomiting_events == 4
    assert payload.issue_insights.top_issues[0].latest_snippet is not None


def test_dashboard_stops_at_past_anchor(content):
    payload = build_dashboard_payload(content, "7d", "2025-03-06")
    assert payload.latest_log.id == "log-2"
    assert [l.id for l in payload.trend] == ["log-1", "log-2"]
    assert all(l.date <= "2025-03-06" for l in payload.trend)
    assert {a.metric for a in payload.alerts} == {"waterIntakeOz", "appetiteScore", "vomitingCount", "weightLb"}
    assert payload.issue_insights.daily_series[-1].date == "2025-03-06"


def test_dashboard_before_any_log(content):
    payload = build_dashboard_payload(content, "7d", "2024-06-01")
    assert payload.latest_log is None
    assert payload.trend == []
