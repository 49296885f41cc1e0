"""
Derived payload records handed to the presentation layer.
Plain value/label/date records only; no display formatting.
"""
from __future__ import annotations

from typing import Optional

from pydantic import Field

from .common import CamelModel
from .domain import (
    AlertItem,
    ClinicalEvent,
    DailyLogRecord,
    DirectionalClinicalMetricRow,
    HybridAlertChip,
    Warning,
)
from .enums import Direction, ObservationSource, ZoneValue


class IssueWeightedRankItem(CamelModel):
    issue_key: str
    label: str
    weighted_score: float
    mention_count: int
    last_seen_date: str


class IssueWeightedSeriesPoint(CamelModel):
    date: str
    scores: dict[str, float] = Field(default_factory=dict)


class WeightedIssueSeries(CamelModel):
    rank: list[IssueWeightedRankItem] = Field(default_factory=list)
    daily_series: list[IssueWeightedSeriesPoint] = Field(default_factory=list)
    analyzed_logs: int = 0


class IssueInsightItem(CamelModel):
    issue_key: str
    label: str
    count: int
    last_seen_date: str
    latest_snippet: Optional[str] = None


class IssueInsightSeriesPoint(CamelModel):
    date: str
    counts: dict[str, int] = Field(default_factory=dict)


class IssueInsights(CamelModel):
    window_days: int
    top_issues: list[IssueInsightItem] = Field(default_factory=list)
    daily_series: list[IssueInsightSeriesPoint] = Field(default_factory=list)
    total_analyzed_logs: int = 0


class WeightDeltaResult(CamelModel):
    latest_weight_lb: Optional[float] = None
    baseline_weight_lb: Optional[float] = None
    delta_lb: Optional[float] = None
    delta_pct: Optional[float] = None


class ConsistencyResult(CamelModel):
    # Share of window days WITHOUT a log (gap severity, not coverage).
    percent: int
    logged_days: int
    gap_days: int
    range_days: int


class BurdenWindowResult(CamelModel):
    raw_score: float
    index: int
    reference_peak: float
    analyzed_logs: int


class BurdenSeriesPoint(CamelModel):
    date: str
    raw_score: float
    index: int


class ZoneDefinition(CamelModel):
    zone: ZoneValue
    label: str
    meaning: str


class ZoneSeriesPoint(CamelModel):
    date: str
    raw_value: Optional[float] = None
    zone_value: Optional[ZoneValue] = None


class ClinicalSeries(CamelModel):
    metric_key: str
    metric_label: str
    source: ObservationSource
    points: list[ZoneSeriesPoint] = Field(default_factory=list)


class ClinicalLegendItem(CamelModel):
    metric_key: str
    metric_label: str
    source: ObservationSource
    staged: bool
    assumed: bool = False
    direction: Direction


class DirectionalClinicalPanel(CamelModel):
    direction: Direction
    zones: list[ZoneDefinition] = Field(default_factory=list)
    healthy_baseline_zone: ZoneValue = ZoneValue.SAFE
    rows: list[DirectionalClinicalMetricRow] = Field(default_factory=list)
    series: list[ClinicalSeries] = Field(default_factory=list)
    legend: list[ClinicalLegendItem] = Field(default_factory=list)


class WeightTimelinePoint(CamelModel):
    date: str
    weight_lb: float
    source: ObservationSource = ObservationSource.MERGED


class WeightTimeline(CamelModel):
    healthy_reference_lb: float
    series: list[WeightTimelinePoint] = Field(default_factory=list)


class MeasurementSnapshotItem(CamelModel):
    key: str
    label: str
    value_text: str
    date: str


class TrendPoint(CamelModel):
    date: str
    weight_lb: Optional[float] = None
    burden_raw: float
    burden_index: int


class ContextEvent(CamelModel):
    id: str
    type: str = "daily_log"
    date: str
    canonical_text: str
    metadata: dict = Field(default_factory=dict)


class LogStats(CamelModel):
    avg_water_intake_oz: Optional[float] = None
    avg_appetite_score: Optional[float] = None
    avg_energy_score: Optional[float] = None
    total_vomiting_events: int = 0


class MainboardPayload(CamelModel):
    range: str
    from_date: str
    to_date: str
    latest_log_date: Optional[str] = None
    weight_delta: WeightDeltaResult
    issue_burden: BurdenWindowResult
    logging_consistency: ConsistencyResult
    trend_series: list[TrendPoint] = Field(default_factory=list)
    hybrid_alerts: list[HybridAlertChip] = Field(default_factory=list)
    issue_rank: list[IssueWeightedRankItem] = Field(default_factory=list)
    issue_daily_weighted_series: list[IssueWeightedSeriesPoint] = Field(default_factory=list)
    clinical_events_recent: list[ClinicalEvent] = Field(default_factory=list)
    measurement_snapshot: list[MeasurementSnapshotItem] = Field(default_factory=list)
    warnings: list[Warning] = Field(default_factory=list)


class LabWorkbenchPayload(CamelModel):
    range: str
    from_date: str
    to_date: str
    weight_timeline: WeightTimeline
    higher_worse: DirectionalClinicalPanel
    lower_worse: DirectionalClinicalPanel


class DashboardPayload(CamelModel):
    range: str
    latest_log: Optional[DailyLogRecord] = None
    alerts: list[AlertItem] = Field(default_factory=list)
    trend: list[DailyLogRecord] = Field(default_factory=list)
    issue_insights: IssueInsights
    stats: LogStats
