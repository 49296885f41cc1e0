from .enums import (
    AlertSource,
    ChipSource,
    ClinicalEventCategory,
    ClinicalEventSource,
    Comparator,
    Direction,
    LogMode,
    MappingKind,
    MeasurementConfidence,
    ObservationSource,
    Severity,
    TriggerId,
    ZoneValue,
)
from .common import CamelModel, DateWindow, FrozenCamelModel
from .domain import (
    AlertItem,
    ClinicalEvent,
    ClinicalMeasurement,
    ClinicalObservation,
    DailyLogRecord,
    DeriveConfig,
    DirectionalClinicalMetricRow,
    HybridAlertChip,
    IssueMention,
    LexiconTerm,
    LoadedContent,
    Medication,
    MentionRow,
    ThresholdConfig,
    Warning,
)
from .payloads import (
    BurdenSeriesPoint,
    BurdenWindowResult,
    ClinicalLegendItem,
    ClinicalSeries,
    ConsistencyResult,
    ContextEvent,
    DashboardPayload,
    DirectionalClinicalPanel,
    IssueInsightItem,
    IssueInsights,
    IssueInsightSeriesPoint,
    IssueWeightedRankItem,
    IssueWeightedSeriesPoint,
    LabWorkbenchPayload,
    LogStats,
    MainboardPayload,
    MeasurementSnapshotItem,
    TrendPoint,
    WeightDeltaResult,
    WeightedIssueSeries,
    WeightTimeline,
    WeightTimelinePoint,
    ZoneDefinition,
    ZoneSeriesPoint,
)
