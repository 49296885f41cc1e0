from typing import Optional

from pydantic import Field

from .common import ISO_DATE_PATTERN, CamelModel, FrozenCamelModel
from .enums import (
    AlertSource,
    ChipSource,
    ClinicalEventCategory,
    ClinicalEventSource,
    Comparator,
    LogMode,
    MappingKind,
    MeasurementConfidence,
    ObservationSource,
    Severity,
    TriggerId,
    ZoneValue,
)


class Warning(CamelModel):
    code: str
    message: str


class DeriveConfig(CamelModel):
    """Tunables for one derivation request."""
    burden_reference_days: int = 90
    issue_rank_limit: int = 5
    recent_issue_days: int = 7
    current_alert_limit: int = 15
    clinical_events_recent_limit: int = 6
    measurement_snapshot_limit: int = 6
    healthy_reference_weight_lb: float = 8.0
    log_filter_limit: int = 365


class LexiconTerm(FrozenCamelModel):
    id: str
    issue_key: str
    label: str
    phrase: str
    normalized_phrase: str = ""
    weight: float = Field(ge=0.5, le=3)
    is_active: bool = True


class Medication(FrozenCamelModel):
    name: str
    dose: Optional[str] = None
    taken: bool


class ThresholdConfig(FrozenCamelModel):
    water_intake_min_oz: float
    appetite_min: int
    energy_min: int
    vomiting_max: int
    urination_min: int
    stool_min: int
    weight_loss_pct_warn: float


class AlertItem(FrozenCamelModel):
    severity: Severity
    metric: str
    message: str
    date: str = Field(pattern=ISO_DATE_PATTERN)
    source: AlertSource


class DailyLogRecord(FrozenCamelModel):
    id: str
    date: str = Field(pattern=ISO_DATE_PATTERN)
    mode: LogMode
    created_by: str = ""
    created_at: str = ""
    updated_at: str = ""
    medications: list[Medication] = Field(default_factory=list)
    water_intake_oz: Optional[float] = None
    appetite_score: Optional[int] = None
    energy_score: Optional[int] = None
    vomiting_count: Optional[int] = None
    urination_score: Optional[int] = None
    stool_score: Optional[int] = None
    weight_lb: Optional[float] = None
    notes: Optional[str] = None
    alerts: list[AlertItem] = Field(default_factory=list)


class ClinicalMeasurement(FrozenCamelModel):
    key: str
    label: str
    value: float
    unit: Optional[str] = None
    comparator: Comparator = Comparator.EXACT
    confidence: MeasurementConfidence = MeasurementConfidence.CONFIRMED
    note: Optional[str] = None


class ClinicalEvent(FrozenCamelModel):
    id: str
    date: str = Field(pattern=ISO_DATE_PATTERN)
    category: ClinicalEventCategory
    title: str
    summary: str
    source: ClinicalEventSource
    confidence: MeasurementConfidence
    measurements: list[ClinicalMeasurement] = Field(default_factory=list)

    @property
    def context_text(self) -> str:
        return f"{self.title} {self.summary}"


class LoadedContent(CamelModel):
    logs: list[DailyLogRecord] = Field(default_factory=list)  # derived, newest first
    lexicon_terms: list[LexiconTerm] = Field(default_factory=list)
    thresholds: ThresholdConfig
    clinical_events: list[ClinicalEvent] = Field(default_factory=list)


class IssueMention(CamelModel):
    """One aggregated mention per issue key for a single piece of text."""
    issue_key: str
    label: str
    term_id: str
    mention_count: int
    weighted_score: float
    evidence_snippet: Optional[str] = None


class MentionRow(CamelModel):
    source_id: str
    issue_key: str
    label: str
    mention_count: int
    weighted_score: float
    evidence_snippet: Optional[str] = None
    date: str


class HybridAlertChip(CamelModel):
    id: str
    trigger_id: Optional[TriggerId] = None
    severity: Severity
    label: str
    message: str
    date: str
    source: ChipSource


class ClinicalObservation(CamelModel):
    date: str
    raw_value: float
    comparator: Comparator = Comparator.EXACT
    unit: Optional[str] = None
    source: ObservationSource = ObservationSource.CLINICAL_EVENT
    context_text: Optional[str] = None


class DirectionalClinicalMetricRow(CamelModel):
    metric_key: str
    metric_label: str
    value_text: str
    date: str
    source: ObservationSource
    severity_zone: ZoneValue
    severity_label: str
    stale: bool
    mapping_kind: MappingKind
