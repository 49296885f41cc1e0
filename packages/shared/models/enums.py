from enum import Enum, IntEnum


class LogMode(str, Enum):
    FULL = "full"
    QUICK_TEXT = "quick_text"


class Severity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class AlertSource(str, Enum):
    THRESHOLD_DEFAULT = "threshold-default"  # Computed during log normalization
    THRESHOLD_OVERRIDE = "threshold-override"  # Caller-supplied thresholds


class ChipSource(str, Enum):
    THRESHOLD = "threshold"
    NLP = "nlp"


class TriggerId(str, Enum):
    ORAL_BLEEDING = "oral_bleeding"
    ORAL_DYSFUNCTION = "oral_dysfunction"
    VOMITING_SPIKE = "vomiting_spike"
    APPETITE_CRISIS = "appetite_crisis"
    RESPIRATORY_STRESS = "respiratory_stress"


class MappingKind(str, Enum):
    IRIS_STAGED = "iris_staged"
    RELATIVE_NON_STAGED = "relative_non_staged"


class Direction(str, Enum):
    HIGHER_WORSE = "higher_worse"
    LOWER_WORSE = "lower_worse"


class Comparator(str, Enum):
    EXACT = "exact"
    APPROX = "approx"
    GT = "gt"
    LT = "lt"


class ObservationSource(str, Enum):
    LOG = "log"
    CLINICAL_EVENT = "clinical_event"
    MERGED = "merged"  # Synthetic or cross-source series


class MeasurementConfidence(str, Enum):
    CONFIRMED = "confirmed"
    ESTIMATED = "estimated"
    CAREGIVER_REPORT = "caregiver_report"


class ClinicalEventCategory(str, Enum):
    HISTORICAL = "historical"
    LAB = "lab"
    EXAM = "exam"
    ER = "er"
    TREATMENT_PLAN = "treatment_plan"
    HOME_OBSERVATION = "home_observation"


class ClinicalEventSource(str, Enum):
    SPECIALIST_SUMMARY = "specialist_summary"
    HOME_LOG = "home_log"


class ZoneValue(IntEnum):
    SAFE = 0
    STAGE_1 = 1
    STAGE_2 = 2
    STAGE_3 = 3
    STAGE_4 = 4

    @property
    def label(self) -> str:
        if self is ZoneValue.SAFE:
            return "Safe"
        return f"Stage {int(self)}"
