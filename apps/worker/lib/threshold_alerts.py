"""
Per-log threshold checks for structured caregiver metrics.
Each metric is checked independently; an absent value skips its check.
"""
from __future__ import annotations

from typing import Optional

from packages.shared.models import AlertItem, AlertSource, DailyLogRecord, Severity, ThresholdConfig
from packages.shared.utils.numeric import format_number

WATER_CRITICAL_SHORTFALL = 0.5
CRITICAL_SCORE_MAX = 1
VOMITING_CRITICAL_EXCESS = 2
WEIGHT_CRITICAL_MULTIPLIER = 1.5


def _shortfall_severity(shortfall_ratio: float) -> Severity:
    return Severity.CRITICAL if shortfall_ratio >= WATER_CRITICAL_SHORTFALL else Severity.WARNING


def compute_threshold_alerts(
    log: DailyLogRecord,
    thresholds: ThresholdConfig,
    previous_weight_lb: Optional[float] = None,
    source: AlertSource = AlertSource.THRESHOLD_OVERRIDE,
) -> list[AlertItem]:
    alerts: list[AlertItem] = []

    def emit(severity: Severity, metric: str, message: str) -> None:
        alerts.append(AlertItem(severity=severity, metric=metric, message=message, date=log.date, source=source))

    water = log.water_intake_oz
    if water is not None and water < thresholds.water_intake_min_oz:
        shortfall = (thresholds.water_intake_min_oz - water) / max(thresholds.water_intake_min_oz, 1)
        emit(
            _shortfall_severity(shortfall),
            "waterIntakeOz",
            f"Water intake {format_number(water)} oz is below {format_number(thresholds.water_intake_min_oz)} oz threshold.",
        )

    appetite = log.appetite_score
    if appetite is not None and appetite < thresholds.appetite_min:
        emit(
            Severity.CRITICAL if appetite <= CRITICAL_SCORE_MAX else Severity.WARNING,
            "appetiteScore",
            f"Appetite score {appetite} is below {thresholds.appetite_min}.",
        )

    energy = log.energy_score
    if energy is not None and energy < thresholds.energy_min:
        emit(
            Severity.CRITICAL if energy <= CRITICAL_SCORE_MAX else Severity.WARNING,
            "energyScore",
            f"Energy score {energy} is below {thresholds.energy_min}.",
        )

    vomiting = log.vomiting_count
    if vomiting is not None and vomiting > thresholds.vomiting_max:
        emit(
            Severity.CRITICAL if vomiting >= thresholds.vomiting_max + VOMITING_CRITICAL_EXCESS else Severity.WARNING,
            "vomitingCount",
            f"Vomiting count {vomiting} exceeds {thresholds.vomiting_max}.",
        )

    urination = log.urination_score
    if urination is not None and urination < thresholds.urination_min:
        emit(Severity.WARNING, "urinationScore", f"Urination score {urination} is below {thresholds.urination_min}.")

    stool = log.stool_score
    if stool is not None and stool < thresholds.stool_min:
        emit(Severity.WARNING, "stoolScore", f"Stool score {stool} is below {thresholds.stool_min}.")

    if previous_weight_lb is not None and previous_weight_lb > 0 and log.weight_lb is not None:
        loss_pct = (previous_weight_lb - log.weight_lb) / previous_weight_lb * 100
        if loss_pct >= thresholds.weight_loss_pct_warn:
            critical = loss_pct >= thresholds.weight_loss_pct_warn * WEIGHT_CRITICAL_MULTIPLIER
            emit(
                Severity.CRITICAL if critical else Severity.WARNING,
                "weightLb",
                f"Weight dropped by {loss_pct:.1f}% compared with prior log.",
            )

    return alerts
