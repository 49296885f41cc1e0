"""
Step 6 — Clinical zone mapping.

Every tracked lab metric resolves to a 0..4 zone:
  - creatinine and SDMA use fixed kidney-staging bands on the raw value
    (creatinine gets an early-stage bump when its event mentions CKD context);
  - everything else is ranked against its own history up to the window end
    and banded by percentile, inverted for lower-is-worse metrics.

Rows pick one representative observation per metric; series collapse
same-day duplicates and always carry an assumed-healthy baseline.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from packages.shared.models import (
    ClinicalEvent,
    ClinicalLegendItem,
    ClinicalObservation,
    ClinicalSeries,
    Comparator,
    DailyLogRecord,
    DateWindow,
    Direction,
    DirectionalClinicalMetricRow,
    DirectionalClinicalPanel,
    MappingKind,
    MeasurementSnapshotItem,
    ObservationSource,
    WeightTimeline,
    WeightTimelinePoint,
    ZoneDefinition,
    ZoneSeriesPoint,
    ZoneValue,
)
from packages.shared.utils.numeric import format_number, round_to

logger = logging.getLogger(__name__)

CLINICAL_METRICS: list[tuple[str, str]] = [
    ("creatinine", "Creatinine"),
    ("sdma", "SDMA"),
    ("bun", "BUN"),
    ("phosphorus", "Phosphorus"),
    ("albumin", "Albumin"),
    ("hct", "Hematocrit"),
    ("hemoglobin", "Hemoglobin"),
    ("pcv", "Packed Cell Volume"),
    ("upc", "UPC"),
    ("potassium", "Potassium"),
    ("total-protein", "Total Protein"),
    ("t4", "Total T4"),
]
CLINICAL_METRIC_LABELS = dict(CLINICAL_METRICS)

HIGHER_WORSE_METRICS = ["bun", "creatinine", "sdma", "phosphorus", "upc", "potassium", "t4"]
LOWER_WORSE_METRICS = ["albumin", "hct", "hemoglobin", "pcv", "total-protein"]
IRIS_STAGED_METRICS = frozenset({"creatinine", "sdma"})

WEIGHT_MEASUREMENT_KEY = "weight-lb"
HEALTHY_REFERENCE_WEIGHT_LB = 8.0
MEASUREMENT_SNAPSHOT_LIMIT = 6

EARLY_CKD_CONTEXT_RE = re.compile(r"\b(early|initial|possible|suspected)?\s*(ckd|kidney|renal)\b", re.IGNORECASE)

COMPARATOR_PREFIX = {
    Comparator.GT: ">",
    Comparator.LT: "<",
    Comparator.APPROX: "~",
    Comparator.EXACT: "",
}

ZONE_MEANINGS = {
    ZoneValue.SAFE: "Operational baseline zone",
    ZoneValue.STAGE_1: "Mild concern / early CKD context",
    ZoneValue.STAGE_2: "CKD stage 2 band",
    ZoneValue.STAGE_3: "CKD stage 3 band",
    ZoneValue.STAGE_4: "CKD stage 4 / critical band",
}


# ── Zone functions ──────────────────────────────────────────────────────────

def matches_early_ckd_context(context_text: Optional[str]) -> bool:
    return bool(context_text) and EARLY_CKD_CONTEXT_RE.search(context_text) is not None


def map_creatinine_to_zone(raw_value: float, context_text: Optional[str] = None) -> ZoneValue:
    if raw_value < 1.6:
        return ZoneValue.STAGE_1 if matches_early_ckd_context(context_text) else ZoneValue.SAFE
    if raw_value <= 2.8:
        return ZoneValue.STAGE_2
    if raw_value <= 5.0:
        return ZoneValue.STAGE_3
    return ZoneValue.STAGE_4


def map_sdma_to_zone(raw_value: float) -> ZoneValue:
    if raw_value < 14:
        return ZoneValue.SAFE
    if raw_value <= 17:
        return ZoneValue.STAGE_1
    if raw_value <= 25:
        return ZoneValue.STAGE_2
    if raw_value <= 38:
        return ZoneValue.STAGE_3
    return ZoneValue.STAGE_4


def compute_risk_percentile(all_values: list[float], value: float, direction: Direction) -> float:
    """
    Rank of `value` among `all_values` as a 0..1 fraction, oriented so that
    1.0 is always the worst end. Fewer than two values rank at 0.
    """
    if len(all_values) <= 1:
        return 0.0
    ordered = sorted(all_values)
    ascending_index = 0
    for idx, candidate in enumerate(ordered):
        if candidate <= value:
            ascending_index = idx
    percentile = ascending_index / (len(ordered) - 1)
    return 1 - percentile if direction == Direction.LOWER_WORSE else percentile


def risk_percentile_to_zone(percentile: float) -> ZoneValue:
    if percentile < 0.2:
        return ZoneValue.SAFE
    if percentile < 0.4:
        return ZoneValue.STAGE_1
    if percentile < 0.6:
        return ZoneValue.STAGE_2
    if percentile < 0.8:
        return ZoneValue.STAGE_3
    return ZoneValue.STAGE_4


def map_point_to_zone(
    metric_key: str,
    raw_value: float,
    direction: Direction,
    history: list[float],
    context_text: Optional[str] = None,
) -> ZoneValue:
    if metric_key == "creatinine":
        return map_creatinine_to_zone(raw_value, context_text)
    if metric_key == "sdma":
        return map_sdma_to_zone(raw_value)
    return risk_percentile_to_zone(compute_risk_percentile(history, raw_value, direction))


def mapping_kind_for(metric_key: str) -> MappingKind:
    return MappingKind.IRIS_STAGED if metric_key in IRIS_STAGED_METRICS else MappingKind.RELATIVE_NON_STAGED


def zone_definitions() -> list[ZoneDefinition]:
    return [ZoneDefinition(zone=zone, label=zone.label, meaning=ZONE_MEANINGS[zone]) for zone in ZoneValue]


# ── Observations ────────────────────────────────────────────────────────────

def _events_ascending(events: list[ClinicalEvent]) -> list[ClinicalEvent]:
    return sorted(events, key=lambda e: (e.date, e.id))


def extract_clinical_observations(
    events: list[ClinicalEvent],
    metric_key: str,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
) -> list[ClinicalObservation]:
    """Observations of one metric, oldest first, optionally bounded by date."""
    observations: list[ClinicalObservation] = []
    for event in _events_ascending(events):
        if from_date and event.date < from_date:
            continue
        if to_date and event.date > to_date:
            continue
        for measurement in event.measurements:
            if measurement.key != metric_key:
                continue
            observations.append(ClinicalObservation(
                date=event.date,
                raw_value=measurement.value,
                comparator=measurement.comparator,
                unit=measurement.unit,
                source=ObservationSource.CLINICAL_EVENT,
                context_text=event.context_text,
            ))
    return observations


def resolve_latest_observation(
    events: list[ClinicalEvent],
    metric_key: str,
    window: DateWindow,
) -> tuple[Optional[ClinicalObservation], bool]:
    """Returns (observation, stale). Stale means the value predates the window."""
    in_range = extract_clinical_observations(events, metric_key, window.from_date, window.to_date)
    if in_range:
        return in_range[-1], False

    historical = extract_clinical_observations(events, metric_key, to_date=window.to_date)
    if historical:
        return historical[-1], True

    return None, False


def format_value_text(observation: ClinicalObservation) -> str:
    unit = f" {observation.unit}" if observation.unit else ""
    return f"{COMPARATOR_PREFIX[observation.comparator]}{format_number(observation.raw_value)}{unit}"


def collapse_observations_by_date(observations: list[ClinicalObservation]) -> list[ClinicalObservation]:
    """Average same-day values; context texts are joined, first source kept."""
    grouped: dict[str, list[ClinicalObservation]] = {}
    for observation in observations:
        grouped.setdefault(observation.date, []).append(observation)

    collapsed = []
    for day in sorted(grouped):
        bucket = grouped[day]
        contexts: list[str] = []
        for observation in bucket:
            text = (observation.context_text or "").strip()
            if text and text not in contexts:
                contexts.append(text)
        collapsed.append(ClinicalObservation(
            date=day,
            raw_value=sum(o.raw_value for o in bucket) / len(bucket),
            source=bucket[0].source,
            context_text=" ".join(contexts) if contexts else None,
        ))
    return collapsed


# ── Rows ────────────────────────────────────────────────────────────────────

def build_directional_row(
    metric_key: str,
    direction: Direction,
    events: list[ClinicalEvent],
    window: DateWindow,
) -> Optional[DirectionalClinicalMetricRow]:
    observation, stale = resolve_latest_observation(events, metric_key, window)
    if observation is None:
        return None

    history = [o.raw_value for o in extract_clinical_observations(events, metric_key, to_date=window.to_date)]
    zone = map_point_to_zone(
        metric_key,
        observation.raw_value,
        direction,
        history or [observation.raw_value],
        observation.context_text,
    )

    return DirectionalClinicalMetricRow(
        metric_key=metric_key,
        metric_label=CLINICAL_METRIC_LABELS.get(metric_key, metric_key),
        value_text=format_value_text(observation),
        date=observation.date,
        source=observation.source,
        severity_zone=zone,
        severity_label=zone.label,
        stale=stale,
        mapping_kind=mapping_kind_for(metric_key),
    )


def derive_directional_rows(
    events: list[ClinicalEvent],
    metric_keys: list[str],
    direction: Direction,
    window: DateWindow,
) -> list[DirectionalClinicalMetricRow]:
    rows = []
    for metric_key in metric_keys:
        row = build_directional_row(metric_key, direction, events, window)
        if row is not None:
            rows.append(row)
    return rows


# ── Series ──────────────────────────────────────────────────────────────────

def assumed_baseline_points(window: DateWindow) -> list[ZoneSeriesPoint]:
    """Zone-0 reference spanning exactly the window's first and last dates."""
    if window.from_date == window.to_date:
        return [ZoneSeriesPoint(date=window.from_date, raw_value=None, zone_value=ZoneValue.SAFE)]
    return [
        ZoneSeriesPoint(date=window.from_date, raw_value=None, zone_value=ZoneValue.SAFE),
        ZoneSeriesPoint(date=window.to_date, raw_value=None, zone_value=ZoneValue.SAFE),
    ]


def derive_directional_series(
    events: list[ClinicalEvent],
    metric_keys: list[str],
    direction: Direction,
    window: DateWindow,
) -> tuple[list[ClinicalSeries], list[ClinicalLegendItem]]:
    series: list[ClinicalSeries] = []
    legend: list[ClinicalLegendItem] = []

    for metric_key in metric_keys:
        label = CLINICAL_METRIC_LABELS.get(metric_key, metric_key)
        staged = metric_key in IRIS_STAGED_METRICS
        points = collapse_observations_by_date(
            extract_clinical_observations(events, metric_key, window.from_date, window.to_date)
        )

        if points:
            history = [] if staged else [
                o.raw_value for o in extract_clinical_observations(events, metric_key, to_date=window.to_date)
            ]
            ranking_values = history or [p.raw_value for p in points]
            series.append(ClinicalSeries(
                metric_key=metric_key,
                metric_label=label,
                source=ObservationSource.CLINICAL_EVENT,
                points=[
                    ZoneSeriesPoint(
                        date=point.date,
                        raw_value=round_to(point.raw_value, 2),
                        zone_value=map_point_to_zone(
                            metric_key, point.raw_value, direction, ranking_values, point.context_text
                        ),
                    )
                    for point in points
                ],
            ))
            legend.append(ClinicalLegendItem(
                metric_key=metric_key,
                metric_label=label,
                source=ObservationSource.CLINICAL_EVENT,
                staged=staged,
                direction=direction,
            ))

        series.append(ClinicalSeries(
            metric_key=metric_key,
            metric_label=label,
            source=ObservationSource.MERGED,
            points=assumed_baseline_points(window),
        ))
        legend.append(ClinicalLegendItem(
            metric_key=metric_key,
            metric_label=label,
            source=ObservationSource.MERGED,
            staged=False,
            assumed=True,
            direction=direction,
        ))

    return series, legend


def derive_directional_panel(
    events: list[ClinicalEvent],
    direction: Direction,
    window: DateWindow,
) -> DirectionalClinicalPanel:
    metric_keys = HIGHER_WORSE_METRICS if direction == Direction.HIGHER_WORSE else LOWER_WORSE_METRICS
    rows = derive_directional_rows(events, metric_keys, direction, window)
    series, legend = derive_directional_series(events, metric_keys, direction, window)
    logger.debug(f"{direction.value} panel: {len(rows)} rows, {len(series)} series")
    return DirectionalClinicalPanel(
        direction=direction,
        zones=zone_definitions(),
        healthy_baseline_zone=ZoneValue.SAFE,
        rows=rows,
        series=series,
        legend=legend,
    )


# ── Weight timeline + snapshot ──────────────────────────────────────────────

def derive_weight_timeline(
    logs: list[DailyLogRecord],
    events: list[ClinicalEvent],
    window: DateWindow,
    healthy_reference_lb: float = HEALTHY_REFERENCE_WEIGHT_LB,
) -> WeightTimeline:
    """Log weights first; clinical weigh-ins only fill dates without a log weight."""
    log_points = collapse_observations_by_date([
        ClinicalObservation(date=log.date, raw_value=log.weight_lb, source=ObservationSource.LOG)
        for log in logs
        if log.weight_lb is not None and window.contains(log.date)
    ])
    by_date = {point.date: round_to(point.raw_value, 2) for point in log_points}

    clinical_points = collapse_observations_by_date(
        extract_clinical_observations(events, WEIGHT_MEASUREMENT_KEY, window.from_date, window.to_date)
    )
    for point in clinical_points:
        by_date.setdefault(point.date, round_to(point.raw_value, 2))

    return WeightTimeline(
        healthy_reference_lb=healthy_reference_lb,
        series=[
            WeightTimelinePoint(date=day, weight_lb=by_date[day], source=ObservationSource.MERGED)
            for day in sorted(by_date)
        ],
    )


def derive_measurement_snapshot(
    events: list[ClinicalEvent],
    limit: int = MEASUREMENT_SNAPSHOT_LIMIT,
) -> list[MeasurementSnapshotItem]:
    """Most recent value of each distinct measurement key, newest events first."""
    snapshot: list[MeasurementSnapshotItem] = []
    seen: set[str] = set()
    for event in sorted(events, key=lambda e: (e.date, e.id), reverse=True):
        for measurement in event.measurements:
            if measurement.key in seen:
                continue
            seen.add(measurement.key)
            observation = ClinicalObservation(
                date=event.date,
                raw_value=measurement.value,
                comparator=measurement.comparator,
                unit=measurement.unit,
            )
            snapshot.append(MeasurementSnapshotItem(
                key=measurement.key,
                label=measurement.label,
                value_text=format_value_text(observation),
                date=event.date,
            ))
            if len(snapshot) >= limit:
                return snapshot
    return snapshot
