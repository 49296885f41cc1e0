"""
Step 5 — Hybrid alerts.
Curated regex triggers over raw notes plus lexicon mention scores, merged
with the latest threshold alert per metric into one ranked chip list.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from apps.worker.lib.nlp import active_terms, extract_issue_mentions
from packages.shared.models import (
    AlertItem,
    ChipSource,
    DailyLogRecord,
    DateWindow,
    HybridAlertChip,
    IssueMention,
    LexiconTerm,
    Severity,
    TriggerId,
)

logger = logging.getLogger(__name__)

THRESHOLD_METRIC_LABELS = {
    "waterIntakeOz": "Low water intake",
    "appetiteScore": "Low appetite",
    "energyScore": "Low energy",
    "vomitingCount": "Vomiting increase",
    "urinationScore": "Urination change",
    "stoolScore": "Stool change",
    "weightLb": "Weight loss",
}

ORAL_TOKEN_RE = re.compile(r"(oral|mouth|tongue|lip|gum|gingiv|saliva|drool|chin)", re.IGNORECASE)
BLOOD_TOKEN_RE = re.compile(r"(blood|bleed|bleeding|bloody)", re.IGNORECASE)
ORAL_DYSFUNCTION_RE = re.compile(
    r"(tongue|oral discomfort|kibble avoidance|chew|chewing|pill[^.]{0,20}(refus|spit|intoler|difficult)"
    r"|pill intolerance|spitting)",
    re.IGNORECASE,
)
APPETITE_CRISIS_RE = re.compile(
    r"(not eating|won't eat|wont eat|refus(?:ing|ed)? to eat|stopped eating|no appetite|low appetite)",
    re.IGNORECASE,
)
RESPIRATORY_RE = re.compile(r"(respir|breath|tachypnea|rr\b|rapid breathing)", re.IGNORECASE)
RESPIRATORY_STRESS_RE = re.compile(r"(spike|high|rapid|labored|stress|4[0-9])", re.IGNORECASE)

VOMITING_ISSUE_KEY = "vomiting"
LOW_APPETITE_ISSUE_KEY = "low-appetite"
VOMITING_SPIKE_SCORE = 3.0
VOMITING_SPIKE_COUNT = 2
APPETITE_CRISIS_SCORE = 2.3

TRIGGER_DEFINITIONS: dict[TriggerId, tuple[Severity, str, str]] = {
    TriggerId.ORAL_BLEEDING: (
        Severity.CRITICAL, "Oral bleeding", "Blood and oral-area signs were detected in notes.",
    ),
    TriggerId.ORAL_DYSFUNCTION: (
        Severity.WARNING, "Oral dysfunction", "Oral discomfort or chewing/pill-tolerance issues were detected.",
    ),
    TriggerId.VOMITING_SPIKE: (
        Severity.CRITICAL, "Vomiting spike", "Vomiting burden exceeded curated spike threshold.",
    ),
    TriggerId.APPETITE_CRISIS: (
        Severity.WARNING, "Appetite crisis", "High appetite concern signals were detected in notes.",
    ),
    TriggerId.RESPIRATORY_STRESS: (
        Severity.CRITICAL, "Respiratory stress", "Respiratory stress pattern detected in notes.",
    ),
}


def _mention_for(mentions: list[IssueMention], issue_key: str) -> Optional[IssueMention]:
    return next((m for m in mentions if m.issue_key == issue_key), None)


def detect_triggers(notes: str, mentions: list[IssueMention]) -> list[TriggerId]:
    """Triggers fired by one log's notes, in declaration order."""
    text = notes.lower()
    vomiting = _mention_for(mentions, VOMITING_ISSUE_KEY)
    appetite = _mention_for(mentions, LOW_APPETITE_ISSUE_KEY)

    fired: list[TriggerId] = []
    if BLOOD_TOKEN_RE.search(text) and ORAL_TOKEN_RE.search(text):
        fired.append(TriggerId.ORAL_BLEEDING)
    if ORAL_DYSFUNCTION_RE.search(text):
        fired.append(TriggerId.ORAL_DYSFUNCTION)
    if vomiting and (vomiting.weighted_score >= VOMITING_SPIKE_SCORE or vomiting.mention_count >= VOMITING_SPIKE_COUNT):
        fired.append(TriggerId.VOMITING_SPIKE)
    if APPETITE_CRISIS_RE.search(text) or (appetite and appetite.weighted_score >= APPETITE_CRISIS_SCORE):
        fired.append(TriggerId.APPETITE_CRISIS)
    if RESPIRATORY_RE.search(text) and RESPIRATORY_STRESS_RE.search(text):
        fired.append(TriggerId.RESPIRATORY_STRESS)
    return fired


def trigger_chip(trigger_id: TriggerId, date: str) -> HybridAlertChip:
    severity, label, message = TRIGGER_DEFINITIONS[trigger_id]
    return HybridAlertChip(
        id=f"nlp-{trigger_id.value}-{date}",
        trigger_id=trigger_id,
        severity=severity,
        label=label,
        message=message,
        date=date,
        source=ChipSource.NLP,
    )


def latest_threshold_chips(alerts: list[AlertItem]) -> list[HybridAlertChip]:
    """One chip per metric: the most recent alert, critical winning same-day ties."""
    by_metric: dict[str, AlertItem] = {}
    for alert in alerts:
        current = by_metric.get(alert.metric)
        if (
            current is None
            or alert.date > current.date
            or (alert.date == current.date and alert.severity == Severity.CRITICAL)
        ):
            by_metric[alert.metric] = alert

    return [
        HybridAlertChip(
            id=f"threshold-{alert.metric}-{alert.date}",
            trigger_id=None,
            severity=alert.severity,
            label=THRESHOLD_METRIC_LABELS.get(alert.metric, alert.metric),
            message=alert.message,
            date=alert.date,
            source=ChipSource.THRESHOLD,
        )
        for _, alert in sorted(by_metric.items())
    ]


def sort_chips(chips: list[HybridAlertChip]) -> list[HybridAlertChip]:
    """Date descending, then critical before warning, then label."""
    ordered = sorted(chips, key=lambda c: (c.severity != Severity.CRITICAL, c.label))
    return sorted(ordered, key=lambda c: c.date, reverse=True)


def derive_hybrid_alerts(
    logs: list[DailyLogRecord],
    terms: list[LexiconTerm],
    window: DateWindow,
) -> list[HybridAlertChip]:
    matcher_terms = active_terms(terms)
    range_logs = [log for log in logs if window.contains(log.date)]

    threshold_chips = latest_threshold_chips([
        alert for log in range_logs for alert in log.alerts if window.contains(alert.date)
    ])

    per_day: dict[tuple[TriggerId, str], HybridAlertChip] = {}
    for log in range_logs:
        if not (log.notes or "").strip():
            continue
        mentions = extract_issue_mentions(log.notes, matcher_terms)
        for trigger_id in detect_triggers(log.notes, mentions):
            per_day[(trigger_id, log.date)] = trigger_chip(trigger_id, log.date)

    latest_per_trigger: dict[TriggerId, HybridAlertChip] = {}
    for (trigger_id, _), chip in sorted(per_day.items(), key=lambda kv: (kv[0][0].value, kv[0][1])):
        existing = latest_per_trigger.get(trigger_id)
        if existing is None or chip.date > existing.date:
            latest_per_trigger[trigger_id] = chip

    logger.debug(
        f"Hybrid alerts: {len(latest_per_trigger)} trigger chips, {len(threshold_chips)} threshold chips"
    )
    return sort_chips([*latest_per_trigger.values(), *threshold_chips])
