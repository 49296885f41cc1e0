from __future__ import annotations

from packages.shared.models import ContextEvent, DailyLogRecord
from packages.shared.utils.numeric import format_number


def _medication_text(log: DailyLogRecord) -> str:
    if not log.medications:
        return "no meds"
    parts = []
    for med in log.medications:
        dose = f" {med.dose}" if med.dose else ""
        parts.append(f"{med.name}{dose} {'taken' if med.taken else 'skipped'}")
    return ", ".join(parts)


def to_canonical_text(log: DailyLogRecord) -> str:
    parts = [f"On {log.date}, mode {log.mode.value}"]
    if log.water_intake_oz is not None:
        parts.append(f"water intake {format_number(log.water_intake_oz)} oz")
    if log.appetite_score is not None:
        parts.append(f"appetite {log.appetite_score}/5")
    if log.energy_score is not None:
        parts.append(f"energy {log.energy_score}/5")
    if log.vomiting_count is not None:
        parts.append(f"vomiting {log.vomiting_count}")
    if log.urination_score is not None:
        parts.append(f"urination {log.urination_score}/3")
    if log.stool_score is not None:
        parts.append(f"stool {log.stool_score}/3")
    if log.weight_lb is not None:
        parts.append(f"weight {format_number(log.weight_lb)} lb")
    parts.append(f"medications: {_medication_text(log)}")
    if log.notes:
        parts.append(f"notes: {log.notes}")
    return "; ".join(parts)


def to_context_events(logs: list[DailyLogRecord]) -> list[ContextEvent]:
    """One canonical text event per log, oldest first."""
    events = []
    for log in sorted(logs, key=lambda l: l.date):
        events.append(ContextEvent(
            id=f"daily-log:{log.id}",
            date=log.date,
            canonical_text=to_canonical_text(log),
            metadata={
                "createdBy": log.created_by,
                "createdAt": log.created_at,
                "updatedAt": log.updated_at,
                "metrics": {
                    "waterIntakeOz": log.water_intake_oz,
                    "appetiteScore": log.appetite_score,
                    "energyScore": log.energy_score,
                    "vomitingCount": log.vomiting_count,
                    "urinationScore": log.urination_score,
                    "stoolScore": log.stool_score,
                    "weightLb": log.weight_lb,
                },
                "medications": [m.model_dump(by_alias=True) for m in log.medications],
                "notes": log.notes,
            },
        ))
    return events
