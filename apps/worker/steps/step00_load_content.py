"""
Step 0 — Content loading.
Read the four JSON content files, build the pydantic records and derive
mentions and threshold alerts once. `ContentCache` holds the result so
repeated requests reuse one load until invalidated.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from packages.shared.models import ClinicalEvent, DailyLogRecord, LexiconTerm, LoadedContent, ThresholdConfig

from apps.worker.lib.nlp import normalize_phrase, seed_lexicon_terms
from apps.worker.steps.step01_normalize_logs import derive_logs

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(os.environ.get("CONTENT_DIR", "./content"))

MEDICAL_LOGS_FILE = "medical_logs.json"
LEXICON_FILE = "lexicon.json"
THRESHOLDS_FILE = "thresholds.json"
CLINICAL_EVENTS_FILE = "clinical-events.json"


class ContentLoadError(ValueError):
    """A content file is missing, is not JSON, or does not build into records."""

    def __init__(self, path: Path | str, detail: str):
        self.path = str(path)
        self.detail = detail
        super().__init__(f"{self.path}: {detail}")


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as exc:
        raise ContentLoadError(path, "file not found") from exc
    except json.JSONDecodeError as exc:
        raise ContentLoadError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc


def _section(path: Path, raw: Any, key: str) -> Any:
    if not isinstance(raw, dict) or key not in raw:
        raise ContentLoadError(path, f"expected an object with a '{key}' field")
    return raw[key]


def _build(path: Path, factory: Callable[[], Any]) -> Any:
    try:
        return factory()
    except ValidationError as exc:
        raise ContentLoadError(path, f"{exc.error_count()} validation error(s): {exc}") from exc


def _reject_duplicate_ids(path: Path, ids: list[str], kind: str) -> None:
    seen: set[str] = set()
    for item_id in ids:
        if item_id in seen:
            raise ContentLoadError(path, f'duplicate {kind} id "{item_id}"')
        seen.add(item_id)


def _build_terms(path: Path, raw_terms: list[dict]) -> list[LexiconTerm]:
    if not raw_terms:
        logger.info(f"{path} has no terms, using the seed lexicon")
        return seed_lexicon_terms()

    terms: list[LexiconTerm] = []
    for raw in raw_terms:
        term = _build(path, lambda: LexiconTerm.model_validate(raw))
        normalized = normalize_phrase(term.phrase)
        if not normalized:
            raise ContentLoadError(path, f'phrase "{term.phrase}" is empty after normalization')
        terms.append(term.model_copy(update={"normalized_phrase": normalized}))
    return terms


def load_content_dir(content_dir: Optional[Path | str] = None) -> LoadedContent:
    """Read and derive all content from *content_dir* (defaults to CONTENT_DIR)."""
    root = Path(content_dir) if content_dir is not None else CONTENT_DIR
    logs_path = root / MEDICAL_LOGS_FILE
    lexicon_path = root / LEXICON_FILE
    thresholds_path = root / THRESHOLDS_FILE
    events_path = root / CLINICAL_EVENTS_FILE

    raw_logs = _section(logs_path, _read_json(logs_path), "logs")
    entries = _build(logs_path, lambda: [DailyLogRecord.model_validate(item) for item in raw_logs])
    _reject_duplicate_ids(logs_path, [e.id for e in entries], "log")

    terms = _build_terms(lexicon_path, _section(lexicon_path, _read_json(lexicon_path), "terms"))

    raw_thresholds = _section(thresholds_path, _read_json(thresholds_path), "thresholds")
    thresholds = _build(thresholds_path, lambda: ThresholdConfig.model_validate(raw_thresholds))

    raw_events = _section(events_path, _read_json(events_path), "events")
    events = _build(events_path, lambda: [ClinicalEvent.model_validate(item) for item in raw_events])
    _reject_duplicate_ids(events_path, [e.id for e in events], "event")

    content = LoadedContent(
        logs=derive_logs(entries, thresholds),
        lexicon_terms=terms,
        thresholds=thresholds,
        clinical_events=events,
    )
    logger.info(
        f"Loaded content from {root}: {len(content.logs)} logs, {len(terms)} lexicon terms, "
        f"{len(events)} clinical events"
    )
    return content


class ContentCache:
    """
    Holds one LoadedContent per process (or per test) until invalidated.
    The loader is injectable so callers can point it at fixtures.
    """

    def __init__(self, loader: Optional[Callable[[], LoadedContent]] = None):
        self._loader = loader or load_content_dir
        self._content: Optional[LoadedContent] = None

    def get(self, fresh: bool = False) -> LoadedContent:
        if fresh or self._content is None:
            self._content = self._loader()
        return self._content

    def invalidate(self) -> None:
        self._content = None
