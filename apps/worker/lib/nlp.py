"""
Lexicon-based issue mention extraction.

Text is tokenized into lowercase alphanumeric tokens, then scanned left to
right for the longest lexicon phrase (3, 2, then 1 tokens). A hit preceded
within three tokens by a negation cue is dropped. Hits are folded into one
mention per issue key.
"""
from __future__ import annotations

import re
from typing import Iterable, Optional

from packages.shared.models import IssueMention, LexiconTerm

NEGATION_TOKENS = {"no", "not", "without", "denies", "none"}
NEGATION_WINDOW = 3
MAX_PHRASE_TOKENS = 3
SNIPPET_LEAD_CHARS = 40
SNIPPET_TRAIL_CHARS = 100
SNIPPET_FALLBACK_CHARS = 140

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]+")
_WS_RE = re.compile(r"\s+")

# Starter lexicon for chronic kidney disease caregiver notes.
CKD_SEED_ISSUE_TERMS: list[dict] = [
    {"issue_key": "low-appetite", "label": "Low Appetite", "phrase": "low appetite", "weight": 1.2},
    {"issue_key": "low-appetite", "label": "Low Appetite", "phrase": "not eating", "weight": 1.3},
    {"issue_key": "low-appetite", "label": "Low Appetite", "phrase": "reduced appetite", "weight": 1.1},
    {"issue_key": "vomiting", "label": "Vomiting", "phrase": "vomiting", "weight": 1.5},
    {"issue_key": "vomiting", "label": "Vomiting", "phrase": "throwing up", "weight": 1.6},
    {"issue_key": "nausea", "label": "Nausea", "phrase": "nausea", "weight": 1.2},
    {"issue_key": "lethargy", "label": "Lethargy", "phrase": "low energy", "weight": 1.3},
    {"issue_key": "lethargy", "label": "Lethargy", "phrase": "very low energy", "weight": 1.5},
    {"issue_key": "lethargy", "label": "Lethargy", "phrase": "lethargic", "weight": 1.4},
    {"issue_key": "dehydration-risk", "label": "Dehydration Risk", "phrase": "not drinking", "weight": 1.5},
    {"issue_key": "dehydration-risk", "label": "Dehydration Risk", "phrase": "dehydrated", "weight": 1.6},
    {"issue_key": "urination-change", "label": "Urination Change", "phrase": "less urine", "weight": 1.2},
    {"issue_key": "urination-change", "label": "Urination Change", "phrase": "increased urination", "weight": 1.1},
    {"issue_key": "stool-change", "label": "Stool Change", "phrase": "diarrhea", "weight": 1.3},
    {"issue_key": "stool-change", "label": "Stool Change", "phrase": "constipation", "weight": 1.3},
    {"issue_key": "pain-discomfort", "label": "Pain or Discomfort", "phrase": "pain", "weight": 1.4},
    {"issue_key": "pain-discomfort", "label": "Pain or Discomfort", "phrase": "uncomfortable", "weight": 1.2},
]


def normalize_phrase(text: str) -> str:
    lowered = (text or "").lower()
    return _WS_RE.sub(" ", _NON_ALNUM_RE.sub(" ", lowered)).strip()


def tokenize(text: str) -> list[str]:
    normalized = normalize_phrase(text)
    if not normalized:
        return []
    return normalized.split(" ")


def seed_lexicon_terms() -> list[LexiconTerm]:
    terms = []
    for idx, row in enumerate(CKD_SEED_ISSUE_TERMS, start=1):
        terms.append(LexiconTerm(
            id=f"seed-{idx:02d}",
            normalized_phrase=normalize_phrase(row["phrase"]),
            is_active=True,
            **row,
        ))
    return terms


def active_terms(terms: Iterable[LexiconTerm]) -> list[LexiconTerm]:
    return [t for t in terms if t.is_active]


def _has_negation_before(tokens: list[str], start: int) -> bool:
    window = tokens[max(0, start - NEGATION_WINDOW):start]
    return any(tok in NEGATION_TOKENS for tok in window)


def _build_phrase_map(terms: Iterable[LexiconTerm]) -> dict[str, list[LexiconTerm]]:
    phrase_map: dict[str, list[LexiconTerm]] = {}
    for term in terms:
        phrase = normalize_phrase(term.normalized_phrase or term.phrase)
        if not phrase:
            continue
        phrase_map.setdefault(phrase, []).append(term)
    return phrase_map


def _pick_best_term(candidates: list[LexiconTerm]) -> LexiconTerm:
    return sorted(candidates, key=lambda t: (-t.weight, t.issue_key))[0]


def _snippet_around(notes: str, phrase: str) -> Optional[str]:
    first_token = phrase.split(" ")[0]
    idx = notes.lower().find(first_token)
    if idx < 0:
        return _WS_RE.sub(" ", notes).strip()[:SNIPPET_FALLBACK_CHARS] or None
    start = max(0, idx - SNIPPET_LEAD_CHARS)
    end = min(len(notes), idx + SNIPPET_TRAIL_CHARS)
    return _WS_RE.sub(" ", notes[start:end]).strip() or None


def extract_issue_mentions(notes: str, terms: list[LexiconTerm]) -> list[IssueMention]:
    """
    Extract one aggregated mention per issue key from free text.
    Callers pass active terms only. Results are ordered by weighted score
    descending, then issue key.
    """
    tokens = tokenize(notes)
    if not tokens or not terms:
        return []

    phrase_map = _build_phrase_map(terms)
    hits: list[tuple[LexiconTerm, str]] = []

    index = 0
    while index < len(tokens):
        matched = False
        for length in range(MAX_PHRASE_TOKENS, 0, -1):
            if index + length > len(tokens):
                continue
            phrase = " ".join(tokens[index:index + length])
            candidates = phrase_map.get(phrase)
            if not candidates:
                continue
            if _has_negation_before(tokens, index):
                continue
            hits.append((_pick_best_term(candidates), phrase))
            index += length
            matched = True
            break
        if not matched:
            index += 1

    by_issue: dict[str, IssueMention] = {}
    for term, phrase in hits:
        existing = by_issue.get(term.issue_key)
        if existing is None:
            by_issue[term.issue_key] = IssueMention(
                issue_key=term.issue_key,
                label=term.label,
                term_id=term.id,
                mention_count=1,
                weighted_score=term.weight,
                evidence_snippet=_snippet_around(notes, phrase),
            )
            continue
        existing.mention_count += 1
        existing.weighted_score += term.weight

    return sorted(by_issue.values(), key=lambda m: (-m.weighted_score, m.issue_key))
