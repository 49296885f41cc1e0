"""
Unit tests for the tokenizer and lexicon matcher.
"""
from __future__ import annotations

from apps.worker.lib.nlp import (
    active_terms,
    extract_issue_mentions,
    normalize_phrase,
    seed_lexicon_terms,
    tokenize,
)
from packages.shared.models import LexiconTerm


def _term(phrase: str, issue_key: str, weight: float = 1.0, label: str | None = None, active: bool = True) -> LexiconTerm:
    return LexiconTerm(
        id=f"t-{normalize_phrase(phrase).replace(' ', '-')}-{issue_key}",
        issue_key=issue_key,
        label=label or issue_key.replace("-", " ").title(),
        phrase=phrase,
        normalized_phrase=normalize_phrase(phrase),
        weight=weight,
        is_active=active,
    )


class TestTokenizer:
    def test_normalize_strips_punctuation_and_case(self):
        assert normalize_phrase("  Won't EAT!!  today ") == "won t eat today"

    def test_tokenize_empty(self):
        assert tokenize("") == []
        assert tokenize("   ...  ") == []

    def test_tokenize_digits_kept(self):
        assert tokenize("RR 44, rapid") == ["rr", "44", "rapid"]


class TestExtractIssueMentions:
    def test_negated_mentions_dropped(self):
        terms = [_term("vomiting", "vomiting"), _term("low appetite", "low-appetite")]
        assert extract_issue_mentions("No vomiting and not low appetite today.", terms) == []

    def test_longest_phrase_preferred(self):
        terms = [
            _term("low appetite", "low-appetite", 1.0),
            _term("very low energy", "lethargy", 1.5),
            _term("low energy", "lethargy", 1.0),
        ]
        mentions = extract_issue_mentions("Momoo had very low energy and low appetite today.", terms)
        by_key = {m.issue_key: m for m in mentions}
        assert set(by_key) == {"lethargy", "low-appetite"}
        assert by_key["lethargy"].weighted_score == 1.5
        assert by_key["lethargy"].mention_count == 1
        assert [m.issue_key for m in mentions] == ["lethargy", "low-appetite"]

    def test_negation_window_is_three_tokens(self):
        terms = [_term("vomiting", "vomiting")]
        # "no" falls outside the three tokens before the hit
        mentions = extract_issue_mentions("no food for him but vomiting", terms)
        assert len(mentions) == 1

    def test_repeated_hits_fold_into_one_mention(self):
        terms = [_term("vomiting", "vomiting", 1.5), _term("throwing up", "vomiting", 1.6)]
        mentions = extract_issue_mentions("Vomiting in the morning, throwing up again at night.", terms)
        assert len(mentions) == 1
        assert mentions[0].mention_count == 2
        assert round(mentions[0].weighted_score, 2) == 3.1

    def test_best_term_by_weight_then_issue_key(self):
        terms = [_term("pain", "pain-discomfort", 1.0), _term("pain", "abdominal", 1.0), _term("pain", "zz-heavy", 2.0)]
        mentions = extract_issue_mentions("some pain", terms)
        assert [m.issue_key for m in mentions] == ["zz-heavy"]

        tied = extract_issue_mentions("some pain", terms[:2])
        assert [m.issue_key for m in tied] == ["abdominal"]

    def test_snippet_window_around_first_token(self):
        notes = "x" * 60 + " vomiting " + "y" * 150
        mentions = extract_issue_mentions(notes, [_term("vomiting", "vomiting")])
        snippet = mentions[0].evidence_snippet
        assert snippet.startswith("x" * 39)
        assert "vomiting" in snippet
        assert len(snippet) <= 140

    def test_snippet_collapses_whitespace(self):
        mentions = extract_issue_mentions("Was\n\n  vomiting   a lot", [_term("vomiting", "vomiting")])
        assert mentions[0].evidence_snippet == "Was vomiting a lot"

    def test_empty_inputs(self):
        assert extract_issue_mentions("", [_term("vomiting", "vomiting")]) == []
        assert extract_issue_mentions("vomiting", []) == []

    def test_active_terms_filter(self):
        terms = [_term("vomiting", "vomiting"), _term("nausea", "nausea", active=False)]
        assert [t.issue_key for t in active_terms(terms)] == ["vomiting"]

    def test_idempotent(self):
        terms = seed_lexicon_terms()
        text = "Lethargic and not drinking, some diarrhea and pain."
        first = extract_issue_mentions(text, terms)
        second = extract_issue_mentions(text, terms)
        assert [m.model_dump() for m in first] == [m.model_dump() for m in second]


def test_seed_lexicon_terms_normalized():
    terms = seed_lexicon_terms()
    assert len({t.id for t in terms}) == len(terms)
    assert all(t.normalized_phrase == normalize_phrase(t.phrase) for t in terms)
    assert all(0.5 <= t.weight <= 3 for t in terms)
