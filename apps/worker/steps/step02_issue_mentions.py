"""
Step 2 — Issue mention aggregation.
Run the lexicon matcher over every in-window log with notes, then fold the
per-log rows into issue rankings and dense daily series.
"""
from __future__ import annotations

import logging
from typing import Optional

from apps.worker.lib.nlp import active_terms, extract_issue_mentions
from packages.shared.models import (
    DailyLogRecord,
    DateWindow,
    IssueInsightItem,
    IssueInsights,
    IssueInsightSeriesPoint,
    IssueWeightedRankItem,
    IssueWeightedSeriesPoint,
    LexiconTerm,
    MentionRow,
    WeightedIssueSeries,
)
from packages.shared.utils.numeric import round_to

logger = logging.getLogger(__name__)


def collect_issue_rows(
    logs: list[DailyLogRecord],
    terms: list[LexiconTerm],
    window: DateWindow,
) -> tuple[list[MentionRow], int]:
    """Returns (mention rows, analyzed log count) for logs inside the window."""
    matcher_terms = active_terms(terms)
    rows: list[MentionRow] = []
    analyzed_logs = 0

    for log in logs:
        if not window.contains(log.date) or not (log.notes or "").strip():
            continue
        analyzed_logs += 1
        for mention in extract_issue_mentions(log.notes, matcher_terms):
            rows.append(MentionRow(
                source_id=log.id,
                issue_key=mention.issue_key,
                label=mention.label,
                mention_count=mention.mention_count,
                weighted_score=mention.weighted_score,
                evidence_snippet=mention.evidence_snippet,
                date=log.date,
            ))

    logger.debug(f"Collected {len(rows)} mention rows from {analyzed_logs} logs ({window.from_date}..{window.to_date})")
    return rows, analyzed_logs


def daily_weighted_totals(rows: list[MentionRow], dates: list[str]) -> list[float]:
    """Sum of weighted scores per date, aligned with `dates` (zero-filled)."""
    totals = {d: 0.0 for d in dates}
    for row in rows:
        if row.date in totals:
            totals[row.date] += row.weighted_score
    return [totals[d] for d in dates]


def derive_weighted_issue_series(
    logs: list[DailyLogRecord],
    terms: list[LexiconTerm],
    window: DateWindow,
    limit: Optional[int] = 5,
) -> WeightedIssueSeries:
    """
    Rank issues by total weighted score (ties: most recent last-seen date, then issue key)
    and build a per-day score series for the ranked issues.
    `limit=None` keeps every issue.
    """
    rows, analyzed_logs = collect_issue_rows(logs, terms, window)

    ranks: dict[str, IssueWeightedRankItem] = {}
    scores_by_date: dict[str, dict[str, float]] = {d: {} for d in window.dates}

    for row in rows:
        rank = ranks.get(row.issue_key)
        if rank is None:
            rank = IssueWeightedRankItem(
                issue_key=row.issue_key,
                label=row.label,
                weighted_score=0.0,
                mention_count=0,
                last_seen_date=row.date,
            )
            ranks[row.issue_key] = rank
        rank.weighted_score += row.weighted_score
        rank.mention_count += row.mention_count
        if row.date > rank.last_seen_date:
            rank.last_seen_date = row.date

        day_scores = scores_by_date.setdefault(row.date, {})
        day_scores[row.issue_key] = round_to(day_scores.get(row.issue_key, 0.0) + row.weighted_score, 2)

    # Stable passes, least significant first: issue key, then recency, then score.
    ordered = sorted(ranks.values(), key=lambda r: r.issue_key)
    ordered = sorted(ordered, key=lambda r: r.last_seen_date, reverse=True)
    ordered = sorted(ordered, key=lambda r: r.weighted_score, reverse=True)
    if limit is not None:
        ordered = ordered[:limit]
    ranked = [r.model_copy(update={"weighted_score": round_to(r.weighted_score, 2)}) for r in ordered]

    active_keys = sorted(r.issue_key for r in ranked)
    daily_series = [
        IssueWeightedSeriesPoint(
            date=d,
            scores={key: round_to(scores_by_date[d].get(key, 0.0), 2) for key in active_keys},
        )
        for d in window.dates
    ]

    return WeightedIssueSeries(rank=ranked, daily_series=daily_series, analyzed_logs=analyzed_logs)


def aggregate_issue_insights(
    rows: list[MentionRow],
    window: DateWindow,
    analyzed_logs: int,
    limit: int = 5,
    include_snippets: bool = True,
) -> IssueInsights:
    """
    Plain mention counts per issue for "recent issues" views.
    The snippet comes from the most recent log date, falling back to the
    first available snippet when that log had none.
    """
    by_issue: dict[str, dict] = {}
    counts_by_date: dict[str, dict[str, int]] = {}

    for row in rows:
        issue = by_issue.get(row.issue_key)
        if issue is None:
            issue = {
                "label": row.label,
                "count": 0,
                "weighted_score": 0.0,
                "last_seen_date": row.date,
                "latest_snippet": None,
            }
            by_issue[row.issue_key] = issue

        issue["count"] += row.mention_count
        issue["weighted_score"] += row.weighted_score
        if row.date > issue["last_seen_date"]:
            issue["last_seen_date"] = row.date
            issue["latest_snippet"] = row.evidence_snippet
        elif not issue["latest_snippet"] and row.evidence_snippet:
            issue["latest_snippet"] = row.evidence_snippet

        day_counts = counts_by_date.setdefault(row.date, {})
        day_counts[row.issue_key] = day_counts.get(row.issue_key, 0) + row.mention_count

    ordered = sorted(by_issue.items(), key=lambda kv: kv[0])
    ordered = sorted(ordered, key=lambda kv: kv[1]["last_seen_date"], reverse=True)
    ordered = sorted(ordered, key=lambda kv: kv[1]["weighted_score"], reverse=True)[:limit]

    top_issues = [
        IssueInsightItem(
            issue_key=key,
            label=value["label"],
            count=value["count"],
            last_seen_date=value["last_seen_date"],
            latest_snippet=value["latest_snippet"] if include_snippets else None,
        )
        for key, value in ordered
    ]
    daily_series = [
        IssueInsightSeriesPoint(date=d, counts=dict(sorted(counts_by_date.get(d, {}).items())))
        for d in window.dates
    ]

    return IssueInsights(
        window_days=window.days,
        top_issues=top_issues,
        daily_series=daily_series,
        total_analyzed_logs=analyzed_logs,
    )


def derive_issue_insights(
    logs: list[DailyLogRecord],
    terms: list[LexiconTerm],
    window: DateWindow,
    limit: int = 5,
    include_snippets: bool = True,
) -> IssueInsights:
    rows, analyzed_logs = collect_issue_rows(logs, terms, window)
    return aggregate_issue_insights(rows, window, analyzed_logs, limit=limit, include_snippets=include_snippets)
