"""Folding a session's batch reports into one session summary.

``aggregate_batch_reports`` is a pure function of its input list. The
numeric aggregates do not depend on the order of the reports; the
insight and recommendation lists keep first occurrences in input order,
so they do.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from sessionlens.domain.models import BatchReport, SessionSummary
from sessionlens.utils.numbers import round_half_up

MAX_INSIGHTS = 10
MAX_RECOMMENDATIONS = 8


def _first_occurrences(items: Iterable[str], limit: int) -> list[str]:
    return list(dict.fromkeys(items))[:limit]


def aggregate_batch_reports(session_id: str, reports: Sequence[BatchReport]) -> SessionSummary:
    """Aggregate batch reports (expected in batch-number order) for a session."""
    total_screenshots = sum(r.screenshot_count for r in reports)

    scores = [r.analysis.productivity_metrics.focus_score for r in reports if r.analysis is not None]
    # fsum is exact, so the mean is independent of report order
    average = math.fsum(scores) / len(scores) if scores else 0.0

    analyses = [r.analysis for r in reports if r.analysis is not None]
    insights = _first_occurrences((i for a in analyses for i in a.insights), MAX_INSIGHTS)
    recommendations = _first_occurrences(
        (rec for a in analyses for rec in a.recommendations), MAX_RECOMMENDATIONS
    )

    return SessionSummary(
        session_id=session_id,
        total_batches=len(reports),
        total_screenshots=total_screenshots,
        average_productivity=average,
        focus_percentage=round_half_up(average * 100),
        insights=insights,
        recommendations=recommendations,
        overview=(
            f"Session analyzed across {len(reports)} batches "
            f"with {total_screenshots} total screenshots"
        ),
    )


def format_duration(seconds: int) -> str:
    """Render a duration as "1h 5m", "4m 10s" or "42s"."""
    hours, remainder = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
