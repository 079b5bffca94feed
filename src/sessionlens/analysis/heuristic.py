"""Local analysis from capture metadata only.

Always available and deterministic: the result depends only on the
batch's capture-trigger distribution and application diversity.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from sessionlens.analysis.base import AnalysisStrategy
from sessionlens.domain.models import (
    Batch,
    CaptureTrigger,
    HeuristicAnalysis,
    ProductivityMetrics,
    Screenshot,
)
from sessionlens.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

NEUTRAL_FOCUS = 0.5


def focus_from_triggers(timer_count: int, click_count: int) -> float:
    """Share of timer-triggered captures among timer and click captures."""
    total = timer_count + click_count
    if total == 0:
        return NEUTRAL_FOCUS
    return max(0.0, min(1.0, timer_count / total))


def heuristic_analysis(screenshots: Sequence[Screenshot]) -> HeuristicAnalysis:
    """Build an analysis from capture triggers and active applications."""
    count = len(screenshots)
    triggers = Counter(s.capture_trigger for s in screenshots)
    clicks = triggers[CaptureTrigger.CLICK]
    timer = triggers[CaptureTrigger.INTERVAL]
    focus_score = focus_from_triggers(timer, clicks)

    app_counts = Counter(s.active_app for s in screenshots if s.active_app)
    apps = [app for app, _ in app_counts.most_common()]
    click_percent = round_half_up(clicks / count * 100) if count else 0

    return HeuristicAnalysis(
        summary=f"Analysis of {count} screenshots showing activity across {len(apps)} applications",
        productivity_metrics=ProductivityMetrics(
            focus_score=focus_score,
            distraction_events=clicks,
            task_switching=len(apps) // 2,
        ),
        insights=[
            f"Primary applications used: {', '.join(apps[:2]) or 'none detected'}",
            f"Capture pattern: {click_percent}% click-based",
            f"Application diversity: {len(apps)} different applications detected",
        ],
        recommendations=[
            "Consider reducing task switching for better focus"
            if focus_score < 0.5
            else "Good focus patterns detected",
            "Enable detailed AI analysis for deeper insights",
        ],
        applications=apps[:3],
        work_patterns=f"{clicks} click-triggered and {timer} timer-triggered captures",
    )


class HeuristicStrategy(AnalysisStrategy):
    """Strategy wrapper around heuristic_analysis(); never fails."""

    name = "heuristic"

    async def analyze(self, batch: Batch) -> HeuristicAnalysis:
        result = heuristic_analysis(batch.screenshots)
        logger.info(
            "Heuristic analysis for session %s batch %d: focus=%.2f",
            batch.session_id, batch.batch_number, result.productivity_metrics.focus_score,
        )
        return result
