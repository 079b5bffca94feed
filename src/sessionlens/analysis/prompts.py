"""Prompt construction for the two inference-backed analysis modes.

Both prompts ask for the same fixed-schema JSON assessment so a single
parser handles either response.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence

from sessionlens.domain.models import PriorAnalysis, Screenshot

MAX_INTERVAL_SECONDS = 1800

ASSESSMENT_SCHEMA = """{
  "summary": "One paragraph, progress-focused narrative of the whole window of work",
  "workCompleted": ["Specific task completed or progressed"],
  "timeBreakdown": {
    "coding": 0, "meetings": 0, "communication": 0, "research": 0,
    "debugging": 0, "design": 0, "documentation": 0, "contextSwitching": 0
  },
  "insights": ["Observation about how the work went"],
  "recommendations": ["Concrete, supportive suggestion"],
  "applications": ["Application name"],
  "productivityMetrics": {
    "focusScore": 0.0,
    "distractionEvents": 0,
    "taskSwitching": 0
  }
}"""

GUIDELINES = """## GUIDELINES
- focusScore is a number between 0.0 and 1.0 for sustained, undistracted work.
- distractionEvents and taskSwitching are non-negative integers.
- NEVER include passwords, API keys, credentials, or personal data in the output.
- Describe work patterns in empowering, non-judgmental language; frame blockers as needs for support.
- Respond with the JSON object only (no markdown, no explanation)."""

VISION_PROMPT = """You are a work-session analyst. You receive {count} screenshots from one work session, in capture order, plus capture metadata for each image.

## CONTEXT
- Session window: {duration_minutes} minutes
- Screenshots analyzed: {count}
- Applications detected: {applications}
- Average screenshot interval: {average_interval} seconds
- Capture triggers: {triggers}

## SCREENSHOT TIMELINE
{timeline}

## TASK
Write one cohesive narrative of what was worked on across the whole window (not a per-image list), then assess it.
Consider which tasks progressed, which tools were used and why, how much context switching happened, and any blockers.

Return a JSON object with exactly this structure:
{schema}

{guidelines}
"""

PRIORS_PROMPT = """You are a work-session analyst. Each line below describes one screenshot from a work session that was already analyzed individually. Synthesize them into one assessment of the whole window.

## CONTEXT
- Session window: {duration_minutes} minutes
- Screenshots described: {count}
- Applications detected: {applications}

## SCREENSHOT DIGEST (time | application | description)
{digest}

Return a JSON object with exactly this structure:
{schema}

{guidelines}
"""


def capture_intervals(screenshots: Sequence[Screenshot]) -> list[int]:
    """Seconds between consecutive captures, clamped to [0, 1800]."""
    intervals = []
    for prev, curr in zip(screenshots, screenshots[1:]):
        seconds = round((curr.created_at - prev.created_at).total_seconds())
        intervals.append(max(0, min(seconds, MAX_INTERVAL_SECONDS)))
    return intervals


def _duration_minutes(screenshots: Sequence[Screenshot]) -> int:
    if len(screenshots) < 2:
        return 0
    return round((screenshots[-1].created_at - screenshots[0].created_at).total_seconds() / 60)


def _applications(screenshots: Sequence[Screenshot]) -> str:
    apps = list(dict.fromkeys(s.active_app for s in screenshots if s.active_app))
    return ", ".join(apps) if apps else "Unknown (app detection unavailable)"


def build_vision_prompt(screenshots: Sequence[Screenshot]) -> str:
    """Prompt for the vision-batch mode; images are attached in the same order."""
    intervals = capture_intervals(screenshots)
    average = round(sum(intervals) / len(intervals)) if intervals else 0
    triggers = Counter(s.capture_trigger.value for s in screenshots)

    timeline = []
    for index, shot in enumerate(screenshots):
        elapsed = intervals[index - 1] if index > 0 else 0
        timeline.append(
            f"Image {index + 1}. [+{elapsed}s] {shot.capture_trigger.value} -> "
            f"{shot.active_app or 'Unknown'}"
        )

    return VISION_PROMPT.format(
        count=len(screenshots),
        duration_minutes=_duration_minutes(screenshots),
        applications=_applications(screenshots),
        average_interval=average,
        triggers=", ".join(f"{name}: {n}" for name, n in triggers.items()),
        timeline="\n".join(timeline),
        schema=ASSESSMENT_SCHEMA,
        guidelines=GUIDELINES,
    )


def build_priors_prompt(
    screenshots: Sequence[Screenshot],
    priors: Mapping[str, PriorAnalysis],
) -> str:
    """Prompt for the aggregate-of-priors mode: a textual digest, no images."""
    digest = []
    for shot in screenshots:
        prior = priors.get(shot.id)
        description = " ".join(prior.description.split()) if prior else "(no prior analysis)"
        digest.append(
            f"{shot.created_at.strftime('%H:%M:%S')} | {shot.active_app or 'Unknown'} | {description}"
        )

    return PRIORS_PROMPT.format(
        count=len(screenshots),
        duration_minutes=_duration_minutes(screenshots),
        applications=_applications(screenshots),
        digest="\n".join(digest),
        schema=ASSESSMENT_SCHEMA,
        guidelines=GUIDELINES,
    )
