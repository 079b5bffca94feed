"""Three-tier parsing of raw model output into an AnalysisResult.

The tiers form an ordered chain of pure functions. Each returns an
optional result and the first non-None one wins:

1. ``try_structured`` -- the first balanced ``{...}`` object, decoded as
   JSON and validated against the fixed assessment schema.
2. ``try_text_summary`` -- a best-effort summary line plus an approximate
   score recovered from the prose.
3. The caller-supplied fallback result (normally the heuristic analysis
   of the same batch). Nothing in this module computes heuristics.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sessionlens.domain.models import (
    AnalysisResult,
    ProductivityMetrics,
    StructuredAnalysis,
    TextFallbackAnalysis,
)
from sessionlens.parsing.score import extract_score

logger = logging.getLogger(__name__)

SUMMARY_PREVIEW_CHARS = 200

APPROXIMATE_SCORE_NOTE = (
    "Focus score estimated from unstructured model text; treat it as approximate"
)

_SUMMARY_LINE = re.compile(r"summary|overview", re.IGNORECASE)
_INVALID_ESCAPE = re.compile(r'\\(?!["\\/bfnrtu])')


# ---------------------------------------------------------------------------
# Fixed assessment schema
# ---------------------------------------------------------------------------


class _MetricsPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    focus_score: float = Field(alias="focusScore")
    distraction_events: int = Field(default=0, alias="distractionEvents")
    task_switching: int = Field(default=0, alias="taskSwitching")

    @field_validator("focus_score", mode="before")
    @classmethod
    def _percent_to_ratio(cls, value: Any) -> float:
        score = _finite(value)
        # Models sometimes answer on a 0-100 scale.
        if 1.0 < score <= 100.0:
            score /= 100.0
        return score

    @field_validator("distraction_events", "task_switching", mode="before")
    @classmethod
    def _round_counts(cls, value: Any) -> int:
        return int(round(_finite(value)))


def _finite(value: Any) -> float:
    # json.loads accepts Infinity, NaN and out-of-range literals like 1e999
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"metric must be a finite number, got {value!r}")
    return number


class _AssessmentPayload(BaseModel):
    """The JSON object the prompts ask for.

    Also accepts the older nested layout where ``summary`` is an object
    and insights/recommendations live under ``recognition``/``automation``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str | dict[str, Any] = ""
    productivity_metrics: _MetricsPayload = Field(alias="productivityMetrics")
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    applications: list[str] = Field(default_factory=list)
    work_completed: list[str] = Field(default_factory=list, alias="workCompleted")
    time_breakdown: dict[str, float] = Field(default_factory=dict, alias="timeBreakdown")
    recognition: dict[str, Any] = Field(default_factory=dict)
    automation: dict[str, Any] = Field(default_factory=dict)

    @field_validator("time_breakdown", mode="after")
    @classmethod
    def _drop_non_finite(cls, value: dict[str, float]) -> dict[str, float]:
        return {k: v for k, v in value.items() if math.isfinite(v)}

    def to_result(self) -> StructuredAnalysis:
        summary = self.summary
        work_completed = list(self.work_completed)
        time_breakdown = dict(self.time_breakdown)
        if isinstance(summary, dict):
            work_completed = work_completed or _str_list(summary.get("workCompleted"))
            time_breakdown = time_breakdown or _number_map(summary.get("timeBreakdown"))
            summary = str(summary.get("reportReadySummary") or summary.get("text") or "")

        insights = list(self.insights) or _str_list(self.recognition.get("accomplishments"))
        recommendations = list(self.recommendations) or _str_list(
            self.automation.get("suggestions")
        )

        return StructuredAnalysis(
            summary=summary.strip(),
            productivity_metrics=ProductivityMetrics(
                focus_score=self.productivity_metrics.focus_score,
                distraction_events=self.productivity_metrics.distraction_events,
                task_switching=self.productivity_metrics.task_switching,
            ),
            insights=insights,
            recommendations=recommendations,
            applications=[a for a in self.applications if a and a != "Unknown"],
            work_completed=work_completed,
            time_breakdown=time_breakdown,
        )


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def _number_map(value: Any) -> dict[str, float]:
    if not isinstance(value, dict):
        return {}
    return {
        str(k): float(v)
        for k, v in value.items()
        if isinstance(v, (int, float)) and math.isfinite(v)
    }


# ---------------------------------------------------------------------------
# Tier 1: structured JSON
# ---------------------------------------------------------------------------


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring of ``text``, if any.

    Braces inside JSON string literals are ignored. When an opening brace
    never closes, scanning resumes at the next opening brace.
    """
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end is not None:
            return text[start:end + 1]
        start = text.find("{", start + 1)
    return None


def _matching_brace(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def _decode_object(candidate: str) -> dict | None:
    try:
        data = json.loads(candidate)
    except RecursionError:
        return None
    except json.JSONDecodeError:
        # Fix invalid escape sequences by doubling lone backslashes
        try:
            data = json.loads(_INVALID_ESCAPE.sub(r"\\\\", candidate))
        except (json.JSONDecodeError, RecursionError):
            return None
    return data if isinstance(data, dict) else None


def try_structured(raw: str) -> StructuredAnalysis | None:
    """Decode the first embedded JSON object against the assessment schema."""
    if not raw:
        return None
    candidate = extract_json_object(raw)
    if candidate is None:
        logger.debug("No JSON object found in model response")
        return None

    data = _decode_object(candidate)
    if data is None:
        logger.warning("Model response contained malformed JSON; using text fallback")
        return None

    try:
        return _AssessmentPayload.model_validate(data).to_result()
    except (ValidationError, TypeError, ValueError, OverflowError) as e:
        logger.warning("Model JSON did not match the assessment schema: %s", e)
        return None


# ---------------------------------------------------------------------------
# Tier 2: text summary
# ---------------------------------------------------------------------------


def is_usable_response(raw: str | None) -> bool:
    """Whether the text carries anything the text tier can work with."""
    return bool(raw and raw.strip())


def extract_summary(raw: str) -> str:
    """First line mentioning "summary"/"overview", else the first 200 characters.

    A heading such as ``## Summary:`` with nothing after the colon is
    returned as the stripped line itself.
    """
    for line in raw.splitlines():
        if _SUMMARY_LINE.search(line):
            text = line.split(":", 1)[1] if ":" in line else line
            text = text.strip().strip("*#- ").strip()
            return text or line.strip()
    return raw.strip()[:SUMMARY_PREVIEW_CHARS]


def try_text_summary(raw: str) -> TextFallbackAnalysis | None:
    """Recover a summary and an approximate score from unstructured text."""
    if not is_usable_response(raw):
        return None

    score = extract_score(raw)
    return TextFallbackAnalysis(
        summary=extract_summary(raw),
        productivity_metrics=ProductivityMetrics(focus_score=score / 100.0),
        insights=[APPROXIMATE_SCORE_NOTE],
        raw_response=raw,
    )


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


def parse_response(raw: str, fallback: AnalysisResult) -> AnalysisResult:
    """Run the parsing tiers in order; never raises.

    Args:
        raw: Raw model text, possibly empty or plain prose.
        fallback: Result to hand back when neither tier can use ``raw``.
    """
    result = try_structured(raw)
    if result is not None:
        return result
    result = try_text_summary(raw)
    if result is not None:
        return result
    return fallback
