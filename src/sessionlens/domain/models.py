"""Core domain models for the sessionlens system.

These models represent the data flowing through the batch pipeline:
screenshots read from the capture subsystem, per-batch analysis results,
persisted batch reports, and the session-level summaries derived from them.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CaptureTrigger(str, enum.Enum):
    """The event that caused a screenshot to be taken."""

    INTERVAL = "interval"  # Periodic timer
    CLICK = "click"
    MANUAL = "manual"
    KEYBOARD = "keyboard"
    UNKNOWN = "unknown"


class AnalysisSource(str, enum.Enum):
    """Which path produced an analysis result."""

    AI = "ai"
    AI_FALLBACK_TEXT = "ai_fallback_text"
    HEURISTIC_FALLBACK = "heuristic_fallback"


class AnalysisType(str, enum.Enum):
    """Analysis mode requested by the caller.

    ``standard`` defers to the configured strategy policy.
    """

    STANDARD = "standard"
    VISION = "vision"
    PRIORS = "priors"
    HEURISTIC = "heuristic"


class ProcessingStatus(str, enum.Enum):
    """Durability of a batch report."""

    COMPLETED = "completed"  # Stored durably
    DEGRADED = "degraded"  # In-memory only, persistence was unreachable


# ---------------------------------------------------------------------------
# Capture Inputs
# ---------------------------------------------------------------------------


class Screenshot(BaseModel):
    """A captured screenshot, owned by the capture subsystem.

    The pipeline only reads screenshots; it never mutates them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    user_id: str
    created_at: datetime = Field(description="Capture timestamp")
    capture_trigger: CaptureTrigger = Field(default=CaptureTrigger.UNKNOWN)
    active_app: str | None = Field(default=None, description="Foreground application name")
    image_ref: str = Field(default="", description="Opaque reference to the stored image")

    @field_validator("capture_trigger", mode="before")
    @classmethod
    def _coerce_trigger(cls, value: Any) -> Any:
        if value is None:
            return CaptureTrigger.UNKNOWN
        if isinstance(value, str):
            try:
                return CaptureTrigger(value.strip().lower())
            except ValueError:
                return CaptureTrigger.UNKNOWN
        return value


class PriorAnalysis(BaseModel):
    """A per-screenshot analysis produced by the individual-screenshot pipeline."""

    model_config = ConfigDict(frozen=True)

    screenshot_id: str
    description: str
    activity: str | None = None
    productivity_score: float | None = Field(default=None, ge=0.0, le=100.0)


class Batch(BaseModel):
    """A bounded, ordered set of screenshots selected for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    user_id: str
    batch_number: int = Field(ge=1)
    screenshots: list[Screenshot] = Field(min_length=1)

    @property
    def screenshot_ids(self) -> list[str]:
        return [s.id for s in self.screenshots]

    @property
    def start_time(self) -> datetime:
        return self.screenshots[0].created_at

    @property
    def end_time(self) -> datetime:
        return self.screenshots[-1].created_at


# ---------------------------------------------------------------------------
# Analysis Results (discriminated union on ``source``)
# ---------------------------------------------------------------------------


class ProductivityMetrics(BaseModel):
    """Productivity measures for a batch. ``focus_score`` is always in [0, 1]."""

    model_config = ConfigDict(frozen=True)

    focus_score: float = Field(ge=0.0, le=1.0)
    distraction_events: int = Field(default=0, ge=0)
    task_switching: int = Field(default=0, ge=0)

    @field_validator("focus_score", mode="before")
    @classmethod
    def _clamp_focus(cls, value: Any) -> float:
        return max(0.0, min(1.0, float(value)))

    @field_validator("distraction_events", "task_switching", mode="before")
    @classmethod
    def _non_negative(cls, value: Any) -> int:
        return max(0, int(value))


class _AnalysisBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str = ""
    productivity_metrics: ProductivityMetrics
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    applications: list[str] = Field(default_factory=list)


class StructuredAnalysis(_AnalysisBase):
    """Result decoded from the model's embedded JSON object."""

    source: Literal["ai"] = "ai"
    work_completed: list[str] = Field(default_factory=list)
    time_breakdown: dict[str, float] = Field(default_factory=dict)


class TextFallbackAnalysis(_AnalysisBase):
    """Result recovered from unstructured model text.

    The focus score comes from keyword and regex heuristics over prose and
    is an approximate, non-authoritative signal.
    """

    source: Literal["ai_fallback_text"] = "ai_fallback_text"
    raw_response: str = Field(description="Original model text, kept for audit")
    score_is_approximate: Literal[True] = True


class HeuristicAnalysis(_AnalysisBase):
    """Result computed locally from capture metadata only."""

    source: Literal["heuristic_fallback"] = "heuristic_fallback"
    work_patterns: str = ""


AnalysisResult = Annotated[
    Union[StructuredAnalysis, TextFallbackAnalysis, HeuristicAnalysis],
    Field(discriminator="source"),
]


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class BatchReport(BaseModel):
    """An append-only record of one analysed batch.

    ``(session_id, batch_number)`` is the idempotency key.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    user_id: str
    batch_number: int = Field(ge=1)
    screenshot_ids: list[str] = Field(default_factory=list)
    screenshot_count: int = Field(ge=0)
    start_time: datetime | None = None
    end_time: datetime | None = None
    analysis_type: AnalysisType = AnalysisType.STANDARD
    analysis: AnalysisResult | None = Field(
        default=None, description="None when a stored payload could not be decoded"
    )
    processing_status: ProcessingStatus = ProcessingStatus.COMPLETED
    created_at: datetime


class SessionSummary(BaseModel):
    """Aggregate view over all batch reports of a session."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    total_batches: int = Field(ge=0)
    total_screenshots: int = Field(ge=0)
    average_productivity: float = Field(ge=0.0, le=1.0)
    focus_percentage: int = Field(ge=0, le=100)
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    overview: str = ""


class SessionReport(BaseModel):
    """The stored form of a session summary, keyed by ``(session_id, user_id)``."""

    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    user_id: str
    summary: SessionSummary
    updated_at: datetime


class WorkSession(BaseModel):
    """A user's work session, owned by the session subsystem."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    session_name: str | None = None
    goal_description: str | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_seconds: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Public Operation Payloads
# ---------------------------------------------------------------------------


class BatchProcessingOptions(BaseModel):
    batch_size: int | None = Field(default=None, gt=0)
    analysis_type: AnalysisType = AnalysisType.STANDARD


class BatchProcessingResult(BaseModel):
    """What ``trigger_batch_processing`` hands back to the caller."""

    batch_report_id: str
    batch_number: int
    screenshot_count: int
    analysis_type: AnalysisType
    analysis_source: AnalysisSource
    processing_status: ProcessingStatus
    summary: str
    created_at: datetime


class SessionDuration(BaseModel):
    seconds: int = 0
    formatted: str = "0s"


class TimeRange(BaseModel):
    started_at: datetime | None = None
    ended_at: datetime | None = None


class BatchAnalysisOverview(BaseModel):
    total_batches: int = 0
    total_screenshots: int = 0
    average_productivity: float = 0.0
    focus_percentage: int = 0


class SessionSummaryView(BaseModel):
    """What ``generate_session_summary`` hands back to the caller."""

    session_id: str
    session_name: str | None = None
    goal_description: str | None = None
    duration: SessionDuration
    time_range: TimeRange
    overview: str
    batch_analysis: BatchAnalysisOverview
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    generated_at: datetime | None = Field(
        default=None, description="Creation time of the newest batch the summary covers"
    )


class BatchStatus(BaseModel):
    session_id: str
    total_batches: int = 0
    processed_screenshots: int = 0
    pending_screenshots: int = 0
    latest_batch_number: int = 0
    last_processed_at: datetime | None = None
