"""Per-invocation state tracking for batch processing.

    SELECTING -> ANALYZING -> PARSING -> PERSISTING -> DONE
    ANALYZING -> FALLBACK_ANALYZING -> PARSING
    PERSISTING -> DEGRADED_PERSISTING -> DONE_WITH_WARNING

There are no retries beyond the single fallback hop.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class PipelineStage(str, enum.Enum):
    SELECTING = "selecting"
    ANALYZING = "analyzing"
    FALLBACK_ANALYZING = "fallback_analyzing"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DEGRADED_PERSISTING = "degraded_persisting"
    DONE = "done"
    DONE_WITH_WARNING = "done_with_warning"


TRANSITIONS: dict[PipelineStage | None, frozenset[PipelineStage]] = {
    None: frozenset({PipelineStage.SELECTING}),
    PipelineStage.SELECTING: frozenset({PipelineStage.ANALYZING}),
    PipelineStage.ANALYZING: frozenset({PipelineStage.PARSING, PipelineStage.FALLBACK_ANALYZING}),
    PipelineStage.FALLBACK_ANALYZING: frozenset({PipelineStage.PARSING}),
    PipelineStage.PARSING: frozenset({PipelineStage.PERSISTING}),
    PipelineStage.PERSISTING: frozenset({PipelineStage.DONE, PipelineStage.DEGRADED_PERSISTING}),
    PipelineStage.DEGRADED_PERSISTING: frozenset({PipelineStage.DONE_WITH_WARNING}),
    PipelineStage.DONE: frozenset(),
    PipelineStage.DONE_WITH_WARNING: frozenset(),
}


class InvalidTransition(RuntimeError):
    """Raised when a run attempts a transition the state machine forbids."""


@dataclass
class PipelineRun:
    """Ordered record of the stages one invocation passed through."""

    session_id: str
    stages: list[PipelineStage] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def stage(self) -> PipelineStage | None:
        return self.stages[-1] if self.stages else None

    @property
    def finished(self) -> bool:
        return self.stage in (PipelineStage.DONE, PipelineStage.DONE_WITH_WARNING)

    def advance(self, stage: PipelineStage, warning: str | None = None) -> None:
        if stage not in TRANSITIONS[self.stage]:
            raise InvalidTransition(f"{self.stage} -> {stage} is not a valid transition")
        self.stages.append(stage)
        if warning:
            self.warnings.append(warning)
        logger.debug("Session %s: %s", self.session_id, stage.value)
