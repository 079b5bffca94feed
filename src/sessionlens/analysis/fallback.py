"""Strategy selection with automatic fallback to the heuristic strategy.

The analyzer is total: whatever happens upstream (no provider, timeout,
API error, empty or unusable output) the caller receives an analysis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sessionlens.analysis.base import AnalysisStrategy
from sessionlens.analysis.heuristic import HeuristicStrategy
from sessionlens.analysis.priors import PriorDigestStrategy
from sessionlens.domain.models import AnalysisResult, AnalysisType, Batch
from sessionlens.errors import InferenceError, MalformedInferenceResponse, PipelineError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisOutcome:
    """An analysis plus how it was obtained."""

    result: AnalysisResult
    strategy: str
    fell_back: bool = False
    reason: str | None = None


class FallbackAnalyzer:
    """Chooses a strategy for a batch and falls back to heuristics on failure.

    Selection policy:
        - ``heuristic`` requested (or configured): heuristic, no inference.
        - ``vision`` / ``priors`` requested: that strategy.
        - ``standard`` defers to the configured mode; ``auto`` uses the
          priors digest when every screenshot already has a prior
          analysis, otherwise the vision batch.
    """

    def __init__(
        self,
        vision: AnalysisStrategy | None = None,
        priors: PriorDigestStrategy | None = None,
        heuristic: HeuristicStrategy | None = None,
        default_mode: str = "auto",
    ) -> None:
        self._vision = vision
        self._priors = priors
        self._heuristic = heuristic or HeuristicStrategy()
        self._default_mode = default_mode

    @property
    def inference_configured(self) -> bool:
        return self._vision is not None or self._priors is not None

    async def _choose(self, batch: Batch, analysis_type: AnalysisType) -> AnalysisStrategy | None:
        mode = self._default_mode if analysis_type == AnalysisType.STANDARD else analysis_type.value
        if mode == "heuristic":
            return self._heuristic
        if mode == "vision":
            return self._vision
        if mode == "priors":
            return self._priors
        if self._priors is not None and await self._priors_cover(batch):
            return self._priors
        return self._vision

    async def _priors_cover(self, batch: Batch) -> bool:
        try:
            return await self._priors.covers(batch)
        except PipelineError as e:
            logger.warning("Could not check prior analyses for batch %d: %s", batch.batch_number, e)
            return False

    async def analyze(
        self,
        batch: Batch,
        analysis_type: AnalysisType = AnalysisType.STANDARD,
    ) -> AnalysisOutcome:
        strategy = await self._choose(batch, analysis_type)
        if strategy is None:
            logger.warning("Inference unconfigured for %s analysis; using heuristics", analysis_type.value)
            return await self._fallback(batch, "inference unconfigured")

        try:
            result = await strategy.analyze(batch)
        except InferenceError as e:
            logger.warning("Inference failed for session %s batch %d: %s",
                           batch.session_id, batch.batch_number, e)
            return await self._fallback(batch, f"{type(e).__name__}: {e}")
        except MalformedInferenceResponse as e:
            logger.warning("Unusable inference response for session %s batch %d (%d chars)",
                           batch.session_id, batch.batch_number, len(e.raw_response))
            return await self._fallback(batch, f"{type(e).__name__}: {e}")
        except Exception as e:
            logger.exception("Unexpected %s analysis error for session %s batch %d",
                             strategy.name, batch.session_id, batch.batch_number)
            return await self._fallback(batch, f"{type(e).__name__}: {e}")

        logger.info("Batch %d analysed by %s (source=%s)", batch.batch_number, strategy.name, result.source)
        return AnalysisOutcome(result=result, strategy=strategy.name)

    async def _fallback(self, batch: Batch, reason: str) -> AnalysisOutcome:
        result = await self._heuristic.analyze(batch)
        return AnalysisOutcome(result=result, strategy=self._heuristic.name, fell_back=True, reason=reason)
