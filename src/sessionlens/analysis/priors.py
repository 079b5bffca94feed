"""Aggregate-of-priors analysis: synthesize from existing per-screenshot analyses.

Cheaper than the vision mode because no images are re-sent, but it only
works when the individual-screenshot pipeline has already run.
"""

from __future__ import annotations

import logging

from sessionlens.analysis.base import DEFAULT_TIMEOUT_SECONDS, InferenceStrategy
from sessionlens.analysis.heuristic import heuristic_analysis
from sessionlens.analysis.prompts import build_priors_prompt
from sessionlens.domain.models import AnalysisResult, Batch
from sessionlens.errors import InferenceUnavailable
from sessionlens.inference.base import GenerationConfig, InferenceProvider
from sessionlens.storage.base import ScreenshotSource

logger = logging.getLogger(__name__)


class PriorDigestStrategy(InferenceStrategy):
    """Builds a textual digest of prior analyses and asks for one assessment."""

    name = "priors"

    def __init__(
        self,
        provider: InferenceProvider,
        source: ScreenshotSource,
        generation_config: GenerationConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(provider, generation_config=generation_config, timeout=timeout)
        self._source = source

    async def covers(self, batch: Batch) -> bool:
        """Whether every screenshot in the batch has a prior analysis."""
        priors = await self._source.prior_analyses(batch.screenshot_ids)
        return all(sid in priors for sid in batch.screenshot_ids)

    async def analyze(self, batch: Batch) -> AnalysisResult:
        priors = await self._source.prior_analyses(batch.screenshot_ids)
        if not priors:
            raise InferenceUnavailable(
                "No prior screenshot analyses exist for this batch",
                session_id=batch.session_id,
            )
        missing = len(batch.screenshots) - len(priors)
        if missing:
            logger.info("Digest for batch %d lacks %d prior analyses", batch.batch_number, missing)

        raw = await self._infer(batch, build_priors_prompt(batch.screenshots, priors))
        return self._interpret(batch, raw, heuristic_analysis(batch.screenshots))
