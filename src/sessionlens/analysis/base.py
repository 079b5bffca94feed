"""Abstract base classes for batch analysis strategies.

A strategy turns one batch of screenshots into an AnalysisResult.
Inference-backed strategies may raise InferenceError or
MalformedInferenceResponse; FallbackAnalyzer wraps them so callers
always receive a result.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from sessionlens.domain.models import AnalysisResult, Batch
from sessionlens.errors import InferenceTimeout, MalformedInferenceResponse
from sessionlens.inference.base import GenerationConfig, InferenceProvider, InferenceRequest
from sessionlens.parsing.response import is_usable_response, parse_response

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class AnalysisStrategy(ABC):
    """Abstract strategy interface for analysing one batch.

    Example usage::

        class AlwaysNeutral(AnalysisStrategy):
            name = "neutral"

            async def analyze(self, batch):
                return heuristic_analysis(batch.screenshots)
    """

    name: str = "abstract"

    @abstractmethod
    async def analyze(self, batch: Batch) -> AnalysisResult:
        """Produce an analysis for the batch.

        Args:
            batch: Screenshots in ascending capture order.

        Returns:
            The analysis result for the batch.
        """
        ...


class InferenceStrategy(AnalysisStrategy):
    """Shared plumbing for strategies that call an inference provider.

    Every call carries a deadline; exceeding it raises InferenceTimeout.
    """

    def __init__(
        self,
        provider: InferenceProvider,
        generation_config: GenerationConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._provider = provider
        self._generation_config = generation_config or GenerationConfig()
        self._timeout = timeout

    async def _infer(self, batch: Batch, prompt: str, images: list[bytes] | None = None) -> str:
        request = InferenceRequest(
            images=images or [],
            prompt_text=prompt,
            generation_config=self._generation_config,
        )
        logger.info(
            "Requesting %s analysis for session %s batch %d (%d images, model=%s)",
            self.name, batch.session_id, batch.batch_number, len(request.images), self._provider.model,
        )
        try:
            return await asyncio.wait_for(self._provider.generate(request), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise InferenceTimeout(
                f"Inference exceeded {self._timeout:.0f}s deadline",
                provider=self._provider.name,
                session_id=batch.session_id,
            ) from e

    def _interpret(self, batch: Batch, raw: str, fallback: AnalysisResult) -> AnalysisResult:
        if not is_usable_response(raw):
            raise MalformedInferenceResponse(
                "Inference returned an empty response",
                raw_response=raw or "",
                session_id=batch.session_id,
            )
        return parse_response(raw, fallback)
