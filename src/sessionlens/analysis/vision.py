"""Vision-batch analysis: every screenshot image plus metadata in one call."""

from __future__ import annotations

import asyncio
import logging

from sessionlens.analysis.base import DEFAULT_TIMEOUT_SECONDS, InferenceStrategy
from sessionlens.analysis.heuristic import heuristic_analysis
from sessionlens.analysis.prompts import build_vision_prompt
from sessionlens.domain.models import AnalysisResult, Batch, Screenshot
from sessionlens.errors import InferenceUnavailable
from sessionlens.inference.base import GenerationConfig, InferenceProvider
from sessionlens.storage.base import ImageStore

logger = logging.getLogger(__name__)


class VisionBatchStrategy(InferenceStrategy):
    """Fetches all batch images and issues exactly one inference call.

    Image downloads run concurrently. The first failed download cancels
    the rest, and cancelling the owning task cancels pending downloads and
    the inference call with it.
    """

    name = "vision"

    def __init__(
        self,
        provider: InferenceProvider,
        images: ImageStore,
        generation_config: GenerationConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(provider, generation_config=generation_config, timeout=timeout)
        self._images = images

    async def analyze(self, batch: Batch) -> AnalysisResult:
        try:
            images = await self._load_images(batch.screenshots)
        except (OSError, ValueError) as e:
            raise InferenceUnavailable(
                f"Could not load screenshot images: {e}",
                session_id=batch.session_id,
            ) from e

        raw = await self._infer(batch, build_vision_prompt(batch.screenshots), list(images))
        return self._interpret(batch, raw, heuristic_analysis(batch.screenshots))

    async def _load_images(self, screenshots: list[Screenshot]) -> list[bytes]:
        tasks = [asyncio.ensure_future(self._images.load(s)) for s in screenshots]
        try:
            return await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            # Reap siblings so their errors are retrieved
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
