"""Wiring of a BatchPipeline from Settings."""

from __future__ import annotations

import logging

from sessionlens.analysis.base import InferenceStrategy
from sessionlens.analysis.fallback import FallbackAnalyzer
from sessionlens.analysis.priors import PriorDigestStrategy
from sessionlens.analysis.vision import VisionBatchStrategy
from sessionlens.config.settings import Settings
from sessionlens.inference.base import GenerationConfig
from sessionlens.inference.factory import build_provider
from sessionlens.pipeline.service import BatchPipeline
from sessionlens.storage.images import ImageLoader
from sessionlens.storage.memory import InMemoryReportStore, InMemoryScreenshotSource
from sessionlens.storage.sqlite import SqliteReportStore, SqliteScreenshotSource

logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings) -> BatchPipeline:
    """Build the pipeline described by ``settings``.

    Without an API key the analyzer has no inference strategies and every
    batch is analysed heuristically.
    """
    storage = settings.storage
    if storage.database_path:
        screenshots = SqliteScreenshotSource(storage.database_path)
        persister = SqliteReportStore(storage.database_path)
        logger.info("Using SQLite storage at %s", storage.database_path)
    else:
        screenshots = InMemoryScreenshotSource()
        persister = InMemoryReportStore()
        logger.info("Using in-memory storage")

    images = ImageLoader(root=storage.screenshot_root, timeout=storage.http_timeout)

    vision: InferenceStrategy | None = None
    priors: PriorDigestStrategy | None = None
    provider = build_provider(settings)
    if provider is not None:
        generation = GenerationConfig(
            temperature=settings.inference.temperature,
            max_output_tokens=settings.inference.max_output_tokens,
        )
        timeout = settings.inference.timeout_seconds
        vision = VisionBatchStrategy(provider, images, generation_config=generation, timeout=timeout)
        priors = PriorDigestStrategy(provider, screenshots, generation_config=generation, timeout=timeout)

    analyzer = FallbackAnalyzer(vision=vision, priors=priors, default_mode=settings.analysis.strategy)
    return BatchPipeline(
        screenshots=screenshots,
        sessions=screenshots,
        persister=persister,
        analyzer=analyzer,
        images=images,
        default_batch_size=settings.analysis.default_batch_size,
        max_batch_size=settings.analysis.max_batch_size,
    )
