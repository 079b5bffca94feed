"""Build the configured inference provider, if any."""

from __future__ import annotations

import logging

from sessionlens.config.settings import Settings
from sessionlens.inference.base import InferenceProvider

logger = logging.getLogger(__name__)


def build_provider(settings: Settings) -> InferenceProvider | None:
    """Return a provider for the configured vendor, or None when no key is set."""
    api_key = settings.inference_api_key()
    if not api_key:
        logger.warning("No API key for %s provider - AI analysis disabled", settings.inference.provider)
        return None

    cfg = settings.inference
    if cfg.provider == "anthropic":
        from sessionlens.inference.anthropic import AnthropicProvider
        return AnthropicProvider(
            api_key=api_key,
            model=cfg.model,
            timeout=cfg.timeout_seconds,
            max_image_dimension=cfg.max_image_dimension,
        )

    from sessionlens.inference.openai import OpenAIProvider
    return OpenAIProvider(
        api_key=api_key,
        model=cfg.model,
        base_url=cfg.base_url,
        timeout=cfg.timeout_seconds,
        max_image_dimension=cfg.max_image_dimension,
    )
