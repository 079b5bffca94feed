"""Anthropic Claude inference provider implementation.

Uses the Anthropic Python SDK to send screenshot batches to Claude
models with vision capability.
"""

from __future__ import annotations

import logging

from sessionlens.errors import InferenceUnavailable
from sessionlens.inference.base import InferenceProvider, InferenceRequest

logger = logging.getLogger(__name__)


class AnthropicProvider(InferenceProvider):
    """Inference provider using Anthropic's Messages API.

    Example usage::

        provider = AnthropicProvider(api_key="sk-ant-...")
        text = await provider.generate(InferenceRequest(prompt_text="..."))
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        timeout: float = 30.0,
        max_image_dimension: int = 1568,
    ) -> None:
        super().__init__(model=model, max_image_dimension=max_image_dimension)
        self._api_key = api_key
        self._timeout = timeout
        self._client = None

    async def _ensure_client(self) -> None:
        """Lazily initialize the Anthropic async client."""
        if self._client is not None:
            return
        import anthropic
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key, timeout=self._timeout, max_retries=0
        )
        logger.info("Initialized Anthropic client (model=%s)", self._model)

    async def generate(self, request: InferenceRequest) -> str:
        """Send all images plus the prompt as one user message."""
        await self._ensure_client()

        content: list[dict] = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": "image/png", "data": b64},
            }
            for b64 in self._encode_images(request)
        ]
        content.append({"type": "text", "text": request.prompt_text})

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=request.generation_config.max_output_tokens,
                temperature=request.generation_config.temperature,
                messages=[{"role": "user", "content": content}],
            )
        except Exception as e:
            raise InferenceUnavailable(
                f"Anthropic API call failed: {e}",
                provider="anthropic",
            ) from e

        raw_text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        logger.debug("Model raw response: %s", raw_text[:200])
        return raw_text

    async def health_check(self) -> bool:
        """Check the API key with a minimal text-only message."""
        try:
            await self._ensure_client()
            await self._client.messages.create(
                model=self._model,
                max_tokens=1,
                messages=[{"role": "user", "content": "ping"}],
            )
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False
