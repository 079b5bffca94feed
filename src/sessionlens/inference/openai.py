"""OpenAI-compatible inference provider implementation.

Works with OpenAI, the Gemini OpenAI-compatible endpoint, and any other
OpenAI-compatible API by setting a custom base_url.
"""

from __future__ import annotations

import logging

from sessionlens.errors import InferenceUnavailable
from sessionlens.inference.base import InferenceProvider, InferenceRequest

logger = logging.getLogger(__name__)


class OpenAIProvider(InferenceProvider):
    """Inference provider using OpenAI's chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str | None = None,
        timeout: float = 30.0,
        max_image_dimension: int = 1568,
    ) -> None:
        super().__init__(model=model, max_image_dimension=max_image_dimension)
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._client = None

    async def _ensure_client(self) -> None:
        """Lazily initialize the OpenAI async client."""
        if self._client is not None:
            return
        from openai import AsyncOpenAI
        kwargs = {"api_key": self._api_key, "timeout": self._timeout, "max_retries": 0}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncOpenAI(**kwargs)
        logger.info("Initialized OpenAI client (model=%s, base_url=%s)", self._model, self._base_url)

    async def generate(self, request: InferenceRequest) -> str:
        """Send all images plus the prompt as a single chat completion."""
        await self._ensure_client()

        content: list[dict] = [
            {
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{b64}", "detail": "low"},
            }
            for b64 in self._encode_images(request)
        ]
        content.append({"type": "text", "text": request.prompt_text})

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_tokens=request.generation_config.max_output_tokens,
                temperature=request.generation_config.temperature,
                messages=[{"role": "user", "content": content}],
            )
        except Exception as e:
            raise InferenceUnavailable(
                f"OpenAI API call failed: {e}",
                provider="openai",
            ) from e

        raw_text = response.choices[0].message.content or ""
        logger.debug("Model raw response: %s", raw_text[:200])
        return raw_text

    async def health_check(self) -> bool:
        """Check if the API is reachable."""
        try:
            await self._ensure_client()
            await self._client.models.list()
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False
