"""Abstract base class for inference providers.

All provider implementations must conform to this interface, enabling
the pipeline to swap between model vendors without changing the
analysis strategies. The call is treated as an opaque remote procedure
that takes images plus a prompt and returns text.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field

from sessionlens.errors import InferenceUnavailable
from sessionlens.utils.imaging import prepare_image

logger = logging.getLogger(__name__)


class GenerationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2048, gt=0)


class InferenceRequest(BaseModel):
    """One inference call: optional images, a prompt, and generation limits."""

    model_config = ConfigDict(frozen=True)

    images: list[bytes] = Field(default_factory=list, description="Raw screenshot bytes")
    prompt_text: str
    generation_config: GenerationConfig = Field(default_factory=GenerationConfig)


class InferenceProvider(ABC):
    """Abstract interface for multimodal LLM providers."""

    def __init__(self, model: str, max_image_dimension: int = 1568) -> None:
        self._model = model
        self._max_image_dimension = max_image_dimension

    @property
    def model(self) -> str:
        return self._model

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def generate(self, request: InferenceRequest) -> str:
        """Run one inference call and return the raw response text.

        Raises:
            InferenceUnavailable: If the call fails for any reason.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is reachable and authenticated."""
        ...

    def _encode_images(self, request: InferenceRequest) -> list[str]:
        """Encode every image in the request to a base64 PNG string."""
        try:
            return [prepare_image(data, self._max_image_dimension) for data in request.images]
        except ValueError as e:
            raise InferenceUnavailable(str(e), provider=self.name) from e
