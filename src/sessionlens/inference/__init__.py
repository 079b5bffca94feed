"""Inference module for sessionlens.

Provides a provider-agnostic interface for sending screenshot batches
(or textual digests) to multimodal LLMs and receiving free text back.

Public API:
    InferenceProvider -- Abstract base class
    InferenceRequest -- Images, prompt text, and generation config
    AnthropicProvider -- Claude API implementation
    OpenAIProvider -- OpenAI / OpenAI-compatible implementation
"""

from sessionlens.inference.base import GenerationConfig, InferenceProvider, InferenceRequest

__all__ = [
    "AnthropicProvider",
    "GenerationConfig",
    "InferenceProvider",
    "InferenceRequest",
    "OpenAIProvider",
    "build_provider",
]


def __getattr__(name: str) -> object:
    """Lazy import for concrete implementations that require external deps."""
    if name == "AnthropicProvider":
        from sessionlens.inference.anthropic import AnthropicProvider
        return AnthropicProvider
    if name == "OpenAIProvider":
        from sessionlens.inference.openai import OpenAIProvider
        return OpenAIProvider
    if name == "build_provider":
        from sessionlens.inference.factory import build_provider
        return build_provider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
