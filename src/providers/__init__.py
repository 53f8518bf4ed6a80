"""Provider adapters: one per wire-protocol family, selected by Provider."""

from __future__ import annotations

from typing import Optional

from src.config import LLMConfig, get_settings
from src.models import Provider
from src.providers.anthropic import AnthropicAdapter
from src.providers.base import ProviderAdapter, WireRequest, schema_system_prompt
from src.providers.gemini import GeminiAdapter
from src.providers.openai_compatible import (
    GROQ_BASE_URL,
    OPENAI_BASE_URL,
    OPENROUTER_BASE_URL,
    OpenAICompatibleAdapter,
)


def get_adapter(provider: Provider, llm: Optional[LLMConfig] = None) -> ProviderAdapter:
    """Build the adapter for a provider using the current generation settings."""
    llm = llm or get_settings().llm
    if provider is Provider.GEMINI:
        return GeminiAdapter()
    if provider is Provider.ANTHROPIC:
        return AnthropicAdapter(max_tokens=llm.max_tokens, api_version=llm.anthropic_version)
    if provider is Provider.OPENROUTER:
        return OpenAICompatibleAdapter(
            provider,
            OPENROUTER_BASE_URL,
            supports_json_mode=False,
            temperature=llm.temperature,
            extra_headers={"HTTP-Referer": llm.openrouter_referer, "X-Title": llm.openrouter_title},
        )
    if provider is Provider.OPENAI:
        return OpenAICompatibleAdapter(
            provider, OPENAI_BASE_URL, supports_json_mode=True, temperature=llm.temperature
        )
    if provider is Provider.GROQ:
        return OpenAICompatibleAdapter(
            provider, GROQ_BASE_URL, supports_json_mode=True, temperature=llm.temperature
        )
    raise ValueError(f"Unsupported provider: {provider}")


__all__ = [
    "AnthropicAdapter",
    "GeminiAdapter",
    "OpenAICompatibleAdapter",
    "ProviderAdapter",
    "WireRequest",
    "get_adapter",
    "schema_system_prompt",
]
