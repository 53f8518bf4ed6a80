"""
Model tier ladders per provider.

Each provider has an ordered list of candidate models: primary, fallback and,
where one exists, an emergency model. Defaults live here; config/models.yaml
may override any provider's list.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Optional

from src.config import get_settings
from src.models import Provider

DEFAULT_MODEL_TIERS: dict[Provider, tuple[str, ...]] = {
    Provider.GEMINI: ("gemini-3-flash-preview", "gemini-2.5-flash", "gemini-2.0-flash"),
    Provider.OPENROUTER: (
        "google/gemini-flash-1.5",
        "meta-llama/llama-3.3-70b-instruct",
        "mistralai/mistral-7b-instruct",
    ),
    Provider.OPENAI: ("gpt-4o", "gpt-4o-mini"),
    Provider.ANTHROPIC: ("claude-3-5-sonnet-20241022", "claude-3-5-haiku-20241022"),
    Provider.GROQ: ("llama-3.3-70b-versatile", "llama-3.1-8b-instant"),
}


def model_tiers(provider: Provider, routing: Optional[dict[str, Any]] = None) -> tuple[str, ...]:
    """Tier list for a provider: YAML override when present and non-empty, else the default."""
    routing = routing if routing is not None else get_settings().model_routing
    provider_cfg = (routing.get("providers") or {}).get(provider.value) or {}
    models = provider_cfg.get("models") if isinstance(provider_cfg, dict) else None
    if isinstance(models, list):
        cleaned = tuple(str(m).strip() for m in models if str(m).strip())
        if cleaned:
            return cleaned
    return DEFAULT_MODEL_TIERS[provider]


def select_model(provider: Provider, attempt_index: int, tiers: Optional[Sequence[str]] = None) -> str:
    """Model for the given tier index. Indexes past the end clamp to the last tier."""
    ladder = tuple(tiers) if tiers else model_tiers(provider)
    index = min(max(attempt_index, 0), len(ladder) - 1)
    return ladder[index]
