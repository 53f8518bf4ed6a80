"""
Credential resolution: which provider does this request go to?

Provider-specific slots are checked in a fixed priority order; the first
non-empty one wins. Only when none is set does the generic API_KEY slot
apply, with the provider inferred from the key's prefix. Nothing here is
cached: every call re-reads the environment.
"""

from __future__ import annotations

from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from src.config import ProviderKeysConfig, load_provider_keys
from src.llm_errors import ConfigurationError
from src.models import Provider

logger = structlog.get_logger()

# (provider, settings attribute), highest priority first
PROVIDER_PRIORITY: tuple[tuple[Provider, str], ...] = (
    (Provider.GEMINI, "gemini_api_key"),
    (Provider.OPENROUTER, "openrouter_api_key"),
    (Provider.OPENAI, "openai_api_key"),
    (Provider.ANTHROPIC, "anthropic_api_key"),
    (Provider.GROQ, "groq_api_key"),
)

# Order matters: "sk-or-" and "sk-ant-" must be tested before the bare "sk-"
_KEY_PREFIXES: tuple[tuple[str, Provider], ...] = (
    ("sk-or-", Provider.OPENROUTER),
    ("sk-ant-", Provider.ANTHROPIC),
    ("gsk_", Provider.GROQ),
    ("sk-", Provider.OPENAI),
)


class ProviderCredential(BaseModel):
    """An (provider, secret) pair. The secret is excluded from repr."""

    model_config = ConfigDict(frozen=True)

    provider: Provider
    api_key: str = Field(repr=False)
    source: str = ""

    @property
    def key_suffix(self) -> str:
        return f"...{self.api_key[-4:]}" if len(self.api_key) >= 8 else "..."


def detect_provider_from_key(key: str) -> Provider:
    """Infer the provider from a key prefix; unrecognized keys are treated as Gemini keys."""
    for prefix, provider in _KEY_PREFIXES:
        if key.startswith(prefix):
            return provider
    return Provider.GEMINI


def configured_credentials(keys: Optional[ProviderKeysConfig] = None) -> list[ProviderCredential]:
    """All usable credentials in priority order. The first entry is the active one."""
    keys = keys if keys is not None else load_provider_keys()
    found: list[ProviderCredential] = []
    for provider, attr in PROVIDER_PRIORITY:
        value = (getattr(keys, attr) or "").strip()
        if value:
            found.append(ProviderCredential(provider=provider, api_key=value, source=attr))
    if found:
        return found
    generic = (keys.generic_api_key or "").strip()
    if generic:
        return [
            ProviderCredential(
                provider=detect_provider_from_key(generic),
                api_key=generic,
                source="generic_api_key",
            )
        ]
    return []


def resolve_active_provider(keys: Optional[ProviderKeysConfig] = None) -> ProviderCredential:
    """Return the active credential or raise ConfigurationError. Never proceeds with an empty key."""
    credentials = configured_credentials(keys)
    if not credentials:
        raise ConfigurationError(
            "No API key configured. Set API_KEY or a provider-specific key "
            "(GEMINI_API_KEY, OPENROUTER_API_KEY, OPENAI_API_KEY, ANTHROPIC_API_KEY, GROQ_API_KEY)."
        )
    active = credentials[0]
    logger.debug(
        "provider_resolved",
        provider=active.provider.value,
        source=active.source,
        key_suffix=active.key_suffix,
        configured=[c.provider.value for c in credentials],
    )
    return active
