"""
Centralized configuration for the MindPath assessment AI client.

All settings are loaded from environment variables with sensible defaults.
Pydantic Settings provides validation and type coercion.

Provider credentials are not part of the cached root settings:
they are re-read on every call through load_provider_keys() so that a rotated
key takes effect on the next request without a restart.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

# Load .env then .env.local (so .env.local overrides). Use override=True so file wins over shell.
_repo_root = Path(__file__).resolve().parent.parent
load_dotenv(_repo_root / ".env", override=True)
_env_local = _repo_root / ".env.local"
if _env_local.exists():
    load_dotenv(_env_local, override=True)


class ProviderKeysConfig(BaseSettings):
    """Credential slots. VITE_-prefixed names are accepted for parity with the web build."""

    gemini_api_key: str = Field(
        default="", validation_alias=AliasChoices("GEMINI_API_KEY", "VITE_GEMINI_API_KEY")
    )
    openrouter_api_key: str = Field(
        default="", validation_alias=AliasChoices("OPENROUTER_API_KEY", "VITE_OPENROUTER_API_KEY")
    )
    openai_api_key: str = Field(
        default="", validation_alias=AliasChoices("OPENAI_API_KEY", "VITE_OPENAI_API_KEY")
    )
    anthropic_api_key: str = Field(
        default="", validation_alias=AliasChoices("ANTHROPIC_API_KEY", "VITE_ANTHROPIC_API_KEY")
    )
    groq_api_key: str = Field(
        default="", validation_alias=AliasChoices("GROQ_API_KEY", "VITE_GROQ_API_KEY")
    )
    # Generic slot: provider is inferred from the key prefix.
    generic_api_key: str = Field(default="", validation_alias=AliasChoices("API_KEY", "VITE_API_KEY"))


class LLMConfig(BaseSettings):
    """Retry policy, timeouts and generation params shared by every provider."""

    max_retries: int = Field(default=2, alias="LLM_MAX_RETRIES")
    retry_backoff_seconds: float = Field(default=1.0, alias="LLM_RETRY_BACKOFF_SECONDS")
    request_timeout: float = Field(default=30.0, alias="LLM_REQUEST_TIMEOUT")
    retry_decode_errors: bool = Field(default=True, alias="LLM_RETRY_DECODE_ERRORS")
    cross_provider_fallback: bool = Field(default=True, alias="LLM_CROSS_PROVIDER_FALLBACK")

    temperature: float = 0.1
    max_tokens: int = Field(default=4000, alias="LLM_MAX_TOKENS")

    # OpenRouter ranks apps by these headers; harmless for other providers
    openrouter_referer: str = Field(default="https://mindpath.app", alias="OPENROUTER_REFERER")
    openrouter_title: str = Field(default="MindPath AI", alias="OPENROUTER_TITLE")
    anthropic_version: str = Field(default="2023-06-01", alias="ANTHROPIC_VERSION")


class KnowledgeBaseConfig(BaseSettings):
    """Self-learning insight store limits."""

    max_insights: int = Field(default=20, alias="KNOWLEDGE_BASE_MAX_INSIGHTS")


class ObservabilityConfig(BaseSettings):
    """Logging and Prometheus metrics."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    metrics_enabled: bool = Field(default=False, alias="PROMETHEUS_METRICS_ENABLED")
    metrics_port: int = Field(default=8000, alias="PROMETHEUS_METRICS_PORT")


class YAMLConfigLoader:
    """Loads YAML config files from a configurable directory."""

    def __init__(self, config_dir: str | Path = "config") -> None:
        self._dir = _repo_root / config_dir

    def load(self, filename: str) -> dict[str, Any]:
        """Load a YAML file; returns empty dict if the file is missing or not a mapping."""
        path = self._dir / filename
        if not path.exists():
            return {}
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}


class Settings(BaseSettings):
    """Root settings container — access all config from one object."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    knowledge_base: KnowledgeBaseConfig = Field(default_factory=KnowledgeBaseConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    # YAML-loaded config (populated in get_settings)
    model_routing: dict[str, Any] = Field(default_factory=dict)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance. Cached after first call."""
    settings = Settings()
    settings.model_routing = YAMLConfigLoader().load("models.yaml")
    return settings


def load_provider_keys() -> ProviderKeysConfig:
    """Read the credential slots from the environment. Never cached."""
    return ProviderKeysConfig()
