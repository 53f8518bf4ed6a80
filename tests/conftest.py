"""Shared pytest fixtures for AI client tests."""

import pytest

from src.config import get_settings
from tests.fakes import RecordingSleep

_ENV_VARS = (
    "GEMINI_API_KEY",
    "VITE_GEMINI_API_KEY",
    "OPENROUTER_API_KEY",
    "VITE_OPENROUTER_API_KEY",
    "OPENAI_API_KEY",
    "VITE_OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "VITE_ANTHROPIC_API_KEY",
    "GROQ_API_KEY",
    "VITE_GROQ_API_KEY",
    "API_KEY",
    "VITE_API_KEY",
    "LLM_MAX_RETRIES",
    "LLM_RETRY_BACKOFF_SECONDS",
    "LLM_REQUEST_TIMEOUT",
    "LLM_RETRY_DECODE_ERRORS",
    "LLM_CROSS_PROVIDER_FALLBACK",
    "LLM_MAX_TOKENS",
    "KNOWLEDGE_BASE_MAX_INSIGHTS",
    "PROMETHEUS_METRICS_ENABLED",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Start every test with no credentials and default tuning."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def gemini_key(monkeypatch: pytest.MonkeyPatch) -> str:
    key = "AIza-test-gemini-0001"
    monkeypatch.setenv("GEMINI_API_KEY", key)
    return key
