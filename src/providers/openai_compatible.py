"""
OpenAI-compatible chat-completions adapter (OpenAI, OpenRouter, Groq).

The schema is serialized into the system message. JSON-object response mode
is requested only where the vendor supports it; OpenRouter additionally gets
its app-attribution headers.
"""

from __future__ import annotations

from typing import Any, Optional

from src.models import GenerationRequest, Provider
from src.providers.base import ProviderAdapter, WireRequest, schema_system_prompt

OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAICompatibleAdapter(ProviderAdapter):
    def __init__(
        self,
        provider: Provider,
        base_url: str,
        *,
        supports_json_mode: bool = False,
        temperature: float = 0.1,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.supports_json_mode = supports_json_mode
        self.temperature = temperature
        self.extra_headers = dict(extra_headers or {})

    def build_request(self, api_key: str, model: str, request: GenerationRequest) -> WireRequest:
        body: dict[str, Any] = {
            "model": model,
            "messages": [
                {
                    "role": "system",
                    "content": schema_system_prompt(request.system_instruction, request.output_schema),
                },
                {"role": "user", "content": request.prompt},
            ],
            "temperature": self.temperature,
        }
        if self.supports_json_mode:
            body["response_format"] = {"type": "json_object"}
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            **{k: v for k, v in self.extra_headers.items() if v},
        }
        return WireRequest(url=f"{self.base_url}/chat/completions", payload=body, headers=headers)

    def extract_text(self, data: dict[str, Any], model: str) -> str:
        try:
            return data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError):
            return ""
