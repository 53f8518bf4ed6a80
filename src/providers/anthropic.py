"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any

from src.models import GenerationRequest, Provider
from src.providers.base import ProviderAdapter, WireRequest, schema_system_prompt

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"


class AnthropicAdapter(ProviderAdapter):
    provider = Provider.ANTHROPIC

    def __init__(
        self,
        url: str = ANTHROPIC_MESSAGES_URL,
        *,
        max_tokens: int = 4000,
        api_version: str = "2023-06-01",
    ) -> None:
        self.url = url
        self.max_tokens = max_tokens
        self.api_version = api_version

    def build_request(self, api_key: str, model: str, request: GenerationRequest) -> WireRequest:
        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": self.max_tokens,
            "system": schema_system_prompt(request.system_instruction, request.output_schema),
            "messages": [{"role": "user", "content": request.prompt}],
        }
        headers = {
            "x-api-key": api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }
        return WireRequest(url=self.url, payload=payload, headers=headers)

    def is_error_envelope(self, data: dict[str, Any]) -> bool:
        return data.get("type") == "error" or super().is_error_envelope(data)

    def extract_text(self, data: dict[str, Any], model: str) -> str:
        try:
            return data["content"][0].get("text") or ""
        except (KeyError, IndexError, TypeError, AttributeError):
            return ""
