"""
Gemini (Generative Language API) adapter: native structured output.

The schema travels as generationConfig.responseSchema; the key goes in the
query string. Text lives at candidates[0].content.parts[0].text.
"""

from __future__ import annotations

import copy
from typing import Any

from src.llm_errors import PermanentDispatchError
from src.models import GenerationRequest, Provider
from src.providers.base import ProviderAdapter, WireRequest

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(ProviderAdapter):
    provider = Provider.GEMINI

    def __init__(self, base_url: str = GEMINI_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def build_request(self, api_key: str, model: str, request: GenerationRequest) -> WireRequest:
        payload: dict[str, Any] = {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "systemInstruction": {"parts": [{"text": request.system_instruction}]},
            "generationConfig": {
                "responseMimeType": "application/json",
                # Copy so the request's schema can never be touched by payload handling
                "responseSchema": copy.deepcopy(request.output_schema),
            },
        }
        return WireRequest(
            url=f"{self.base_url}/models/{model}:generateContent",
            payload=payload,
            headers={"Content-Type": "application/json"},
            params={"key": api_key},
        )

    def extract_text(self, data: dict[str, Any], model: str) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise PermanentDispatchError(
                    f"Prompt blocked by Gemini safety filters: {block_reason}",
                    provider=self.provider.value,
                    model=model,
                    status=200,
                )
            return ""
        try:
            return candidates[0]["content"]["parts"][0].get("text") or ""
        except (KeyError, IndexError, TypeError, AttributeError):
            return ""
