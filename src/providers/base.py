"""
Provider adapter contract.

One adapter per wire-protocol family. An adapter knows three things about
its vendor: how to build the HTTP request, where the generated text lives in
a successful response, and how the vendor reports errors. The HTTP call
itself (dispatch) is shared so every family gets identical transport-error
handling.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
import structlog

from src.llm_errors import DispatchError, TransientDispatchError, build_dispatch_error
from src.models import GenerationRequest, Provider

logger = structlog.get_logger()


@dataclass(frozen=True)
class WireRequest:
    """A fully built provider request, ready to POST."""

    url: str
    payload: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


def schema_system_prompt(system_instruction: str, schema: dict[str, Any]) -> str:
    """Embed the output schema in the system message for providers without native schema support."""
    return (
        f"{system_instruction}\n\n"
        "IMPORTANT: You must output ONLY valid JSON.\n"
        f"Target JSON Schema:\n{json.dumps(schema, indent=2)}"
    )


def extract_error_message(data: Any, fallback: str = "") -> str:
    """Pull a human-readable message out of a vendor error body."""
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            msg = err.get("message") or err.get("type") or err.get("status")
            if msg:
                return str(msg)
        elif isinstance(err, str) and err:
            return err
        if data.get("message"):
            return str(data["message"])
    return fallback


def _envelope_status(data: dict[str, Any], http_status: int) -> int:
    """Status for an in-body error: the vendor's numeric code when it gives one."""
    err = data.get("error")
    if isinstance(err, dict) and isinstance(err.get("code"), int):
        return err["code"]
    return http_status


class ProviderAdapter(ABC):
    """Builds requests for, and parses responses from, one provider family."""

    provider: Provider

    @abstractmethod
    def build_request(self, api_key: str, model: str, request: GenerationRequest) -> WireRequest:
        """Translate a provider-agnostic request into this vendor's wire format."""

    @abstractmethod
    def extract_text(self, data: dict[str, Any], model: str) -> str:
        """Return the generated text from a successful response envelope ("" if absent)."""

    def is_error_envelope(self, data: dict[str, Any]) -> bool:
        return "error" in data and bool(data.get("error"))

    def classify_error(self, status: int, data: Any, model: str, raw_text: str = "") -> DispatchError:
        """Build the classified error for a failed call (HTTP-level or in-body)."""
        fallback = f"{self.provider.value} error: HTTP {status}"
        message = extract_error_message(data, fallback=fallback)
        return build_dispatch_error(
            status,
            message,
            provider=self.provider.value,
            model=model,
            body=raw_text,
        )

    def parse_response(self, data: Any, model: str, status: int = 200, raw_text: str = "") -> str:
        """Validate a 2xx body and return its text. In-body errors are classified like HTTP errors."""
        if not isinstance(data, dict):
            raise TransientDispatchError(
                f"Unexpected {self.provider.value} response type: {type(data).__name__}",
                provider=self.provider.value,
                model=model,
                status=status,
                body=raw_text[:2000],
            )
        if self.is_error_envelope(data):
            raise self.classify_error(_envelope_status(data, status), data, model, raw_text)
        return self.extract_text(data, model)

    async def dispatch(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        model: str,
        request: GenerationRequest,
    ) -> str:
        """Single POST to the provider. Returns raw generated text or raises DispatchError."""
        wire = self.build_request(api_key, model, request)
        try:
            response = await client.post(
                wire.url,
                params=wire.params or None,
                headers=wire.headers,
                json=wire.payload,
            )
        except httpx.TimeoutException as e:
            raise TransientDispatchError(
                f"{self.provider.value} request timed out: {e}",
                provider=self.provider.value,
                model=model,
            ) from e
        except httpx.RequestError as e:
            raise TransientDispatchError(
                f"{self.provider.value} network error: {e}",
                provider=self.provider.value,
                model=model,
            ) from e

        data = _json_or_none(response)
        if response.is_error:
            raise self.classify_error(response.status_code, data, model, response.text)
        if data is None:
            raise TransientDispatchError(
                f"{self.provider.value} returned a non-JSON body",
                provider=self.provider.value,
                model=model,
                status=response.status_code,
                body=response.text[:2000],
            )
        return self.parse_response(data, model, status=response.status_code, raw_text=response.text)


def _json_or_none(response: httpx.Response) -> Optional[Any]:
    try:
        return response.json()
    except ValueError:
        return None
