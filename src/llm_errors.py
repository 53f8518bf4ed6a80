"""
Error taxonomy and failure classification for the AI client.

Retry policy is driven entirely by exception type:
  - ConfigurationError      no credential; fatal, never retried
  - ModelUnavailableError   model/route missing; retried on the NEXT model tier
  - TransientDispatchError  network, timeout, 429, 5xx; retried on the SAME tier
  - PermanentDispatchError  bad key, bad request; surfaced immediately
  - DecodeError             empty or non-JSON text; retried by re-dispatching
  - AIServiceError          terminal, caller-facing; wraps whichever of the above ended the call

classify_failure() is the one place that maps HTTP status codes and vendor
error text onto these types. The message signatures are best-effort: vendors
reword errors between API versions, so status codes take precedence.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


# ── Error taxonomy: retry only transient, fail fast on permanent ──


class LLMClientError(Exception):
    """Base for AI client errors."""

    pass


class ConfigurationError(LLMClientError):
    """No usable credential configured. Never retried."""

    pass


class DispatchError(LLMClientError):
    """A single provider call failed. Carries enough context to build a user-facing message."""

    transient: bool = False

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        model: str = "",
        status: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.status = status
        self.body = body


class TransientDispatchError(DispatchError):
    """Rate limit, 5xx, timeout, connection reset: safe to retry on the same model."""

    transient = True


class ModelUnavailableError(TransientDispatchError):
    """Model not found or no route to it: retry on the next model tier."""

    pass


class PermanentDispatchError(DispatchError):
    """Invalid API key, malformed request, blocked prompt: do not retry."""

    pass


class DecodeError(LLMClientError):
    """Response text was empty or not JSON even after cleanup."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class FailureReason(str, Enum):
    PERMANENT = "permanent"
    MODEL_UNAVAILABLE = "model_unavailable"
    EXHAUSTED = "exhausted"
    UNDECODABLE = "undecodable"


class AIServiceError(LLMClientError):
    """Terminal error returned to callers once the retry loop gives up."""

    def __init__(
        self,
        reason: FailureReason,
        message: str,
        *,
        provider: str = "",
        model: str = "",
        attempts: int = 0,
        status: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.message = message
        self.provider = provider
        self.model = model
        self.attempts = attempts
        self.status = status
        super().__init__(self._render())

    def _render(self) -> str:
        target = f"{self.provider}/{self.model}" if self.model else (self.provider or "AI provider")
        if self.reason is FailureReason.PERMANENT:
            return f"{target} rejected the request: {self.message}"
        if self.reason is FailureReason.MODEL_UNAVAILABLE:
            return f"No available model ({target} was last tried after {self.attempts} attempts): {self.message}"
        if self.reason is FailureReason.UNDECODABLE:
            return f"{target} returned unusable output after {self.attempts} attempts: {self.message}"
        return f"All providers exhausted after {self.attempts} attempts (last: {target}): {self.message}"


# ── Classification ──

_MODEL_UNAVAILABLE_STATUSES = frozenset({404, 502})
_TRANSIENT_STATUSES = frozenset({408, 409, 425, 429, 500, 503, 504, 529})

# Lower-cased substrings vendors use for "this model/route does not exist right now"
_MODEL_UNAVAILABLE_PHRASES = (
    "no endpoints",
    "model not found",
    "model_not_found",
    "does not exist",
    "is not found",
    "not supported for generatecontent",
    "decommissioned",
)


def classify_failure(status: Optional[int], message: str) -> type[DispatchError]:
    """Map an HTTP status (None for transport failures) and vendor message to an error type."""
    if status is None or status in _TRANSIENT_STATUSES:
        return TransientDispatchError
    if status in _MODEL_UNAVAILABLE_STATUSES:
        return ModelUnavailableError
    # Phrases only refine a generic 400 or an in-body error on a 2xx; auth failures stay permanent
    if status == 400 or 200 <= status < 300:
        text = (message or "").lower()
        if any(phrase in text for phrase in _MODEL_UNAVAILABLE_PHRASES):
            return ModelUnavailableError
    return PermanentDispatchError


def build_dispatch_error(
    status: Optional[int],
    message: str,
    *,
    provider: str = "",
    model: str = "",
    body: str = "",
) -> DispatchError:
    """Instantiate the classified error for a failed call."""
    error_type = classify_failure(status, message)
    return error_type(message, provider=provider, model=model, status=status, body=body[:2000])
