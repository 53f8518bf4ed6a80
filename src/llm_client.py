"""
Multi-provider AI client with retry and fallback.

Callers hand over a prompt, a JSON schema and a system instruction and get
back decoded JSON. Everything else is handled here:

  RESOLVE   pick the active credential (re-read from the environment per call)
  DISPATCH  POST to the provider's API through its adapter, bounded by a timeout
  DECODE    strip fences, parse JSON, unwrap envelopes around requested arrays
  DONE      return the value

Design decisions:
  - Retry only classified-transient failures, via an explicit bounded loop
    (tenacity.AsyncRetrying); permanent failures surface with zero backoff
  - Model-not-found advances the model ladder (primary -> fallback -> emergency
    -> next configured provider); other transient errors retry the same model
  - Decode failures re-dispatch to the same model
  - No shared mutable state: each generate() call owns its ladder and HTTP client
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from src.config import LLMConfig, get_settings, load_provider_keys
from src.credentials import ProviderCredential, configured_credentials, resolve_active_provider
from src.decoding import decode
from src.llm_errors import (
    AIServiceError,
    DecodeError,
    DispatchError,
    FailureReason,
    ModelUnavailableError,
    PermanentDispatchError,
    TransientDispatchError,
)
from src.model_routing import model_tiers, select_model
from src.models import GenerationRequest, ModelSelection
from src.observability import metrics as obs_metrics
from src.providers import get_adapter

logger = structlog.get_logger()

SleepFn = Callable[[float], Awaitable[None]]


class _FallbackLadder:
    """Walks provider model tiers, then the next configured providers. Clamps at the end."""

    def __init__(self, credentials: list[ProviderCredential]) -> None:
        self._credentials = credentials
        self._provider_index = 0
        self._tier = 0

    @property
    def credential(self) -> ProviderCredential:
        return self._credentials[self._provider_index]

    def selection(self) -> ModelSelection:
        provider = self.credential.provider
        return ModelSelection(provider=provider, model=select_model(provider, self._tier), tier=self._tier)

    def advance(self) -> bool:
        """Move to the next model. Returns False when already on the last rung."""
        if self._tier + 1 < len(model_tiers(self.credential.provider)):
            self._tier += 1
            return True
        if self._provider_index + 1 < len(self._credentials):
            self._provider_index += 1
            self._tier = 0
            return True
        return False


class AIClient:
    """
    Schema-constrained generation against whichever provider is configured.

    - Retries up to max_retries times (max_retries + 1 attempts in total)
    - Linear backoff: backoff_seconds * attempt number
    - Every attempt is bounded by request_timeout
    """

    def __init__(
        self,
        *,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        request_timeout: Optional[float] = None,
        retry_decode_errors: Optional[bool] = None,
        cross_provider_fallback: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        llm = get_settings().llm
        self._llm: LLMConfig = llm
        self.max_retries = max(0, max_retries if max_retries is not None else llm.max_retries)
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else llm.retry_backoff_seconds
        self.request_timeout = request_timeout if request_timeout is not None else llm.request_timeout
        self.retry_decode_errors = (
            retry_decode_errors if retry_decode_errors is not None else llm.retry_decode_errors
        )
        self.cross_provider_fallback = (
            cross_provider_fallback if cross_provider_fallback is not None else llm.cross_provider_fallback
        )
        self._transport = transport
        self._sleep = sleep

    async def generate(
        self,
        prompt: str,
        schema: dict[str, Any],
        system_instruction: str,
        *,
        task: str = "",
        expect_sequence: Optional[bool] = None,
    ) -> Any:
        """
        Generate JSON matching `schema`.

        Args:
            expect_sequence: Force list coercion of the result. Defaults to
                True when the schema's top-level type is ARRAY.
            task: Label for logs and metrics (e.g. "analysis").

        Raises:
            ConfigurationError: no credential configured (raised before any network call).
            AIServiceError: permanent failure, or retries exhausted.
        """
        request = GenerationRequest(
            prompt=prompt,
            system_instruction=system_instruction,
            output_schema=schema,
            task=task,
        )
        return await self.generate_request(request, expect_sequence=expect_sequence)

    async def generate_request(self, request: GenerationRequest, expect_sequence: Optional[bool] = None) -> Any:
        keys = load_provider_keys()
        active = resolve_active_provider(keys)
        credentials = configured_credentials(keys) if self.cross_provider_fallback else [active]
        ladder = _FallbackLadder(credentials)
        expect = request.expects_sequence if expect_sequence is None else expect_sequence
        task = request.task or "unknown"

        logger.info(
            "llm_generation_started",
            provider=active.provider.value,
            key_suffix=active.key_suffix,
            task=task,
            max_attempts=self.max_retries + 1,
        )

        selection = ladder.selection()
        attempts = 0
        result: Any = None
        async with httpx.AsyncClient(timeout=self.request_timeout, transport=self._transport) as client:
            try:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self.max_retries + 1),
                    wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
                    retry=retry_if_exception(self._is_retryable),
                    sleep=self._sleep,
                    before_sleep=self._before_sleep(ladder, task),
                    reraise=True,
                ):
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        selection = ladder.selection()
                        has_next = attempts < self.max_retries + 1
                        result = await self._attempt(client, ladder, selection, request, expect, has_next)
            except DispatchError as e:
                raise self._terminal(e, selection, attempts, task) from e
            except DecodeError as e:
                raise self._terminal(e, selection, attempts, task) from e

        logger.info(
            "llm_generation_complete",
            provider=selection.provider.value,
            model=selection.model,
            attempts=attempts,
            task=task,
        )
        obs_metrics.record_llm_outcome(provider=selection.provider.value, task=task, status="success")
        return result

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        ladder: _FallbackLadder,
        selection: ModelSelection,
        request: GenerationRequest,
        expect_sequence: bool,
        has_next: bool = True,
    ) -> Any:
        """One DISPATCH + DECODE pass. The ladder only moves when another attempt follows."""
        adapter = get_adapter(selection.provider, self._llm)
        try:
            async with obs_metrics.track_llm_call(
                model=selection.model,
                task=request.task or "unknown",
                provider=selection.provider.value,
            ):
                raw = await asyncio.wait_for(
                    adapter.dispatch(client, ladder.credential.api_key, selection.model, request),
                    timeout=self.request_timeout,
                )
        except asyncio.TimeoutError as e:
            raise TransientDispatchError(
                f"No response within {self.request_timeout}s",
                provider=selection.provider.value,
                model=selection.model,
            ) from e
        except ModelUnavailableError as e:
            logger.warning(
                "llm_attempt_failed",
                provider=selection.provider.value,
                model=selection.model,
                status=e.status,
                error=e.message[:200],
            )
            if has_next and ladder.advance():
                fallback = ladder.selection()
                logger.warning(
                    "llm_fallback_triggered",
                    primary_model=selection.label(),
                    fallback_model=fallback.label(),
                    task=request.task or "unknown",
                )
                obs_metrics.record_llm_fallback(
                    primary=selection.label(),
                    fallback=fallback.label(),
                    task=request.task or "unknown",
                )
            raise
        return decode(raw, expect_sequence=expect_sequence)

    def _is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, TransientDispatchError):
            return True
        if isinstance(exc, DecodeError):
            return self.retry_decode_errors
        return False

    def _before_sleep(self, ladder: _FallbackLadder, task: str) -> Callable[[RetryCallState], None]:
        def _log(rs: RetryCallState) -> None:
            exc = rs.outcome.exception() if rs.outcome else None
            upcoming = ladder.selection()
            logger.warning(
                "llm_retry",
                attempt=rs.attempt_number,
                next_provider=upcoming.provider.value,
                next_model=upcoming.model,
                sleep_seconds=rs.next_action.sleep if rs.next_action else 0,
                error_type=type(exc).__name__ if exc else "unknown",
                error=str(exc)[:200] if exc else "unknown",
                task=task,
            )
            obs_metrics.record_llm_retry(
                provider=upcoming.provider.value,
                model=upcoming.model,
                task=task,
                error_type=type(exc).__name__ if exc else "unknown",
            )

        return _log

    def _terminal(
        self,
        exc: DispatchError | DecodeError,
        selection: ModelSelection,
        attempts: int,
        task: str,
    ) -> AIServiceError:
        """Convert the error that ended the loop into the caller-facing AIServiceError."""
        status: Optional[int] = None
        if isinstance(exc, DecodeError):
            reason = FailureReason.UNDECODABLE
            message = str(exc)
        else:
            status = exc.status
            message = exc.message
            if isinstance(exc, PermanentDispatchError):
                reason = FailureReason.PERMANENT
            elif isinstance(exc, ModelUnavailableError):
                reason = FailureReason.MODEL_UNAVAILABLE
            else:
                reason = FailureReason.EXHAUSTED
        provider = getattr(exc, "provider", "") or selection.provider.value
        model = getattr(exc, "model", "") or selection.model
        logger.error(
            "llm_generation_failed",
            reason=reason.value,
            provider=provider,
            model=model,
            attempts=attempts,
            status=status,
            error=message[:200],
            task=task,
        )
        obs_metrics.record_llm_outcome(provider=provider, task=task, status=reason.value)
        return AIServiceError(
            reason,
            message,
            provider=provider,
            model=model,
            attempts=attempts,
            status=status,
        )


async def generate(
    prompt: str,
    schema: dict[str, Any],
    system_instruction: str,
    *,
    task: str = "",
) -> Any:
    """Module-level entry point using default settings."""
    return await AIClient().generate(prompt, schema, system_instruction, task=task)
