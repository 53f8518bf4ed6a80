"""
Prometheus metrics for the AI client.

All metrics are no-op when observability.metrics_enabled is False.
Exposes track_llm_call, record_llm_retry, record_llm_fallback,
record_llm_outcome and start_server.
"""

from __future__ import annotations

import contextlib
import threading
import time
from typing import Any

from prometheus_client import (
    Counter,
    Histogram,
    start_http_server as prometheus_start_http_server,
)


def _enabled() -> bool:
    from src.config import get_settings

    return bool(get_settings().observability.metrics_enabled)


# Lazy registry: only create metrics when enabled and first used
_metrics_created = False


def _ensure_metrics() -> bool:
    global _metrics_created
    if _metrics_created or not _enabled():
        return _metrics_created
    _create_metrics()
    _metrics_created = True
    return True


def _create_metrics() -> None:
    """Create all Prometheus metrics (called once when enabled)."""
    _llm_duration = Histogram(
        "llm_attempt_duration_seconds",
        "Latency of a single provider attempt",
        ["model", "task", "provider"],
        buckets=[0.5, 1, 2, 5, 10, 30],
    )
    _llm_errors = Counter(
        "llm_attempt_errors_total",
        "Failed provider attempts",
        ["model", "task", "error_type"],
    )
    _llm_retries = Counter(
        "llm_retries_total",
        "Retries scheduled after a retryable failure",
        ["provider", "model", "task", "error_type"],
    )
    _llm_fallback = Counter(
        "llm_fallback_total",
        "Switches to an alternate model or provider",
        ["primary_model", "fallback_model", "task"],
    )
    _llm_outcomes = Counter(
        "llm_generation_outcomes_total",
        "Terminal outcome of generate() calls",
        ["provider", "task", "status"],
    )

    # Store on module for access from MetricsCollector
    _registry = {
        "llm_duration": _llm_duration,
        "llm_errors": _llm_errors,
        "llm_retries": _llm_retries,
        "llm_fallback": _llm_fallback,
        "llm_outcomes": _llm_outcomes,
    }
    setattr(_MetricsCollector, "_registry", _registry)


class _MetricsCollector:
    """Collector that delegates to Prometheus when enabled, no-op otherwise."""

    _registry: dict[str, Any] = {}

    def _get(self, name: str) -> Any:
        _ensure_metrics()
        return self._registry.get(name)

    @contextlib.asynccontextmanager
    async def track_llm_call(self, model: str = "", task: str = "", provider: str = ""):
        m = self._get("llm_duration")
        start = time.perf_counter()
        try:
            yield
        except BaseException as e:
            err = self._get("llm_errors")
            if err:
                err.labels(
                    model=model or "unknown",
                    task=task or "unknown",
                    error_type=type(e).__name__,
                ).inc()
            raise
        finally:
            if m:
                m.labels(
                    model=model or "unknown",
                    task=task or "unknown",
                    provider=provider or "unknown",
                ).observe(time.perf_counter() - start)

    def record_llm_retry(
        self,
        provider: str = "",
        model: str = "",
        task: str = "",
        error_type: str = "",
    ) -> None:
        c = self._get("llm_retries")
        if c:
            c.labels(
                provider=provider or "unknown",
                model=model or "unknown",
                task=task or "unknown",
                error_type=error_type or "unknown",
            ).inc()

    def record_llm_fallback(
        self,
        primary: str,
        fallback: str,
        task: str = "",
    ) -> None:
        c = self._get("llm_fallback")
        if c:
            c.labels(
                primary_model=primary or "unknown",
                fallback_model=fallback or "unknown",
                task=task or "unknown",
            ).inc()

    def record_llm_outcome(self, provider: str = "", task: str = "", status: str = "success") -> None:
        c = self._get("llm_outcomes")
        if c:
            c.labels(provider=provider or "unknown", task=task or "unknown", status=status or "unknown").inc()

    def start_server(self, port: int = 8000) -> None:
        if not _enabled():
            return
        _ensure_metrics()

        def run() -> None:
            prometheus_start_http_server(port, addr="0.0.0.0")

        t = threading.Thread(target=run, daemon=True)
        t.start()


metrics = _MetricsCollector()
