"""Observability: Prometheus metrics for the AI client."""

from src.observability.metrics import metrics

__all__ = ["metrics"]
