"""Scripted provider responses for driving the AI client through httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, Union

import httpx

ScriptItem = Union[httpx.Response, Callable[[httpx.Request], Any]]


class FakeProviderAPI:
    """Replays scripted responses and records every request. The last item repeats."""

    def __init__(self, *script: ScriptItem) -> None:
        self._script = list(script)
        self.requests: list[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        item = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if callable(item):
            return item(request)
        return item

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def body(self, index: int) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays without waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def gemini_ok(text: str) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def chat_ok(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": text}}]})


def anthropic_ok(text: str) -> httpx.Response:
    return httpx.Response(200, json={"type": "message", "content": [{"type": "text", "text": text}]})


def error_response(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error": {"code": status, "message": message}})
