"""Test doubles shared across test modules.

The Ollama service is replaced by ``httpx.MockTransport`` handlers.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

ENDPOINT = "http://ollama.test"


@dataclass
class FakeClock:
    """Manually advanced clock; returns the same instant until told otherwise."""

    now: float = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> None:
        self.now += seconds


@dataclass
class FakeOllama:
    """Scripted Ollama server recording every request it receives."""

    reply: str = "hi there"
    status_code: int = 200
    body: bytes | None = None
    models: list[dict] = field(
        default_factory=lambda: [
            {"name": "llama3:latest", "modified_at": "2024-05-01T10:00:00Z", "size": 4_661_224_676}
        ]
    )
    requests: list[httpx.Request] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.body is not None:
            return httpx.Response(self.status_code, content=self.body)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "model 'nope' not found"})
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": self.models})
        if request.url.path == "/api/chat":
            return httpx.Response(
                200,
                json={"message": {"role": "assistant", "content": self.reply}, "done": True},
            )
        return httpx.Response(404)

    def chat_payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/api/chat"]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def raising_transport(exc_factory: Callable[[httpx.Request], Exception]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_factory(request)

    return httpx.MockTransport(handler)


def unreachable() -> httpx.MockTransport:
    return raising_transport(lambda req: httpx.ConnectError("Connection refused", request=req))
