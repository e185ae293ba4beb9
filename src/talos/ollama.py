"""Async client for the Ollama HTTP API."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
from pydantic import ValidationError

from .config import REQUEST_TIMEOUT
from .errors import EmptyResponse, ProtocolError, ServiceError, ServiceUnavailable
from .models import ChatMessage, ChatRequest, ChatResponse, ModelInfo, ModelsResponse

logger = logging.getLogger(__name__)


class OllamaClient:
    """Stateless adapter for an Ollama-compatible completion service.

    Every call names the endpoint it talks to and opens its own HTTPX session,
    so a change of endpoint takes effect on the next call. ``transport`` lets
    callers (mostly tests) replace the network layer.
    """

    def __init__(
        self,
        timeout: float | None = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    def _client(self, endpoint: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=endpoint.rstrip("/"),
            timeout=self.timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )

    async def check_status(self, endpoint: str) -> bool:
        """Return True if the service answers the model listing successfully.

        Connectivity problems are an expected state here, not an error.
        """
        try:
            async with self._client(endpoint) as client:
                response = await client.get("/api/tags")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Ollama at %s is not reachable: %s", endpoint, exc)
            return False
        return response.is_success

    async def list_models(self, endpoint: str) -> list[ModelInfo]:
        """Return the models installed on the service."""
        response = await self._send(endpoint, "GET", "/api/tags")
        payload = _decode(response, ModelsResponse)
        return payload.models

    async def complete(
        self, endpoint: str, model: str, history: Sequence[ChatMessage]
    ) -> str:
        """Run one non-streamed chat completion and return the reply content."""
        request = ChatRequest(model=model, messages=list(history), stream=False)
        response = await self._send(
            endpoint, "POST", "/api/chat", json=request.model_dump(mode="json")
        )
        payload = _decode(response, ChatResponse)
        if payload.message is None:
            raise EmptyResponse(f"No response from model {model!r}")
        return payload.message.content

    async def _send(self, endpoint: str, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with self._client(endpoint) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise ServiceUnavailable(
                f"Timed out waiting for Ollama at {endpoint}",
                hint="The model may still be loading; try again.",
            ) from exc
        except httpx.DecodingError as exc:
            raise ProtocolError(f"Failed to decode response body: {exc}") from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise ServiceUnavailable(
                f"Failed to connect to Ollama at {endpoint}: {exc}",
                hint="Is `ollama serve` running?",
            ) from exc

        if not response.is_success:
            raise ServiceError(
                f"Ollama returned HTTP {response.status_code} for {method} {path}: "
                f"{_error_detail(response)}",
                status_code=response.status_code,
            )
        return response


def _decode(response: httpx.Response, model: type[ModelsResponse] | type[ChatResponse]):
    try:
        return model.model_validate_json(response.content)
    except ValidationError as exc:
        raise ProtocolError(f"Failed to parse response: {exc}") from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.reason_phrase
