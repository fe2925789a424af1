"""
HTTP client for an Ollama-compatible inference server.

Wraps /api/chat, /api/generate, /api/tags and /api/version. Responses are
read in full before they are decoded.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from owllama.core.config import DEFAULT_HOST, DEFAULT_TIMEOUT, Settings
from owllama.core.decoder import decode_generate_body
from owllama.core.errors import InferenceError
from owllama.models.chat import ChatRequest, GenerateRequest

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10.0


def _friendly_http_error(base_url: str, error: httpx.HTTPError) -> InferenceError:
    """Convert an httpx exception to a user-facing error."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        detail = response.text.strip() or response.reason_phrase
        return InferenceError(
            f"Server returned {response.status_code}: {detail}",
            status_code=response.status_code,
            original=error,
        )

    if isinstance(error, httpx.ConnectError):
        return InferenceError(
            f"Could not connect to {base_url}. Is the server running?\n"
            f"  Start it with: ollama serve",
            original=error,
        )

    if isinstance(error, httpx.TimeoutException):
        return InferenceError(
            f"Request to {base_url} timed out. Raise OWLLAMA_TIMEOUT for slow models.",
            original=error,
        )

    return InferenceError(f"Request to {base_url} failed: {error}", original=error)


class OllamaClient:
    """
    Synchronous client for the inference server.

    Every method raises InferenceError on transport failures and non-2xx
    responses.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = (base_url or DEFAULT_HOST).rstrip("/")
        self.api_key = api_key
        read_timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=httpx.Timeout(CONNECT_TIMEOUT, read=read_timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> OllamaClient:
        return cls(base_url=settings.host, api_key=settings.api_key, timeout=settings.timeout)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug(f"{method} {self.base_url}{path}")
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise _friendly_http_error(self.base_url, e) from e
        return response

    def chat(self, request: ChatRequest) -> bytes:
        """
        Send the full conversation to /api/chat.

        Args:
            request: Model and ordered messages

        Returns:
            The raw newline-delimited JSON response body
        """
        response = self._request(
            "POST", "/api/chat", content=request.model_dump_json().encode()
        )
        return response.content

    def generate(self, model: str, prompt: str) -> str:
        """Run a single prompt through /api/generate and return the full text."""
        request = GenerateRequest(model=model, prompt=prompt)
        response = self._request(
            "POST", "/api/generate", content=request.model_dump_json().encode()
        )
        return decode_generate_body(response.content)

    def list_models(self) -> list[str]:
        """List locally available model names."""
        response = self._request("GET", "/api/tags")
        try:
            data = response.json()
        except ValueError as e:
            raise InferenceError(f"Invalid response from server: {e}", original=e) from e
        return [m.get("name", "") for m in data.get("models") or []]

    def version(self) -> str:
        response = self._request("GET", "/api/version")
        try:
            return str(response.json().get("version", ""))
        except ValueError as e:
            raise InferenceError(f"Invalid response from server: {e}", original=e) from e

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> OllamaClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
