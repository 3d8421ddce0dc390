"""Async client for a local Ollama server."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Mapping

import httpx

from app.errors import BackendError

logger = logging.getLogger("spooky_relay.llm_client")


class OllamaClient:
    """Thin wrapper around Ollama's streaming ``/api/generate`` endpoint.

    Calls are single-attempt: chat latency matters more than resilience, so
    any failure surfaces immediately as :class:`BackendError`.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        model: str = "llama3",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = (endpoint or "").rstrip("/") or "http://localhost:11434"
        self.model = model
        # No read timeout: generation length is bounded by the relay instead.
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, read=None))

    @property
    def generate_url(self) -> str:
        return f"{self._endpoint}/api/generate"

    def build_payload(self, prompt: str, sampling: Mapping[str, Any] | None = None) -> dict[str, Any]:
        sampling = sampling or {}
        options: dict[str, Any] = {}
        if "temperature" in sampling:
            options["temperature"] = float(sampling["temperature"])
        if "max_tokens" in sampling:
            options["num_predict"] = max(16, int(sampling["max_tokens"]))
        if "top_p" in sampling:
            options["top_p"] = float(sampling["top_p"])
        payload: dict[str, Any] = {"model": self.model, "prompt": prompt, "stream": True}
        if options:
            payload["options"] = options
        return payload

    async def stream_reply(
        self,
        prompt: str,
        *,
        sampling: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[str]:
        """Yield response text fragments as Ollama produces them."""
        payload = self.build_payload(prompt, sampling)
        logger.debug("Dispatching prompt to %s (model=%s)", self.generate_url, self.model)
        try:
            async with self._client.stream("POST", self.generate_url, json=payload) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace").strip()
                    logger.warning("Model backend returned %s: %s", response.status_code, body[:200])
                    raise BackendError(f"model backend returned {response.status_code}")
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    chunk = self._decode_line(line)
                    error = chunk.get("error")
                    if error:
                        raise BackendError(f"model backend error: {error}")
                    token = chunk.get("response")
                    if isinstance(token, str) and token:
                        yield token
                    if chunk.get("done"):
                        return
        except httpx.HTTPError as exc:
            logger.warning("Model backend request failed: %s", exc)
            raise BackendError("model backend is unreachable") from exc
        raise BackendError("model backend closed the stream early")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @staticmethod
    def _decode_line(line: str) -> dict[str, Any]:
        try:
            chunk = json.loads(line)
        except json.JSONDecodeError as exc:
            raise BackendError("malformed stream from model backend") from exc
        if not isinstance(chunk, dict):
            raise BackendError("malformed stream from model backend")
        return chunk


__all__ = ["OllamaClient"]
