"""Tests for the streaming Ollama client, using httpx's mock transport."""

from __future__ import annotations

import json
import unittest
from typing import Any, Callable

import httpx

from app.errors import BackendError
from brain.llm_client import OllamaClient


def ndjson(*chunks: dict[str, Any]) -> bytes:
    return "".join(json.dumps(chunk) + "\n" for chunk in chunks).encode("utf-8")


class OllamaClientTests(unittest.IsolatedAsyncioTestCase):
    def _client(self, handler: Callable[[httpx.Request], httpx.Response]) -> OllamaClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = OllamaClient("http://ollama.local:11434/", model="llama3", client=http)
        self.addAsyncCleanup(client.aclose)
        return client

    async def _collect(self, client: OllamaClient, **kwargs: Any) -> list[str]:
        return [token async for token in client.stream_reply("Hello", **kwargs)]

    async def test_streams_tokens_until_done(self) -> None:
        seen: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            body = ndjson(
                {"response": "Boo", "done": False},
                {"response": "!", "done": False},
                {"response": "", "done": True},
            )
            return httpx.Response(200, content=body)

        client = self._client(handler)
        tokens = await self._collect(client, sampling={"temperature": 0.9, "max_tokens": 4})
        self.assertEqual(tokens, ["Boo", "!"])
        self.assertEqual(client.generate_url, "http://ollama.local:11434/api/generate")
        self.assertEqual(seen[0]["model"], "llama3")
        self.assertTrue(seen[0]["stream"])
        self.assertEqual(seen[0]["options"], {"temperature": 0.9, "num_predict": 16})

    async def test_http_error_status_raises(self) -> None:
        client = self._client(lambda request: httpx.Response(500, text="model not found"))
        with self.assertRaisesRegex(BackendError, "returned 500"):
            await self._collect(client)

    async def test_error_line_raises(self) -> None:
        client = self._client(lambda request: httpx.Response(200, content=ndjson({"error": "out of memory"})))
        with self.assertRaisesRegex(BackendError, "out of memory"):
            await self._collect(client)

    async def test_malformed_line_raises(self) -> None:
        client = self._client(lambda request: httpx.Response(200, content=b'{"response": "ok"}\nnot json\n'))
        with self.assertRaisesRegex(BackendError, "malformed"):
            await self._collect(client)

    async def test_stream_without_done_raises(self) -> None:
        client = self._client(lambda request: httpx.Response(200, content=ndjson({"response": "half"})))
        with self.assertRaisesRegex(BackendError, "closed the stream early"):
            await self._collect(client)

    async def test_connection_failure_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = self._client(handler)
        with self.assertRaisesRegex(BackendError, "unreachable"):
            await self._collect(client)

    def test_payload_without_sampling_has_no_options(self) -> None:
        client = OllamaClient("", client=httpx.AsyncClient())
        payload = client.build_payload("hi")
        self.assertEqual(payload, {"model": "llama3", "prompt": "hi", "stream": True})
        self.assertEqual(client.generate_url, "http://localhost:11434/api/generate")


if __name__ == "__main__":
    unittest.main()
