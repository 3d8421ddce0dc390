"""Orchestrates a single chat request from gate checks to streamed reply."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Protocol, Sequence

from app.admin import AdminGate
from app.chat_context import build_prompt, context_key
from app.constants import BACKEND_ERROR_TEXT
from app.errors import BackendError, InvalidInput, RateLimited, ServiceUnavailable
from app.persona import CharacterProfile, CharacterRegistry
from brain.cooldown import CooldownGate
from memory.context import ContextCache, ContextPair
from state_engine.ledger import QueryLedger
from state_engine.led_bridge import LedSignalBridge
from utils.redactor import clean_messages, strip_control_chars

logger = logging.getLogger("spooky_relay.relay")


class ModelBackend(Protocol):
    def stream_reply(
        self,
        prompt: str,
        *,
        sampling: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[str]: ...


@dataclass(slots=True)
class ChatStream:
    """An accepted chat: the reply chunks plus counters for response metadata."""

    chunks: AsyncIterator[str]
    character: CharacterProfile
    total_queries: int
    session_queries: int
    cooldown_remaining: float


class ChatRelay:
    """Gatekeeper and streamer for chat requests.

    Everything up to the first backend call happens without suspending, so
    the ledger, cooldown and LED updates for one request cannot interleave
    with another request's.
    """

    def __init__(
        self,
        backend: ModelBackend,
        *,
        admin: AdminGate,
        cooldown: CooldownGate,
        context: ContextCache,
        ledger: QueryLedger,
        led_bridge: LedSignalBridge,
        characters: CharacterRegistry,
        max_prompt_chars: int = 2000,
        generation_timeout: float = 120.0,
    ) -> None:
        self._backend = backend
        self._admin = admin
        self._cooldown = cooldown
        self._context = context
        self._ledger = ledger
        self._led_bridge = led_bridge
        self._characters = characters
        self._max_prompt_chars = max_prompt_chars
        self._generation_timeout = generation_timeout

    async def handle_chat(
        self,
        session_key: str,
        character_id: str | None,
        prompt_text: str | None,
        *,
        cached_prompts: Sequence[str] = (),
        cached_responses: Sequence[str] = (),
    ) -> ChatStream:
        prompt = strip_control_chars(prompt_text or "").strip()
        if not prompt:
            raise InvalidInput("Missing prompt")
        if len(prompt) > self._max_prompt_chars:
            raise InvalidInput(f"Prompt exceeds {self._max_prompt_chars} characters")
        if self._admin.paused:
            raise ServiceUnavailable("SpookyGPT is resting right now. Please come back later.")
        if self._cooldown.is_blocked(session_key):
            raise RateLimited("Cooldown active", retry_after=self._cooldown.remaining(session_key))

        profile = self._characters.resolve(character_id)
        key = context_key(session_key, profile.id)
        pairs = self._load_context(key, prompt, cached_prompts, cached_responses)
        full_prompt = build_prompt(profile.system_prompt, pairs, prompt)

        total = self._record_acceptance(session_key, profile.id, prompt)
        return ChatStream(
            chunks=self._relay(key, prompt, full_prompt, profile),
            character=profile,
            total_queries=total,
            session_queries=self._cooldown.query_count(session_key),
            cooldown_remaining=self._cooldown.remaining(session_key),
        )

    def _load_context(
        self,
        key: str,
        prompt: str,
        cached_prompts: Sequence[str],
        cached_responses: Sequence[str],
    ) -> list[ContextPair]:
        try:
            if cached_responses and key not in self._context:
                prompts = clean_messages(cached_prompts)
                # The browser caches the outgoing prompt before posting it.
                if prompts and prompts[-1] == prompt:
                    prompts = prompts[:-1]
                self._context.seed(key, prompts, clean_messages(cached_responses))
            return self._context.read_context(key)
        except Exception:
            logger.exception("Context lookup failed; continuing without history")
            return []

    def _record_acceptance(self, session_key: str, character_id: str, prompt: str) -> int:
        try:
            total = self._ledger.record_query(character_id, prompt)
        except Exception:
            logger.exception("Ledger update failed")
            total = self._ledger.total
        self._cooldown.record_query(session_key)
        try:
            self._led_bridge.on_query(total)
        except Exception:
            logger.exception("LED signal update failed")
        return total

    async def _relay(
        self,
        key: str,
        prompt: str,
        full_prompt: str,
        profile: CharacterProfile,
    ) -> AsyncIterator[str]:
        stream = self._backend.stream_reply(full_prompt, sampling=profile.sampling())
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._generation_timeout
        parts: list[str] = []
        failed = False
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise asyncio.TimeoutError()
                try:
                    chunk = await asyncio.wait_for(stream.__anext__(), timeout=remaining)
                except StopAsyncIteration:
                    break
                if chunk:
                    parts.append(chunk)
                    yield chunk
        except asyncio.TimeoutError:
            failed = True
            logger.warning("Generation for %s exceeded %.0fs", profile.id, self._generation_timeout)
            yield f"\n\n{BACKEND_ERROR_TEXT} (the reply took too long)."
        except BackendError as exc:
            failed = True
            logger.warning("Chat backend failed for %s: %s", profile.id, exc)
            yield f"\n\n{BACKEND_ERROR_TEXT} ({exc})."
        except Exception:  # pragma: no cover - unexpected backend failure
            failed = True
            logger.exception("Unexpected chat backend failure for %s", profile.id)
            yield f"\n\n{BACKEND_ERROR_TEXT}."
        finally:
            closer = getattr(stream, "aclose", None)
            if closer is not None:
                await closer()

        response = "".join(parts).strip()
        if failed or not response:
            return
        try:
            self._context.record_exchange(key, prompt, response)
        except Exception:
            logger.exception("Context update failed")


__all__ = ["ChatRelay", "ChatStream", "ModelBackend"]
