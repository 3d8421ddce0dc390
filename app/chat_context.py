"""Helpers for turning recent exchanges into a completion prompt."""

from __future__ import annotations

from typing import Sequence

from memory.context import ContextPair


def context_key(session_id: str, character_id: str) -> str:
    """Scope conversational memory to one browser session and one character."""
    return f"{session_id}:{character_id}"


def render_history(pairs: Sequence[ContextPair]) -> str:
    return "".join(f"User: {pair.prompt}\nAssistant: {pair.response}\n\n" for pair in pairs)


def build_prompt(system_prompt: str, pairs: Sequence[ContextPair], prompt: str) -> str:
    """Compose ``system + history + User: prompt + Assistant:`` in chronological order."""
    return f"{system_prompt}\n\n{render_history(pairs)}User: {prompt}\nAssistant:"


__all__ = ["build_prompt", "context_key", "render_history"]
