"""Helpers for cleaning user-supplied text before it is logged or echoed."""

from __future__ import annotations

import re
from typing import Sequence

_CONTROL_PATTERN = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")
_WHITESPACE_PATTERN = re.compile(r"\s{2,}")


def strip_control_chars(text: str) -> str:
    """Remove control characters, keeping tabs and newlines."""
    return _CONTROL_PATTERN.sub("", text or "")


def preview_text(text: str, limit: int = 280) -> str:
    """Return a single-line, bounded preview of ``text``."""
    cleaned = strip_control_chars(text).replace("\n", " ").replace("\t", " ")
    cleaned = _WHITESPACE_PATTERN.sub(" ", cleaned).strip()
    if len(cleaned) <= limit:
        return cleaned
    shortened = cleaned[: max(limit - 3, 0)].rsplit(" ", 1)[0]
    return f"{shortened}..."


def clean_messages(messages: Sequence[str]) -> list[str]:
    """Return a new list with control characters stripped from each message."""
    return [strip_control_chars(message).strip() for message in messages]


__all__ = [
    "clean_messages",
    "preview_text",
    "strip_control_chars",
]
