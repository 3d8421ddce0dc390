"""Short conversational memory used to give the model recent context."""

from __future__ import annotations

from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Deque, Sequence


@dataclass(frozen=True, slots=True)
class ContextPair:
    """One completed exchange."""

    prompt: str
    response: str


class ContextCache:
    """Per-key ring buffers of the most recent exchanges.

    Keys usually combine the browser session id with the character id so
    each persona keeps its own history. Both the per-key window and the
    number of keys are bounded; the least recently touched key is dropped
    first when the key limit is hit.
    """

    def __init__(self, window: int = 5, max_keys: int = 2048) -> None:
        self._window = max(1, int(window))
        self._max_keys = max(1, int(max_keys))
        self._entries: "OrderedDict[str, Deque[ContextPair]]" = OrderedDict()

    @property
    def window(self) -> int:
        return self._window

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def record_exchange(self, key: str, prompt: str, response: str) -> None:
        """Append a pair for ``key``, evicting the oldest beyond the window."""
        bucket = self._touch(key)
        bucket.append(ContextPair(prompt=prompt, response=response))

    def read_context(self, key: str) -> list[ContextPair]:
        """Return the pairs for ``key`` oldest first; unknown keys give ``[]``."""
        bucket = self._entries.get(key)
        if bucket is None:
            return []
        self._entries.move_to_end(key)
        return list(bucket)

    def seed(self, key: str, prompts: Sequence[str], responses: Sequence[str]) -> bool:
        """Load a client-held history when the server has none for ``key``.

        Both lists are aligned on their most recent end, since the browser
        trims each cache independently. Returns ``True`` when anything was
        stored.
        """
        if key in self._entries:
            return False
        count = min(len(prompts), len(responses))
        if count <= 0:
            return False
        pairs = [
            ContextPair(prompt=prompt, response=response)
            for prompt, response in zip(prompts[-count:], responses[-count:])
            if prompt and response
        ]
        if not pairs:
            return False
        bucket = self._touch(key)
        bucket.extend(pairs[-self._window :])
        return True

    def clear(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def _touch(self, key: str) -> Deque[ContextPair]:
        bucket = self._entries.get(key)
        if bucket is None:
            bucket = deque(maxlen=self._window)
            self._entries[key] = bucket
            while len(self._entries) > self._max_keys:
                self._entries.popitem(last=False)
        else:
            self._entries.move_to_end(key)
        return bucket


__all__ = ["ContextCache", "ContextPair"]
