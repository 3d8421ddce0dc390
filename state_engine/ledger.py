"""Process-wide query counters and a bounded log of recent activity."""

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque

from utils.redactor import preview_text


@dataclass(frozen=True, slots=True)
class QueryRecord:
    sequence: int
    character_id: str
    prompt_text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self, *, include_prompt: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "sequence": self.sequence,
            "character": self.character_id,
            "timestamp": _iso(self.timestamp),
        }
        if include_prompt:
            payload["prompt"] = self.prompt_text
        return payload


class QueryLedger:
    """Monotonic query counter shared by the chat path, admin and LED bridge.

    Counts are ephemeral telemetry and reset with the process. The lock keeps
    increments exact even if a handler runs in the threadpool.
    """

    def __init__(
        self,
        recent_limit: int = 500,
        *,
        prompt_preview_chars: int = 280,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._per_character: Counter[str] = Counter()
        self._recent: Deque[QueryRecord] = deque(maxlen=max(1, int(recent_limit)))
        self._preview_chars = prompt_preview_chars
        self._clock = clock
        self._started_monotonic = clock()
        self.started_at = datetime.now(timezone.utc)

    @property
    def total(self) -> int:
        return self._total

    def record_query(self, character_id: str, prompt_text: str) -> int:
        """Count one query and return its sequence number."""
        text = preview_text(prompt_text, self._preview_chars)
        with self._lock:
            self._total += 1
            sequence = self._total
            self._per_character[character_id] += 1
            self._recent.append(
                QueryRecord(sequence=sequence, character_id=character_id, prompt_text=text)
            )
        return sequence

    def uptime_seconds(self) -> float:
        return max(0.0, self._clock() - self._started_monotonic)

    def queries_per_hour(self) -> float:
        hours = self.uptime_seconds() / 3600.0
        if hours <= 0:
            return 0.0
        # The first minutes would report absurd rates; treat them as one minute.
        return round(self._total / max(hours, 1 / 60), 2)

    def recent(self, limit: int | None = None) -> list[QueryRecord]:
        """Return recent records, newest first."""
        with self._lock:
            records = list(self._recent)
        records.reverse()
        if limit is not None:
            records = records[: max(0, limit)]
        return records

    def character_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._per_character)

    def snapshot(self, *, recent_limit: int | None = 20) -> dict[str, Any]:
        with self._lock:
            total = self._total
        return {
            "total": total,
            "per_character": self.character_counts(),
            "recent": self.recent(recent_limit),
            "uptime_seconds": round(self.uptime_seconds(), 1),
            "started_at": _iso(self.started_at),
            "queries_per_hour": self.queries_per_hour(),
        }


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


__all__ = ["QueryLedger", "QueryRecord"]
