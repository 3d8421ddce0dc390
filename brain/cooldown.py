"""Per-session query throttle.

Every accepted chat advances the session's counter. Each time the counter
reaches a multiple of ``threshold`` the session is blocked for
``duration`` seconds. Expiry is lazy: the first check after the deadline
flips the session back to idle.

Bookkeeping here must never take a chat down, so every public method
catches its own failures and degrades to "not blocked".
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger("spooky_relay.cooldown")


@dataclass(slots=True)
class CooldownState:
    active: bool = False
    ends_at: float = 0.0
    query_count: int = 0


class CooldownGate:
    """Server-side authority for session cooldowns."""

    def __init__(
        self,
        threshold: int = 5,
        duration: float = 15.0,
        *,
        max_sessions: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = max(1, int(threshold))
        self.duration = max(0.0, float(duration))
        self._max_sessions = max(1, int(max_sessions))
        self._clock = clock
        self._states: "OrderedDict[str, CooldownState]" = OrderedDict()

    def record_query(self, key: str) -> CooldownState:
        """Count one accepted query and open the cooldown on a threshold multiple."""
        try:
            state = self._states.get(key)
            if state is None:
                self._evict(reserve=1)
                state = CooldownState()
                self._states[key] = state
            else:
                self._states.move_to_end(key)
            now = self._clock()
            self._expire(state, now)
            state.query_count += 1
            if state.query_count % self.threshold == 0 and not state.active:
                state.active = True
                state.ends_at = now + self.duration
                logger.info(
                    "Cooldown started for session %s after %s queries (%.1fs)",
                    _short(key),
                    state.query_count,
                    self.duration,
                )
            return CooldownState(state.active, state.ends_at, state.query_count)
        except Exception:
            logger.exception("Cooldown bookkeeping failed for session %s", _short(key))
            return CooldownState()

    def is_blocked(self, key: str) -> bool:
        try:
            state = self._states.get(key)
            if state is None:
                return False
            self._expire(state, self._clock())
            return state.active
        except Exception:
            logger.exception("Cooldown check failed for session %s", _short(key))
            return False

    def remaining(self, key: str) -> float:
        """Seconds left in the session's cooldown, ``0.0`` when idle."""
        try:
            state = self._states.get(key)
            if state is None:
                return 0.0
            now = self._clock()
            self._expire(state, now)
            if not state.active:
                return 0.0
            return max(0.0, state.ends_at - now)
        except Exception:
            logger.exception("Cooldown lookup failed for session %s", _short(key))
            return 0.0

    def query_count(self, key: str) -> int:
        state = self._states.get(key)
        return state.query_count if state is not None else 0

    def status(self, key: str) -> dict[str, Any]:
        return {
            "blocked": self.is_blocked(key),
            "remaining": round(self.remaining(key), 1),
            "queryCount": self.query_count(key),
            "threshold": self.threshold,
        }

    def active_count(self) -> int:
        now = self._clock()
        return sum(1 for state in self._states.values() if state.active and now < state.ends_at)

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._states.clear()
        else:
            self._states.pop(key, None)

    @staticmethod
    def _expire(state: CooldownState, now: float) -> None:
        if state.active and now >= state.ends_at:
            state.active = False

    def _evict(self, reserve: int = 0) -> None:
        limit = max(0, self._max_sessions - reserve)
        if len(self._states) <= limit:
            return
        now = self._clock()
        # Drop idle sessions first so an active cooldown is not cleared by churn.
        for key in list(self._states):
            if len(self._states) <= limit:
                return
            state = self._states[key]
            if not (state.active and now < state.ends_at):
                del self._states[key]
        while len(self._states) > limit:
            self._states.popitem(last=False)


def _short(key: str) -> str:
    return key[:8] if key else "<none>"


__all__ = ["CooldownGate", "CooldownState"]
