"""Translate chat activity into the current command for the LED accessory.

The accessory app polls the admin LED endpoint on its own cadence and
forwards whatever command it finds over BLE. Nothing here is queued: the
bridge holds a single current command and a newer one replaces it.

Two signalling policies exist:

``always``
    every accepted query issues a fresh command.
``threshold_delta``
    a command is issued while serving a poll, when the ledger total has
    moved past the value that poller last saw. A poller's first poll only
    records its baseline, so reconnecting never produces a stray flash.
    Each counter value issues at most one command, however many pollers
    observe it.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger("spooky_relay.led_bridge")

DEFAULT_POLLER = "default"


def led_color(red: int, green: int, blue: int, duration_ms: int | None = None) -> str:
    command = f"LED_COLOR:{int(red)},{int(green)},{int(blue)}"
    if duration_ms is not None:
        command += f":{int(duration_ms)}"
    return command


def led_on(duration_ms: int) -> str:
    return f"LED_ON:{int(duration_ms)}"


def led_off() -> str:
    return "LED_OFF"


def led_party() -> str:
    return "LED_PARTY"


def led_animate(red: int, green: int, blue: int) -> str:
    return f"LED_ANIMATE:{int(red)},{int(green)},{int(blue)}"


class LedSignalPolicy(str, Enum):
    ALWAYS = "always"
    THRESHOLD_DELTA = "threshold_delta"

    @classmethod
    def parse(cls, value: "str | LedSignalPolicy") -> "LedSignalPolicy":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("-", "_")
        aliases = {"every_query": cls.ALWAYS, "delta": cls.THRESHOLD_DELTA, "": cls.ALWAYS}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError as exc:
            raise ValueError(f"Unknown LED signal policy '{value}'.") from exc


@dataclass(frozen=True, slots=True)
class LedCommand:
    action: str
    triggering_query_count: int
    issued_at: float = field(default_factory=time.time)

    def as_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "timestamp": int(self.issued_at * 1000),
            "queryCount": self.triggering_query_count,
        }


class AlwaysSignal:
    """Fire on every recorded query; polls never fire."""

    def on_query(self, total: int) -> bool:
        return True

    def on_poll(self, total: int, poller_id: str) -> bool:
        return False

    def forget(self, poller_id: str) -> None:
        return None


class ThresholdDeltaSignal:
    """Fire on a poll when the total exceeds that poller's last observation."""

    def __init__(self, max_pollers: int = 64) -> None:
        self._baselines: "OrderedDict[str, int]" = OrderedDict()
        self._max_pollers = max(1, int(max_pollers))

    def on_query(self, total: int) -> bool:
        return False

    def on_poll(self, total: int, poller_id: str) -> bool:
        baseline = self._baselines.get(poller_id)
        self._baselines[poller_id] = max(total, baseline or 0)
        self._baselines.move_to_end(poller_id)
        while len(self._baselines) > self._max_pollers:
            self._baselines.popitem(last=False)
        if baseline is None:
            return False
        return total > baseline

    def forget(self, poller_id: str) -> None:
        self._baselines.pop(poller_id, None)

    def baseline(self, poller_id: str) -> int | None:
        return self._baselines.get(poller_id)


SignalStrategy = AlwaysSignal | ThresholdDeltaSignal


def build_strategy(policy: LedSignalPolicy) -> SignalStrategy:
    if policy is LedSignalPolicy.THRESHOLD_DELTA:
        return ThresholdDeltaSignal()
    return AlwaysSignal()


class LedSignalBridge:
    """Holds the most recent LED command for the accessory poller."""

    def __init__(
        self,
        policy: "LedSignalPolicy | str" = LedSignalPolicy.ALWAYS,
        *,
        action: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.policy = LedSignalPolicy.parse(policy)
        self.action = action or led_color(255, 102, 0, 3000)
        self._strategy = build_strategy(self.policy)
        self._clock = clock
        self._current: LedCommand | None = None

    def on_query(self, total: int) -> LedCommand | None:
        """Chat-path hook, called once per accepted query."""
        if self._strategy.on_query(total):
            return self._issue(total)
        return None

    def poll(self, total: int, poller_id: str = DEFAULT_POLLER) -> LedCommand | None:
        """Status-endpoint hook; returns the current command after evaluating the policy."""
        if self._strategy.on_poll(total, poller_id) and self._is_new(total):
            self._issue(total)
        return self._current

    def disconnect(self, poller_id: str) -> None:
        self._strategy.forget(poller_id)

    def current_command(self) -> LedCommand | None:
        return self._current

    def _is_new(self, total: int) -> bool:
        # Several pollers observing the same increase share one command.
        return self._current is None or total > self._current.triggering_query_count

    def _issue(self, total: int) -> LedCommand:
        command = LedCommand(action=self.action, triggering_query_count=total, issued_at=self._clock())
        self._current = command
        logger.debug("LED command issued: %s (query %s)", command.action, total)
        return command


__all__ = [
    "AlwaysSignal",
    "LedCommand",
    "LedSignalBridge",
    "LedSignalPolicy",
    "ThresholdDeltaSignal",
    "build_strategy",
    "led_animate",
    "led_color",
    "led_off",
    "led_on",
    "led_party",
]
