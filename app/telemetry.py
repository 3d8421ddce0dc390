"""Compose the JSON payloads served by the stats and admin endpoints."""

from __future__ import annotations

from typing import Any

from app.constants import PUBLIC_RECENT_QUERIES
from app.runtime import RuntimeState
from state_engine.ledger import QueryLedger


def compose_public_stats(ledger: QueryLedger) -> dict[str, Any]:
    """Stats safe for anonymous visitors: no prompt text."""
    snapshot = ledger.snapshot(recent_limit=PUBLIC_RECENT_QUERIES)
    return {
        "totalQueries": snapshot["total"],
        "serverStartedAt": snapshot["started_at"],
        "uptime": snapshot["uptime_seconds"],
        "queriesPerHour": snapshot["queries_per_hour"],
        "recentQueries": [record.as_dict(include_prompt=False) for record in snapshot["recent"]],
        "characterStats": snapshot["per_character"],
    }


def compose_admin_stats(runtime: RuntimeState) -> dict[str, Any]:
    snapshot = runtime.ledger.snapshot(recent_limit=PUBLIC_RECENT_QUERIES)
    return {
        "totalQueries": snapshot["total"],
        "serverStartedAt": snapshot["started_at"],
        "uptime": snapshot["uptime_seconds"],
        "queriesPerHour": snapshot["queries_per_hour"],
        "recentQueries": [record.as_dict() for record in snapshot["recent"]],
        "characterStats": snapshot["per_character"],
        "paused": runtime.admin.paused,
        "activeCooldowns": runtime.cooldown.active_count(),
        "trackedConversations": len(runtime.context),
        "adminSessions": runtime.admin.active_sessions(),
    }


def compose_query_log(runtime: RuntimeState, limit: int | None = None) -> dict[str, Any]:
    records = runtime.ledger.recent(limit)
    return {
        "totalQueries": runtime.ledger.total,
        "queries": [record.as_dict() for record in records],
    }


def compose_status(runtime: RuntimeState) -> dict[str, Any]:
    settings = runtime.settings
    current = runtime.led_bridge.current_command()
    return {
        "paused": runtime.admin.paused,
        "totalQueries": runtime.ledger.total,
        "uptime": round(runtime.ledger.uptime_seconds(), 1),
        "model": settings.llm_model,
        "cooldown": {
            "threshold": runtime.cooldown.threshold,
            "seconds": runtime.cooldown.duration,
        },
        "led": {
            "policy": runtime.led_bridge.policy.value,
            "action": runtime.led_bridge.action,
            "lastCommand": current.as_dict() if current else None,
        },
    }


def compose_led_status(runtime: RuntimeState, poller_id: str) -> dict[str, Any]:
    """Payload for the accessory poller; evaluates the signalling policy."""
    total = runtime.ledger.total
    command = runtime.led_bridge.poll(total, poller_id)
    payload: dict[str, Any] = {"totalQueries": total}
    if command is not None:
        payload["lastLedCommand"] = command.as_dict()
    return payload


__all__ = [
    "compose_admin_stats",
    "compose_led_status",
    "compose_public_stats",
    "compose_query_log",
    "compose_status",
]
