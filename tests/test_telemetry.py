from __future__ import annotations

from dataclasses import replace
from typing import Any

from app.runtime import RuntimeState
from app.settings import RuntimeSettings
from app.telemetry import (
    compose_admin_stats,
    compose_led_status,
    compose_public_stats,
    compose_query_log,
    compose_status,
)


class NullBackend:
    async def stream_reply(self, prompt: str, *, sampling: dict[str, Any] | None = None):
        yield "ok"


class TelemetryHelperTests:
    def setup_method(self) -> None:
        settings = replace(RuntimeSettings.load(), admin_password="hunter2", led_signal_policy="always")
        self.runtime_state = RuntimeState.build(settings, NullBackend())
        self.runtime_state.ledger.record_query("witch", "what is in the cauldron")
        self.runtime_state.ledger.record_query("vampire", "where is the coffin")

    def test_public_stats_omit_prompt_text(self) -> None:
        stats = compose_public_stats(self.runtime_state.ledger)
        assert stats["totalQueries"] == 2
        assert stats["characterStats"] == {"witch": 1, "vampire": 1}
        assert [item["character"] for item in stats["recentQueries"]] == ["vampire", "witch"]
        assert all("prompt" not in item for item in stats["recentQueries"])

    def test_admin_views_include_prompts(self) -> None:
        stats = compose_admin_stats(self.runtime_state)
        assert stats["recentQueries"][0]["prompt"] == "where is the coffin"
        assert stats["paused"] is False
        log = compose_query_log(self.runtime_state, limit=1)
        assert log["totalQueries"] == 2
        assert len(log["queries"]) == 1

    def test_status_reports_led_configuration(self) -> None:
        status = compose_status(self.runtime_state)
        assert status["led"]["policy"] == "always"
        assert status["led"]["lastCommand"] is None
        assert status["cooldown"]["threshold"] == self.runtime_state.settings.cooldown_threshold

    def test_led_status_includes_command_once_issued(self) -> None:
        assert compose_led_status(self.runtime_state, "poller") == {"totalQueries": 2}
        self.runtime_state.led_bridge.on_query(self.runtime_state.ledger.total)
        payload = compose_led_status(self.runtime_state, "poller")
        assert payload["lastLedCommand"]["queryCount"] == 2
        assert isinstance(payload["lastLedCommand"]["timestamp"], int)
