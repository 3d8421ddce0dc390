"""Runtime state container wiring the chat services together."""

from __future__ import annotations

from dataclasses import dataclass

from app.admin import AdminGate
from app.persona import CharacterRegistry
from app.settings import RuntimeSettings
from brain.cooldown import CooldownGate
from brain.relay import ChatRelay, ModelBackend
from memory.context import ContextCache
from state_engine.ledger import QueryLedger
from state_engine.led_bridge import LedSignalBridge, led_color


@dataclass
class RuntimeState:
    """Mutable services shared by every request handler."""

    settings: RuntimeSettings
    backend: ModelBackend
    admin: AdminGate
    cooldown: CooldownGate
    context: ContextCache
    ledger: QueryLedger
    led_bridge: LedSignalBridge
    characters: CharacterRegistry
    relay: ChatRelay

    @classmethod
    def build(cls, settings: RuntimeSettings, backend: ModelBackend) -> "RuntimeState":
        admin = AdminGate(
            settings.admin_password,
            token_ttl=settings.admin_token_ttl,
            max_attempts=settings.login_max_attempts,
            backoff_seconds=settings.login_backoff_seconds,
        )
        cooldown = CooldownGate(
            settings.cooldown_threshold,
            settings.cooldown_seconds,
            max_sessions=settings.cooldown_max_sessions,
        )
        context = ContextCache(settings.context_window, settings.context_max_keys)
        ledger = QueryLedger(settings.ledger_recent_limit)
        led_bridge = LedSignalBridge(
            settings.led_signal_policy,
            action=led_color(*settings.led_color, settings.led_flash_ms),
        )
        characters = CharacterRegistry()
        relay = ChatRelay(
            backend,
            admin=admin,
            cooldown=cooldown,
            context=context,
            ledger=ledger,
            led_bridge=led_bridge,
            characters=characters,
            max_prompt_chars=settings.max_prompt_chars,
            generation_timeout=settings.generation_timeout,
        )
        return cls(
            settings=settings,
            backend=backend,
            admin=admin,
            cooldown=cooldown,
            context=context,
            ledger=ledger,
            led_bridge=led_bridge,
            characters=characters,
            relay=relay,
        )


__all__ = ["RuntimeState"]
