"""Runtime settings loader and related helpers."""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from typing import Any

from utils.settings import load_settings


def _parse_float(value: Any, default: float) -> float:
    if value in (None, ""):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_int(value: Any, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_rgb(value: Any, default: tuple[int, int, int]) -> tuple[int, int, int]:
    if value in (None, ""):
        return default
    if isinstance(value, str):
        parts: list[Any] = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)):
        parts = list(value)
    else:
        return default
    if len(parts) != 3:
        return default
    try:
        channels = tuple(max(0, min(255, int(part))) for part in parts)
    except (TypeError, ValueError):
        return default
    return channels  # type: ignore[return-value]


def _get_setting(settings: dict[str, Any], key: str, env_var: str, default: Any = None) -> Any:
    value = settings.get(key)
    if value not in (None, ""):
        return value
    env_value = os.getenv(env_var)
    if env_value not in (None, ""):
        return env_value
    return default


@dataclass(frozen=True)
class RuntimeSettings:
    raw: dict[str, Any]
    admin_password: str
    session_secret: str
    llm_endpoint: str
    llm_model: str
    llm_timeout: float
    generation_timeout: float
    context_window: int
    context_max_keys: int
    cooldown_threshold: int
    cooldown_seconds: float
    cooldown_max_sessions: int
    max_prompt_chars: int
    ledger_recent_limit: int
    led_signal_policy: str
    led_color: tuple[int, int, int]
    led_flash_ms: int
    admin_token_ttl: float
    login_max_attempts: int
    login_backoff_seconds: float
    log_level: str
    host: str
    port: int

    @classmethod
    def load(cls) -> "RuntimeSettings":
        settings = load_settings()

        def getter(key: str, env: str, default: Any = None) -> Any:
            return _get_setting(settings, key, env, default)

        admin_password = str(getter("admin_password", "SPOOKY_ADMIN_PASSWORD", "") or "")
        session_secret = str(getter("session_secret", "SPOOKY_SESSION_SECRET", "") or "").strip()
        if not session_secret:
            session_secret = secrets.token_urlsafe(32)
        llm_endpoint = str(
            getter("llm_endpoint", "SPOOKY_LLM_URL", "http://localhost:11434") or ""
        ).strip()
        llm_model = str(getter("llm_model", "SPOOKY_LLM_MODEL", "llama3") or "llama3").strip()
        llm_timeout = _parse_float(getter("llm_timeout", "SPOOKY_LLM_TIMEOUT"), 30.0)
        generation_timeout = _parse_float(
            getter("generation_timeout", "SPOOKY_GENERATION_TIMEOUT"),
            120.0,
        )
        context_window = _parse_int(getter("context_window", "SPOOKY_CONTEXT_WINDOW"), 5)
        context_max_keys = _parse_int(getter("context_max_keys", "SPOOKY_CONTEXT_MAX_KEYS"), 2048)
        cooldown_threshold = _parse_int(
            getter("cooldown_threshold", "SPOOKY_COOLDOWN_THRESHOLD"),
            5,
        )
        cooldown_seconds = _parse_float(getter("cooldown_seconds", "SPOOKY_COOLDOWN_SECONDS"), 15.0)
        cooldown_max_sessions = _parse_int(
            getter("cooldown_max_sessions", "SPOOKY_COOLDOWN_MAX_SESSIONS"),
            10000,
        )
        max_prompt_chars = _parse_int(getter("max_prompt_chars", "SPOOKY_MAX_PROMPT_CHARS"), 2000)
        ledger_recent_limit = _parse_int(
            getter("ledger_recent_limit", "SPOOKY_LEDGER_RECENT_LIMIT"),
            500,
        )
        led_signal_policy = str(getter("led_signal_policy", "SPOOKY_LED_POLICY", "always") or "always")
        led_color = _parse_rgb(getter("led_color", "SPOOKY_LED_COLOR"), (255, 102, 0))
        led_flash_ms = _parse_int(getter("led_flash_ms", "SPOOKY_LED_FLASH_MS"), 3000)
        admin_token_ttl = _parse_float(getter("admin_token_ttl", "SPOOKY_ADMIN_TOKEN_TTL"), 12 * 3600.0)
        login_max_attempts = _parse_int(
            getter("login_max_attempts", "SPOOKY_LOGIN_MAX_ATTEMPTS"),
            5,
        )
        login_backoff_seconds = _parse_float(getter("login_backoff_seconds", "SPOOKY_LOGIN_BACKOFF"), 2.0)
        log_level = str(getter("log_level", "SPOOKY_LOG_LEVEL", "INFO") or "INFO").upper()
        host = str(getter("host", "SPOOKY_HOST", "0.0.0.0") or "0.0.0.0")
        port = _parse_int(getter("port", "SPOOKY_PORT"), 3000)

        return cls(
            raw=settings,
            admin_password=admin_password,
            session_secret=session_secret,
            llm_endpoint=llm_endpoint,
            llm_model=llm_model,
            llm_timeout=llm_timeout,
            generation_timeout=generation_timeout,
            context_window=context_window,
            context_max_keys=context_max_keys,
            cooldown_threshold=cooldown_threshold,
            cooldown_seconds=cooldown_seconds,
            cooldown_max_sessions=cooldown_max_sessions,
            max_prompt_chars=max_prompt_chars,
            ledger_recent_limit=ledger_recent_limit,
            led_signal_policy=led_signal_policy,
            led_color=led_color,
            led_flash_ms=led_flash_ms,
            admin_token_ttl=admin_token_ttl,
            login_max_attempts=login_max_attempts,
            login_backoff_seconds=login_backoff_seconds,
            log_level=log_level,
            host=host,
            port=port,
        )


def clear_settings_cache() -> None:
    """Reset the cached settings loader."""
    load_settings.cache_clear()


__all__ = ["RuntimeSettings", "clear_settings_cache"]
