"""Error taxonomy shared by the relay, the admin gate and the HTTP layer."""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base error carrying the HTTP status the API layer should report."""

    status_code = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra: dict[str, Any] = dict(extra)

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        payload.update(self.extra)
        return payload


class InvalidInput(RelayError):
    status_code = 400


class RateLimited(RelayError):
    """Raised while a session's cooldown window is open."""

    status_code = 429

    def __init__(self, message: str, *, retry_after: float) -> None:
        super().__init__(message, retryAfter=round(retry_after, 1))
        self.retry_after = retry_after


class ServiceUnavailable(RelayError):
    status_code = 503


class Unauthorized(RelayError):
    status_code = 401


class InvalidCredentials(Unauthorized):
    pass


class LoginThrottled(RelayError):
    """Too many failed admin logins from the same caller."""

    status_code = 429

    def __init__(self, message: str, *, retry_after: float) -> None:
        super().__init__(message, retryAfter=round(retry_after, 1))
        self.retry_after = retry_after


class BackendError(RuntimeError):
    """The language-model backend failed, refused, or sent garbage."""


class ConfigurationError(RuntimeError):
    """Required configuration is missing or unusable."""


__all__ = [
    "BackendError",
    "ConfigurationError",
    "InvalidCredentials",
    "InvalidInput",
    "LoginThrottled",
    "RateLimited",
    "RelayError",
    "ServiceUnavailable",
    "Unauthorized",
]
