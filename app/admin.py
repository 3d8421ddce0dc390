"""Shared-password admin sessions and the global pause switch."""

from __future__ import annotations

import hmac
import logging
import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from app.errors import ConfigurationError, InvalidCredentials, LoginThrottled

logger = logging.getLogger("spooky_relay.admin")


@dataclass(frozen=True, slots=True)
class AdminSession:
    token: str
    issued_at: float


@dataclass(slots=True)
class _FailedLogins:
    count: int = 0
    blocked_until: float = 0.0


class AdminGate:
    """Issues bearer tokens for the admin API and owns the pause flag.

    Tokens expire after ``token_ttl`` seconds. After ``max_attempts``
    consecutive failed logins from one caller, further attempts are refused
    for ``backoff_seconds`` doubling with every additional failure. At most
    ``max_tracked_callers`` failure records are kept; locked-out callers
    outlive stale ones.
    """

    def __init__(
        self,
        password: str,
        *,
        token_ttl: float = 12 * 3600.0,
        max_attempts: int = 5,
        backoff_seconds: float = 2.0,
        max_backoff: float = 300.0,
        max_tracked_callers: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not password:
            raise ConfigurationError("An admin password must be configured (SPOOKY_ADMIN_PASSWORD).")
        self._password = password.encode("utf-8")
        self._token_ttl = float(token_ttl)
        self._max_attempts = max(1, int(max_attempts))
        self._backoff = max(0.0, float(backoff_seconds))
        self._max_backoff = max_backoff
        self._clock = clock
        self._sessions: dict[str, AdminSession] = {}
        self._max_tracked_callers = max(1, int(max_tracked_callers))
        self._failures: "OrderedDict[str, _FailedLogins]" = OrderedDict()
        self._paused = False

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        if not self._paused:
            logger.info("Chat service paused by admin")
        self._paused = True

    def unpause(self) -> None:
        if self._paused:
            logger.info("Chat service resumed by admin")
        self._paused = False

    def login(self, password: str, *, caller: str = "unknown") -> AdminSession:
        now = self._clock()
        record = self._failures.get(caller)
        if record is not None and now < record.blocked_until:
            raise LoginThrottled(
                "Too many failed login attempts",
                retry_after=record.blocked_until - now,
            )
        if not hmac.compare_digest((password or "").encode("utf-8"), self._password):
            self._register_failure(caller, now)
            raise InvalidCredentials("Invalid credentials")
        self._failures.pop(caller, None)
        self._prune(now)
        session = AdminSession(token=secrets.token_urlsafe(32), issued_at=now)
        self._sessions[session.token] = session
        logger.info("Admin login from %s", caller)
        return session

    def authorize(self, token: str | None) -> bool:
        if not token:
            return False
        session = self._sessions.get(token)
        if session is None:
            return False
        if self._expired(session, self._clock()):
            del self._sessions[token]
            return False
        return True

    def logout(self, token: str | None) -> bool:
        if not token:
            return False
        return self._sessions.pop(token, None) is not None

    def active_sessions(self) -> int:
        self._prune(self._clock())
        return len(self._sessions)

    def _register_failure(self, caller: str, now: float) -> None:
        record = self._failures.get(caller)
        if record is None:
            self._trim_failures(now, reserve=1)
            record = _FailedLogins()
            self._failures[caller] = record
        else:
            self._failures.move_to_end(caller)
        record.count += 1
        overflow = record.count - self._max_attempts
        if overflow >= 0:
            delay = min(self._backoff * (2 ** overflow), self._max_backoff)
            record.blocked_until = now + delay
            logger.warning(
                "Admin login from %s failed %s times; locked for %.1fs",
                caller,
                record.count,
                delay,
            )
        else:
            logger.warning("Admin login from %s failed (%s/%s)", caller, record.count, self._max_attempts)

    def _trim_failures(self, now: float, reserve: int = 0) -> None:
        limit = max(0, self._max_tracked_callers - reserve)
        if len(self._failures) <= limit:
            return
        # Callers still locked out are kept over stale partial-failure records.
        for caller in list(self._failures):
            if len(self._failures) <= limit:
                return
            if self._failures[caller].blocked_until <= now:
                del self._failures[caller]
        while len(self._failures) > limit:
            self._failures.popitem(last=False)

    def _expired(self, session: AdminSession, now: float) -> bool:
        return self._token_ttl > 0 and now - session.issued_at >= self._token_ttl

    def _prune(self, now: float) -> None:
        for token in [token for token, session in self._sessions.items() if self._expired(session, now)]:
            del self._sessions[token]


__all__ = ["AdminGate", "AdminSession"]
