from __future__ import annotations

import unittest

from app.admin import AdminGate
from app.errors import ConfigurationError, InvalidCredentials, LoginThrottled


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class AdminGateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.gate = AdminGate(
            "moonlight",
            token_ttl=60.0,
            max_attempts=3,
            backoff_seconds=2.0,
            clock=self.clock,
        )

    def test_requires_a_password(self) -> None:
        with self.assertRaises(ConfigurationError):
            AdminGate("")

    def test_login_issues_distinct_tokens(self) -> None:
        first = self.gate.login("moonlight")
        second = self.gate.login("moonlight")
        self.assertNotEqual(first.token, second.token)
        self.assertTrue(self.gate.authorize(first.token))
        self.assertEqual(self.gate.active_sessions(), 2)

    def test_wrong_password_is_rejected(self) -> None:
        with self.assertRaises(InvalidCredentials):
            self.gate.login("sunlight")
        self.assertFalse(self.gate.authorize(None))
        self.assertFalse(self.gate.authorize("made-up"))

    def test_logout_revokes_only_that_token(self) -> None:
        keep = self.gate.login("moonlight")
        drop = self.gate.login("moonlight")
        self.assertTrue(self.gate.logout(drop.token))
        self.assertFalse(self.gate.authorize(drop.token))
        self.assertTrue(self.gate.authorize(keep.token))
        self.assertFalse(self.gate.logout(drop.token))

    def test_tokens_expire(self) -> None:
        session = self.gate.login("moonlight")
        self.clock.now += 59.0
        self.assertTrue(self.gate.authorize(session.token))
        self.clock.now += 1.0
        self.assertFalse(self.gate.authorize(session.token))

    def test_repeated_failures_lock_the_caller(self) -> None:
        for _ in range(3):
            with self.assertRaises(InvalidCredentials):
                self.gate.login("nope", caller="10.0.0.9")
        with self.assertRaises(LoginThrottled) as ctx:
            self.gate.login("moonlight", caller="10.0.0.9")
        self.assertAlmostEqual(ctx.exception.retry_after, 2.0)

        self.gate.login("moonlight", caller="10.0.0.1")

        self.clock.now += 2.0
        with self.assertRaises(InvalidCredentials):
            self.gate.login("still wrong", caller="10.0.0.9")
        with self.assertRaises(LoginThrottled) as ctx:
            self.gate.login("moonlight", caller="10.0.0.9")
        self.assertAlmostEqual(ctx.exception.retry_after, 4.0)

        self.clock.now += 4.0
        session = self.gate.login("moonlight", caller="10.0.0.9")
        self.assertTrue(self.gate.authorize(session.token))

    def test_failure_records_are_bounded(self) -> None:
        gate = AdminGate("moonlight", max_attempts=1, backoff_seconds=30.0, max_tracked_callers=2, clock=self.clock)
        with self.assertRaises(InvalidCredentials):
            gate.login("nope", caller="locked")
        for caller in ("one", "two", "three"):
            with self.assertRaises(InvalidCredentials):
                gate.login("nope", caller=caller)
            self.clock.now += 31.0
        self.assertEqual(len(gate._failures), 2)
        self.assertIn("three", gate._failures)

    def test_locked_caller_survives_churn(self) -> None:
        gate = AdminGate("moonlight", max_attempts=2, backoff_seconds=60.0, max_tracked_callers=2, clock=self.clock)
        for _ in range(2):
            with self.assertRaises(InvalidCredentials):
                gate.login("nope", caller="locked")
        for index in range(10):
            with self.assertRaises(InvalidCredentials):
                gate.login("nope", caller=f"visitor-{index}")
        self.assertEqual(len(gate._failures), 2)
        with self.assertRaises(LoginThrottled):
            gate.login("moonlight", caller="locked")
        self.assertIn("visitor-9", gate._failures)

    def test_pause_flag(self) -> None:
        self.assertFalse(self.gate.paused)
        self.gate.pause()
        self.gate.pause()
        self.assertTrue(self.gate.paused)
        self.gate.unpause()
        self.assertFalse(self.gate.paused)


if __name__ == "__main__":
    unittest.main()
