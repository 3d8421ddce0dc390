from __future__ import annotations

import unittest

from brain.cooldown import CooldownGate


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CooldownGateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.gate = CooldownGate(threshold=5, duration=15.0, clock=self.clock)

    def test_blocks_after_threshold_until_duration_elapses(self) -> None:
        for _ in range(4):
            self.gate.record_query("alice")
            self.assertFalse(self.gate.is_blocked("alice"))
        state = self.gate.record_query("alice")
        self.assertTrue(state.active)
        self.assertTrue(self.gate.is_blocked("alice"))
        self.assertAlmostEqual(self.gate.remaining("alice"), 15.0)

        self.clock.advance(14.9)
        self.assertTrue(self.gate.is_blocked("alice"))
        self.clock.advance(0.1)
        self.assertFalse(self.gate.is_blocked("alice"))
        self.assertEqual(self.gate.remaining("alice"), 0.0)

    def test_cycle_repeats_on_each_multiple(self) -> None:
        for _ in range(5):
            self.gate.record_query("alice")
        self.clock.advance(15.0)
        for _ in range(4):
            self.gate.record_query("alice")
        self.assertFalse(self.gate.is_blocked("alice"))
        self.gate.record_query("alice")
        self.assertTrue(self.gate.is_blocked("alice"))
        self.assertEqual(self.gate.query_count("alice"), 10)

    def test_checking_while_blocked_does_not_advance_counter(self) -> None:
        for _ in range(5):
            self.gate.record_query("alice")
        for _ in range(20):
            self.assertTrue(self.gate.is_blocked("alice"))
        self.assertEqual(self.gate.query_count("alice"), 5)

    def test_sessions_are_independent(self) -> None:
        for _ in range(5):
            self.gate.record_query("alice")
        self.assertTrue(self.gate.is_blocked("alice"))
        self.assertFalse(self.gate.is_blocked("bob"))
        self.assertEqual(self.gate.active_count(), 1)

    def test_unknown_session_is_not_blocked(self) -> None:
        self.assertFalse(self.gate.is_blocked("nobody"))
        self.assertEqual(self.gate.remaining("nobody"), 0.0)
        self.assertEqual(self.gate.status("nobody")["queryCount"], 0)

    def test_broken_state_degrades_to_not_blocked(self) -> None:
        self.gate.record_query("alice")
        self.gate._states["alice"] = "corrupted"  # type: ignore[assignment]
        self.assertFalse(self.gate.is_blocked("alice"))
        self.assertEqual(self.gate.remaining("alice"), 0.0)
        self.assertFalse(self.gate.record_query("alice").active)

    def test_eviction_prefers_idle_sessions(self) -> None:
        gate = CooldownGate(threshold=1, duration=60.0, max_sessions=2, clock=self.clock)
        gate.record_query("blocked")
        gate.threshold = 100
        gate.record_query("idle")
        gate.record_query("newcomer")
        self.assertTrue(gate.is_blocked("blocked"))
        self.assertEqual(gate.query_count("idle"), 0)
        self.assertEqual(gate.query_count("newcomer"), 1)

    def test_new_session_is_tracked_when_all_others_are_blocked(self) -> None:
        gate = CooldownGate(threshold=1, duration=60.0, max_sessions=2, clock=self.clock)
        gate.record_query("a")
        gate.record_query("b")
        state = gate.record_query("c")
        self.assertTrue(state.active)
        self.assertTrue(gate.is_blocked("c"))
        self.assertEqual(gate.query_count("c"), 1)


if __name__ == "__main__":
    unittest.main()
