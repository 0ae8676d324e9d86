import unittest

from activity.actions import ActionPlan, Step
from activity.engine import CLEANUP, IDLE, STEPS, ActionRunner
from activity.timers import TimerRegistry
from fakes import ManualClock, ManualTimerBackend


class ActionRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = ManualClock()
        self.backend = ManualTimerBackend(self.clock)
        self.timers = TimerRegistry(self.backend, self.clock)
        self.runner = ActionRunner(self.timers)
        self.logs: list[tuple[str, str]] = []
        self.runner.on_log(lambda msg, level="INFO": self.logs.append((msg, level)))
        self.events: list[tuple[str, float]] = []
        self.done = 0

    def _step(self, delay: float, name: str) -> Step:
        return Step(delay, lambda _ctx: self.events.append((name, self.clock.now)), name)

    def _on_done(self) -> None:
        self.done += 1

    def test_steps_run_in_order_at_their_delays(self) -> None:
        plan = ActionPlan("demo", [self._step(0.0, "a"), self._step(0.5, "b")], [self._step(1.0, "revert")])
        self.runner.run(plan, None, on_done=self._on_done)

        self.assertEqual(self.events, [("a", 100.0)])
        self.assertEqual(self.runner.phase, STEPS)
        self.backend.advance(0.5)
        self.assertEqual(self.runner.phase, CLEANUP)
        self.backend.advance(1.0)

        self.assertEqual(self.events, [("a", 100.0), ("b", 100.5), ("revert", 101.5)])
        self.assertEqual(self.done, 1)
        self.assertEqual(self.runner.phase, IDLE)

    def test_run_while_busy_is_refused(self) -> None:
        self.runner.run(ActionPlan("first", [self._step(1.0, "a")]), None)
        with self.assertRaises(RuntimeError):
            self.runner.run(ActionPlan("second"), None)

    def test_empty_plan_completes_immediately(self) -> None:
        self.runner.run(ActionPlan("nothing"), None, on_done=self._on_done)
        self.assertEqual(self.done, 1)
        self.assertFalse(self.runner.is_running())

    def test_abort_skips_forward_steps_and_runs_cleanup_now(self) -> None:
        plan = ActionPlan(
            "demo",
            [self._step(0.5, "a"), self._step(0.5, "b")],
            [self._step(2.0, "revert1"), self._step(0.5, "revert2")],
        )
        self.runner.run(plan, None, on_done=self._on_done)
        self.backend.advance(0.6)
        self.runner.abort()

        self.assertEqual([name for name, _ in self.events], ["a", "revert1"])
        self.backend.advance(1.0)
        self.assertEqual([name for name, _ in self.events], ["a", "revert1", "revert2"])
        self.assertEqual(self.done, 0)
        self.assertFalse(self.runner.is_running())

    def test_abort_during_cleanup_keeps_reverting(self) -> None:
        plan = ActionPlan("demo", [self._step(0.0, "a")], [self._step(1.0, "revert")])
        self.runner.run(plan, None, on_done=self._on_done)
        self.assertEqual(self.runner.phase, CLEANUP)
        self.runner.abort()
        self.backend.advance(1.0)
        self.assertEqual([name for name, _ in self.events], ["a", "revert"])
        self.assertEqual(self.done, 0)

    def test_abort_when_idle_is_harmless(self) -> None:
        self.runner.abort()
        self.assertFalse(self.runner.is_running())

    def test_failing_step_is_logged_and_skipped(self) -> None:
        def boom(_ctx) -> None:
            raise OSError("input blocked")

        plan = ActionPlan("demo", [Step(0.0, boom, "boom"), self._step(0.1, "after")], [self._step(0.1, "revert")])
        self.runner.run(plan, None, on_done=self._on_done)
        self.backend.advance(1.0)

        self.assertEqual([name for name, _ in self.events], ["after", "revert"])
        self.assertEqual(self.done, 1)
        self.assertIn(("Step 'boom' failed: input blocked", "WARNING"), self.logs)

    def test_guard_aborts_before_next_forward_step(self) -> None:
        allowed = [True]
        plan = ActionPlan("demo", [self._step(0.0, "a"), self._step(0.5, "b")], [self._step(0.5, "revert")])
        self.runner.run(plan, None, on_done=self._on_done, guard=lambda: allowed[0])
        allowed[0] = False
        self.backend.advance(2.0)

        self.assertEqual([name for name, _ in self.events], ["a", "revert"])
        self.assertEqual(self.done, 0)

    def test_follow_up_steps_run_before_the_rest(self) -> None:
        def expand(_ctx):
            return [self._step(0.1, "x1"), self._step(0.1, "x2")]

        plan = ActionPlan("demo", [Step(0.0, expand, "expand"), self._step(0.1, "last")])
        self.runner.run(plan, None)
        self.backend.advance(1.0)
        self.assertEqual([name for name, _ in self.events], ["x1", "x2", "last"])

    def test_flush_runs_all_cleanup_synchronously(self) -> None:
        plan = ActionPlan("demo", [self._step(1.0, "a")], [self._step(3.0, "revert1"), self._step(3.0, "revert2")])
        self.runner.run(plan, None, on_done=self._on_done)
        self.runner.flush()

        self.assertEqual(self.events, [("revert1", 100.0), ("revert2", 100.0)])
        self.assertFalse(self.runner.is_running())
        self.assertEqual(self.timers.pending(), [])


if __name__ == "__main__":
    unittest.main()
