"""
Activity scheduler: wait a random interval, run one action, repeat.

The scheduler never holds more than one top-level action in flight. It only
re-arms from the action's completion callback, and every completion carries
the generation it was started in so a completion from before a disarm is
ignored.
"""

from __future__ import annotations

import random
from typing import Callable, Optional

from .engine import ActionRunner
from .model import ActivityConfig
from .timers import TimerHandle, TimerRegistry


WAIT_OWNER = "scheduler"

Dispatch = Callable[[Callable[[], None], Optional[Callable[[], bool]]], Optional[str]]


class ActivityScheduler:
    """Randomized single-flight action loop on top of the timer registry."""

    def __init__(
        self,
        config: ActivityConfig,
        timers: TimerRegistry,
        runner: ActionRunner,
        dispatch: Dispatch,
        can_run: Callable[[], bool],
        rng: Optional[random.Random] = None,
        log: Optional[Callable[..., None]] = None,
    ) -> None:
        self._config = config
        self._timers = timers
        self._runner = runner
        self._dispatch = dispatch
        self._can_run = can_run
        self._rng = rng or random.Random()
        self._log = log
        self._wait: Optional[TimerHandle] = None
        self._in_flight = False
        self._generation = 0
        self._dispatch_count = 0

    @property
    def is_waiting(self) -> bool:
        return self._timers.is_pending(self._wait)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def is_armed(self) -> bool:
        return self.is_waiting or self._in_flight

    @property
    def dispatch_count(self) -> int:
        return self._dispatch_count

    def seconds_until_next(self) -> float:
        return self._timers.remaining(self._wait)

    def next_interval(self) -> float:
        return self._rng.uniform(self._config.min_interval, self._config.max_interval)

    def arm(self) -> None:
        """Schedule the next action unless one is already waiting or in flight."""
        if self.is_waiting or self._in_flight:
            return
        delay = self.next_interval()
        self._wait = self._timers.schedule(WAIT_OWNER, delay, self._on_wait_elapsed)
        self._emit(f"Next action in {delay:.1f}s")

    def disarm(self) -> None:
        """Cancel the pending wait and abandon any in-flight action. Idempotent."""
        self._timers.cancel_owner(WAIT_OWNER)
        self._wait = None
        self._generation += 1
        if self._in_flight:
            self._in_flight = False
            self._runner.abort()

    def trigger_now(self) -> bool:
        """
        Run one action immediately; refused while another is in flight.

        A manual trigger is an explicit request and runs unguarded, even while
        stopped or paused by the user. The keystrokes of the trigger hotkey are
        themselves user input and usually pause the machine first; waiting for
        the idle timeout would make the command useless. User input arriving
        during a manually triggered action therefore does not abort it, and
        afterwards the loop re-arms only if the state is Active.
        """
        if self._in_flight or self._runner.is_running():
            self._emit("Trigger ignored - an action is still running")
            return False
        self._timers.cancel(self._wait)
        self._wait = None
        self._start_action(guarded=False)
        return True

    # Internal helpers -------------------------------------------------

    def _on_wait_elapsed(self) -> None:
        self._wait = None
        if not self._can_run():
            return
        if self._runner.is_running():
            # A revert from an abandoned action is still finishing.
            self.arm()
            return
        self._start_action(guarded=True)

    def _start_action(self, guarded: bool) -> None:
        self._in_flight = True
        self._dispatch_count += 1
        generation = self._generation

        def on_done() -> None:
            self._on_action_done(generation)

        self._dispatch(on_done, self._can_run if guarded else None)

    def _on_action_done(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._in_flight = False
        if self._can_run():
            self.arm()

    def _emit(self, message: str, level: str = "INFO") -> None:
        if self._log:
            try:
                self._log(message, level)
            except Exception:
                pass
