"""
Action runner that drives one ActionPlan at a time on the shared timers.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Optional

from .actions import ActionContext, ActionPlan, Step
from .timers import TimerHandle, TimerRegistry


STEP_OWNER = "action"
REVERT_OWNER = "revert"

IDLE = "idle"
STEPS = "steps"
CLEANUP = "cleanup"


class ActionRunner:
    """
    Single driver for multi-step actions.

    Forward steps run in order, each after its own delay, then the cleanup
    steps. ``abort`` drops the remaining forward steps and the completion
    callback but lets cleanup run, so reverts always happen.
    """

    def __init__(self, timers: TimerRegistry) -> None:
        self._timers = timers
        self._phase = IDLE
        self._plan: Optional[ActionPlan] = None
        self._ctx: Optional[ActionContext] = None
        self._queue: Deque[Step] = deque()
        self._cleanup: Deque[Step] = deque()
        self._timer: Optional[TimerHandle] = None
        self._guard: Optional[Callable[[], bool]] = None
        self._on_done: Optional[Callable[[], None]] = None
        self._on_log: Optional[Callable[..., None]] = None

    def on_log(self, cb: Callable[..., None]) -> None:
        self._on_log = cb

    @property
    def phase(self) -> str:
        return self._phase

    @property
    def current_plan(self) -> Optional[ActionPlan]:
        return self._plan

    def is_running(self) -> bool:
        return self._phase != IDLE

    def run(
        self,
        plan: ActionPlan,
        ctx: ActionContext,
        on_done: Optional[Callable[[], None]] = None,
        guard: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Start ``plan``; ``on_done`` fires once after its cleanup, unless aborted."""
        if self.is_running():
            raise RuntimeError("An action is already in flight")
        self._plan = plan
        self._ctx = ctx
        self._queue = deque(plan.steps)
        self._cleanup = deque(plan.cleanup)
        self._guard = guard
        self._on_done = on_done
        self._phase = STEPS
        self._log(f"Action: {plan.name}")
        self._drive()

    def abort(self) -> None:
        """Abandon forward steps; cleanup still runs, immediately. Safe to call anytime."""
        self._on_done = None
        if self._ctx is not None:
            self._ctx.aborted = True
        if self._phase != STEPS:
            return
        self._timers.cancel(self._timer)
        self._timer = None
        self._queue.clear()
        self._log(f"Action aborted: {self._plan.name if self._plan else '?'}")
        self._enter_cleanup(immediate=True)

    def flush(self) -> None:
        """Abort and run every remaining cleanup step now, without delays."""
        self.abort()
        if self._phase != CLEANUP:
            return
        self._timers.cancel(self._timer)
        self._timer = None
        while self._cleanup:
            self._execute(self._cleanup.popleft(), self._cleanup)
        self._finish()

    # Internal helpers -------------------------------------------------

    def _drive(self, ready: bool = False) -> None:
        """Run every due step, then park on a timer for the next delayed one."""
        while True:
            queue = self._queue if self._phase == STEPS else self._cleanup
            if not queue:
                if self._phase == STEPS:
                    self._enter_cleanup(immediate=False)
                    return
                self._finish()
                return

            step = queue[0]
            if step.delay > 0 and not ready:
                owner = STEP_OWNER if self._phase == STEPS else REVERT_OWNER
                self._timer = self._timers.schedule(owner, step.delay, self._on_timer)
                return
            ready = False
            queue.popleft()

            if self._phase == STEPS and self._guard is not None and not self._guard():
                self.abort()
                return

            self._execute(step, queue)

    def _on_timer(self) -> None:
        self._timer = None
        self._drive(ready=True)

    def _execute(self, step: Step, queue: Deque[Step]) -> None:
        try:
            follow_up = step.run(self._ctx)
        except Exception as e:
            # Best-effort: one failed input does not stop the rest, reverts included.
            self._log(f"Step '{step.label}' failed: {e}", "WARNING")
            return
        if follow_up:
            queue.extendleft(reversed(list(follow_up)))

    def _enter_cleanup(self, immediate: bool) -> None:
        self._phase = CLEANUP
        if immediate and self._cleanup:
            first = self._cleanup.popleft()
            self._cleanup.appendleft(Step(0.0, first.run, first.label))
        self._drive()

    def _finish(self) -> None:
        on_done = self._on_done
        self._phase = IDLE
        self._plan = None
        self._ctx = None
        self._guard = None
        self._on_done = None
        if on_done:
            on_done()

    def _log(self, msg: str, level: str = "INFO") -> None:
        if self._on_log:
            try:
                self._on_log(msg, level)
            except Exception:
                pass
