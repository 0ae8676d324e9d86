"""
Pause/resume state machine.

States are derived from two flags: ``running`` (manual start/stop) and
``paused_by_user`` (filtered user input / idle timeout). ACTIVE means the
scheduler may be armed; PAUSED covers both a user pause with a pending
resume countdown and a manual stop without one.

Transitions:
- ACTIVE  --user input-->    PAUSED  cancel scheduler and actions, start countdown
- PAUSED  --user input-->    PAUSED  restart countdown (debounce)
- PAUSED  --countdown-->     ACTIVE  re-arm scheduler
- ACTIVE  --manual stop-->   PAUSED  cancel everything, no countdown
- any     --manual start-->  ACTIVE  cancel countdown, arm scheduler
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional

from .model import ActivityConfig, ActivityState, AutomationState, InputEvent
from .scheduler import ActivityScheduler
from .timers import TimerHandle, TimerRegistry


RESUME_OWNER = "resume"

TransitionCallback = Callable[[ActivityState, str], None]


class PauseResumeStateMachine:
    """Owns AutomationState; only the transition methods below mutate it."""

    def __init__(
        self,
        config: ActivityConfig,
        timers: TimerRegistry,
        state: Optional[AutomationState] = None,
        log: Optional[Callable[..., None]] = None,
    ) -> None:
        self._config = config
        self._timers = timers
        self._state = state or AutomationState()
        self._scheduler: Optional[ActivityScheduler] = None
        self._resume: Optional[TimerHandle] = None
        self._on_transition: Optional[TransitionCallback] = None
        self._log = log

    def bind_scheduler(self, scheduler: ActivityScheduler) -> None:
        self._scheduler = scheduler

    def on_transition(self, cb: TransitionCallback) -> None:
        self._on_transition = cb

    # Queries ----------------------------------------------------------

    @property
    def state(self) -> ActivityState:
        return self._state.activity_state

    @property
    def is_active(self) -> bool:
        return self.state is ActivityState.ACTIVE

    @property
    def is_running(self) -> bool:
        return self._state.running

    @property
    def is_paused_by_user(self) -> bool:
        return self._state.paused_by_user

    def snapshot(self) -> AutomationState:
        return replace(self._state)

    @property
    def resume_pending(self) -> bool:
        return self._timers.is_pending(self._resume)

    @property
    def resume_deadline(self) -> Optional[float]:
        return self._resume.deadline if self.resume_pending else None

    def seconds_until_resume(self) -> float:
        return self._timers.remaining(self._resume)

    # Transitions ------------------------------------------------------

    def start(self) -> bool:
        """Manual start. Returns False if automation was already active."""
        if self.is_active:
            return False
        self._cancel_resume()
        self._state.running = True
        self._state.paused_by_user = False
        self._require_scheduler().disarm()
        self._require_scheduler().arm()
        self._notify("Automation started")
        return True

    def stop(self) -> bool:
        """Manual stop; never resumes on its own. Returns False if already stopped."""
        if not self._state.running:
            self._cancel_resume()
            return False
        self._state.running = False
        self._state.paused_by_user = False
        self._require_scheduler().disarm()
        self._cancel_resume()
        self._notify("Automation stopped")
        return True

    def toggle(self) -> bool:
        """Stop if running (even while paused by the user), otherwise start."""
        if self._state.running:
            self.stop()
        else:
            self.start()
        return self._state.running

    def on_user_input(self, event: InputEvent) -> None:
        """Handle an input event already classified as coming from the user."""
        if not self._state.running:
            return
        if self._state.paused_by_user:
            self._arm_resume()
            return
        self._state.paused_by_user = True
        self._require_scheduler().disarm()
        self._arm_resume()
        self._notify(f"Paused - {event.type.value} detected")

    # Internal helpers -------------------------------------------------

    def _arm_resume(self) -> None:
        self._cancel_resume()
        self._resume = self._timers.schedule(RESUME_OWNER, self._config.idle_seconds, self._on_idle_elapsed)

    def _cancel_resume(self) -> None:
        self._timers.cancel_owner(RESUME_OWNER)
        self._resume = None

    def _on_idle_elapsed(self) -> None:
        self._resume = None
        if not self._state.running or not self._state.paused_by_user:
            return
        self._state.paused_by_user = False
        self._require_scheduler().arm()
        self._notify(f"Resumed - idle for {self._config.idle_seconds:g}s")

    def _require_scheduler(self) -> ActivityScheduler:
        if self._scheduler is None:
            raise RuntimeError("State machine has no scheduler bound")
        return self._scheduler

    def _notify(self, message: str) -> None:
        if self._log:
            try:
                self._log(message, "INFO")
            except Exception:
                pass
        if self._on_transition:
            self._on_transition(self.state, message)
