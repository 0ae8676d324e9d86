"""
Activity controller: the single owner of the filter, the state machine, the
scheduler and the action path.

Event Source -> SelfEventFilter -> PauseResumeStateMachine -> ActivityScheduler
-> ActionSelector -> ActionRunner -> (EchoMarkingInput) -> desktop.
"""

from __future__ import annotations

import random
import time
from typing import Callable, Optional

from .capabilities import Desktop, TextSource, TimerBackend
from .catalog import ActionCatalog
from .engine import ActionRunner
from .model import ActivityConfig, ActivityState, AutomationState, InputEvent
from .scheduler import ActivityScheduler
from .selector import ActionSelector
from .self_event_filter import EchoMarkingInput, EventOrigin, SelfEventFilter
from .state_machine import PauseResumeStateMachine
from .timers import TimerRegistry


class ActivityController:
    """Composes the activity core around injected desktop and timer capabilities."""

    def __init__(
        self,
        config: ActivityConfig,
        desktop: Desktop,
        timer_backend: TimerBackend,
        clock: Callable[[], float] = time.monotonic,
        text_source: Optional[TextSource] = None,
        rng: Optional[random.Random] = None,
        catalog: Optional[ActionCatalog] = None,
        log: Optional[Callable[..., None]] = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._rng = rng or random.Random()
        self._log = log

        self.timers = TimerRegistry(timer_backend, clock)
        self.event_filter = SelfEventFilter(config.self_event_grace_ms)
        self.synthetic_input = EchoMarkingInput(desktop, self.event_filter, clock)

        self._state = AutomationState()
        self.state_machine = PauseResumeStateMachine(config, self.timers, self._state, log=log)

        self.runner = ActionRunner(self.timers)
        if log:
            self.runner.on_log(log)

        self.catalog = catalog or ActionCatalog.from_weights(config.action_weights)
        self.selector = ActionSelector(
            catalog=self.catalog,
            runner=self.runner,
            input_synthesis=self.synthetic_input,
            query=desktop,
            config=config,
            state=self._state,
            rng=self._rng,
            text_source=text_source,
            log=log,
        )
        self.scheduler = ActivityScheduler(
            config=config,
            timers=self.timers,
            runner=self.runner,
            dispatch=self.selector.trigger,
            can_run=lambda: self.state_machine.is_active,
            rng=self._rng,
            log=log,
        )
        self.state_machine.bind_scheduler(self.scheduler)

    @property
    def config(self) -> ActivityConfig:
        return self._config

    @property
    def state(self) -> ActivityState:
        return self.state_machine.state

    def on_transition(self, cb: Callable[[ActivityState, str], None]) -> None:
        self.state_machine.on_transition(cb)

    def handle_input_event(self, event: InputEvent) -> bool:
        """Feed one raw event through the filter. Always returns False (never swallow)."""
        if self.event_filter.classify(event) is EventOrigin.REAL_USER:
            self.state_machine.on_user_input(event)
        return False

    def start(self) -> bool:
        return self.state_machine.start()

    def stop(self) -> bool:
        return self.state_machine.stop()

    def toggle(self) -> bool:
        return self.state_machine.toggle()

    def trigger_now(self) -> bool:
        return self.scheduler.trigger_now()

    def shutdown(self) -> None:
        """Stop automation, finish pending reverts at once and drop every timer."""
        self.state_machine.stop()
        self.runner.flush()
        self.timers.cancel_all()
