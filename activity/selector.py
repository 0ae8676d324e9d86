"""
Action selection: snapshot the desktop context, pick a catalog entry and hand
its plan to the runner.
"""

from __future__ import annotations

import random
from typing import Callable, Optional

from .actions import ActionContext, ActionPlan, Step, find_priority_app, jitter_step
from .capabilities import ContextQuery, InputSynthesis, TextSource
from .catalog import ActionCatalog, CatalogEntry, SequentialFlow
from .engine import ActionRunner
from .model import ActivityConfig, AutomationState


FOCUS_PLAN = "focus_priority_app"

# Time the OS needs to bring a freshly activated app to the front.
FOCUS_SETTLE_SECONDS = 0.5


class ActionSelector:
    """Picks one action per trigger and runs it to completion."""

    def __init__(
        self,
        catalog: ActionCatalog,
        runner: ActionRunner,
        input_synthesis: InputSynthesis,
        query: ContextQuery,
        config: ActivityConfig,
        state: AutomationState,
        rng: Optional[random.Random] = None,
        text_source: Optional[TextSource] = None,
        log: Optional[Callable[..., None]] = None,
    ) -> None:
        self._catalog = catalog
        self._runner = runner
        self._input = input_synthesis
        self._query = query
        self._config = config
        self._rng = rng or random.Random()
        self._text_source = text_source
        self._log = log
        self._flow: Optional[SequentialFlow] = None
        if config.flow_mode == "sequential":
            self._flow = SequentialFlow(catalog, state)

    @property
    def flow(self) -> Optional[SequentialFlow]:
        return self._flow

    def select(self) -> Optional[CatalogEntry]:
        if self._flow is not None:
            return self._flow.current()
        return self._catalog.choose(self._config, self._rng)

    def trigger(self, on_done: Callable[[], None], guard: Optional[Callable[[], bool]] = None) -> Optional[str]:
        """Run one action; ``on_done`` fires exactly once unless the action is aborted.

        Returns the name of the chosen action, or None when nothing ran.
        """
        entry = self.select()
        if entry is None:
            on_done()
            return None

        if self._flow is not None:
            on_done = self._advance_then(on_done)
            if not entry.action.is_enabled(self._config):
                self._emit(f"Flow step '{entry.name}' disabled - skipped")
                on_done()
                return None

        focus_ctx = self._priority_focus_context()
        handle = self._priority_focus_target(focus_ctx) if focus_ctx is not None else None
        if handle is None:
            self._run_entry(entry, on_done, guard)
            return entry.name

        def activate(c: ActionContext) -> None:
            c.query.activate_application(handle)

        focus = ActionPlan(FOCUS_PLAN, [
            Step(0.0, activate, label="focus priority app"),
            Step(FOCUS_SETTLE_SECONDS, lambda c: None, label="wait for focus"),
        ])
        # The chosen action plans against the window that is focused afterwards.
        self._runner.run(focus, focus_ctx, on_done=lambda: self._run_entry(entry, on_done, guard), guard=guard)
        return entry.name

    def build_context(self) -> ActionContext:
        return ActionContext(
            input=self._input,
            query=self._query,
            config=self._config,
            rng=self._rng,
            text_source=self._text_source,
            window=self._query_or_none("focused_window"),
            pointer=self._query_or_none("pointer_position"),
            log=self._log,
        )

    # Internal helpers -------------------------------------------------

    def _run_entry(self, entry: CatalogEntry, on_done: Callable[[], None], guard: Optional[Callable[[], bool]]) -> None:
        ctx = self.build_context()
        plan = self._plan_for(entry, ctx)
        if plan is None:
            self._emit(f"Action '{entry.name}' skipped - missing context")
            plan = ActionPlan(entry.name)

        jitter = jitter_step(ctx)
        if jitter is not None:
            plan.prepend(jitter)

        self._runner.run(plan, ctx, on_done=on_done, guard=guard)

    def _priority_focus_context(self) -> Optional[ActionContext]:
        if self._config.priority_focus_chance <= 0 or not self._config.priority_apps:
            return None
        # Finding and activating an app needs no window or pointer snapshot.
        return ActionContext(
            input=self._input,
            query=self._query,
            config=self._config,
            rng=self._rng,
            text_source=self._text_source,
            log=self._log,
        )

    def _priority_focus_target(self, ctx: ActionContext):
        """Priority app to bring forward before this action, or None."""
        handle = find_priority_app(ctx)
        if handle is None or self._rng.random() >= self._config.priority_focus_chance:
            return None
        return handle

    def _plan_for(self, entry: CatalogEntry, ctx: ActionContext) -> Optional[ActionPlan]:
        try:
            return entry.action.plan(ctx)
        except Exception as e:
            self._emit(f"Planning '{entry.name}' failed: {e}", "WARNING")
            return None

    def _advance_then(self, on_done: Callable[[], None]) -> Callable[[], None]:
        flow = self._flow

        def done() -> None:
            flow.advance()
            on_done()
        return done

    def _query_or_none(self, method: str):
        try:
            return getattr(self._query, method)()
        except Exception as e:
            self._emit(f"{method} unavailable: {e}", "WARNING")
            return None

    def _emit(self, message: str, level: str = "INFO") -> None:
        if self._log:
            try:
                self._log(message, level)
            except Exception:
                pass
