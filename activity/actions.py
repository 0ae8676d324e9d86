"""
Activity actions: small planners that turn the current desktop context into
an ordered list of timed steps.

Supported actions (catalog names):
- typing:          type a snippet in an allow-listed app, then delete it
- scroll:          single, double or horizontal scroll
- app_switch:      focus a priority app or cycle apps with the switch modifier
- pointer_glide:   interpolate the pointer towards a nearby target
- global_ui:       open the OS overview and dismiss it
- window_resize:   nudge the focused window's size or position, then restore it
- search_and_type: open OS search, type a term, clear it and dismiss
- select_copy:     a benign selection or clipboard chord
- burst_scroll:    several rapid scrolls
- tab_switch:      next tab in the focused app

A plan has forward ``steps`` and ``cleanup`` steps. Cleanup always runs, after
the forward steps or right after an abort, and is where every revert lives.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .capabilities import ContextQuery, InputSynthesis, TextSource
from .model import ActivityConfig, Rect, WindowInfo


class ActionError(Exception):
    pass


@dataclass
class Step:
    """One timed sub-step. ``run`` may return follow-up steps to run next."""
    delay: float
    run: Callable[["ActionContext"], Optional[Iterable["Step"]]]
    label: str = ""


@dataclass
class ActionPlan:
    name: str
    steps: List[Step] = field(default_factory=list)
    cleanup: List[Step] = field(default_factory=list)

    def prepend(self, step: Step) -> "ActionPlan":
        self.steps.insert(0, step)
        return self


@dataclass
class ActionContext:
    """Everything a planner and its steps may read or mutate during one action."""
    input: InputSynthesis
    query: ContextQuery
    config: ActivityConfig
    rng: random.Random
    text_source: Optional[TextSource] = None
    window: Optional[WindowInfo] = None
    pointer: Optional[Tuple[int, int]] = None
    log: Optional[Callable[..., None]] = None
    # Revert bookkeeping
    typed: int = 0
    scrolled: Tuple[int, int] = (0, 0)
    held_keys: List[str] = field(default_factory=list)
    original_frame: Optional[Rect] = None
    overlay_open: bool = False
    selection_active: bool = False
    # Set by the runner when the forward steps were abandoned.
    aborted: bool = False

    @property
    def app_name(self) -> str:
        return self.window.app_name if self.window else ""

    def screen(self) -> Optional[Rect]:
        try:
            return self.query.screen_frame(self.window)
        except Exception as exc:
            self.emit_log(f"screen_frame failed: {exc}", "WARNING")
            return None

    def emit_log(self, message: str, level: str = "INFO") -> None:
        if self.log:
            try:
                self.log(message, level)
            except Exception:
                pass


# ----------------------------------------------------------------------
# Shared step builders
# ----------------------------------------------------------------------

def _matches_any(app_name: str, names: Sequence[str]) -> bool:
    lowered = app_name.lower()
    return any(name.lower() in lowered for name in names)


def _char_delay(ch: str, rng: random.Random) -> float:
    if ch.isdigit() or (not ch.isalnum() and not ch.isspace()):
        return rng.uniform(0.08, 0.18)
    return rng.uniform(0.04, 0.12)


def type_steps(text: str, rng: random.Random, first_delay: float = 0.0) -> List[Step]:
    """One step per character with human-looking gaps and occasional pauses."""
    steps: List[Step] = []
    delay = first_delay
    for index, ch in enumerate(text):
        steps.append(Step(delay + _char_delay(ch, rng), _type_char(ch), label=f"type {ch!r}"))
        delay = 0.0
        if index < len(text) - 1 and rng.random() > 0.92:
            delay = rng.uniform(0.3, 0.6)
    return steps


def _type_char(ch: str) -> Callable[[ActionContext], None]:
    def run(ctx: ActionContext) -> None:
        ctx.input.type_text(ch)
        ctx.typed += 1
    return run


def _delete_one(ctx: ActionContext) -> None:
    if ctx.typed <= 0:
        return
    ctx.input.press_key([], "backspace")
    ctx.typed -= 1


def delete_typed_step(delay: float) -> Step:
    """Expand into one backspace per character still on screen."""
    def run(ctx: ActionContext) -> List[Step]:
        count = ctx.typed
        return [Step(0.0 if i == 0 else ctx.rng.uniform(0.025, 0.04), _delete_one, label="delete")
                for i in range(count)]
    return Step(delay, run, label="delete typed text")


def press_step(delay: float, chord: Sequence[str], label: str = "") -> Step:
    modifiers, key = list(chord[:-1]), chord[-1]

    def run(ctx: ActionContext) -> None:
        ctx.input.press_key(modifiers, key)
    return Step(delay, run, label=label or "+".join(chord))


def scroll_step(delay: float, dx: int, dy: int) -> Step:
    def run(ctx: ActionContext) -> None:
        ctx.input.move_scroll(dx, dy)
        sx, sy = ctx.scrolled
        ctx.scrolled = (sx + dx, sy + dy)
    return Step(delay, run, label=f"scroll {dx},{dy}")


def reverse_scroll_step(delay: float) -> Step:
    def run(ctx: ActionContext) -> None:
        sx, sy = ctx.scrolled
        if sx or sy:
            ctx.input.move_scroll(-sx, -sy)
            ctx.scrolled = (0, 0)
    return Step(delay, run, label="reverse scroll")


def move_pointer_step(delay: float, x: int, y: int) -> Step:
    def run(ctx: ActionContext) -> None:
        ctx.input.move_pointer_to(x, y)
    return Step(delay, run, label=f"pointer {x},{y}")


def dismiss_overlay_step(delay: float) -> Step:
    def run(ctx: ActionContext) -> None:
        if ctx.overlay_open:
            ctx.input.press_key([], "escape")
            ctx.overlay_open = False
    return Step(delay, run, label="dismiss overlay")


def open_overlay_step(delay: float, chord: Sequence[str]) -> Step:
    modifiers, key = list(chord[:-1]), chord[-1]

    def run(ctx: ActionContext) -> None:
        ctx.overlay_open = True
        ctx.input.press_key(modifiers, key)
    return Step(delay, run, label="open overlay " + "+".join(chord))


def select_step(delay: float, chord: Sequence[str]) -> Step:
    """Chord that extends or creates a text selection."""
    modifiers, key = list(chord[:-1]), chord[-1]

    def run(ctx: ActionContext) -> None:
        ctx.selection_active = True
        ctx.input.press_key(modifiers, key)
    return Step(delay, run, label="select " + "+".join(chord))


def collapse_selection_step(delay: float, force: bool = False) -> Step:
    """Unmodified right arrow: drops a selection without editing the text."""
    def run(ctx: ActionContext) -> None:
        if ctx.selection_active or force:
            ctx.input.press_key([], "right")
            ctx.selection_active = False
    return Step(delay, run, label="collapse selection")


def after_completion(step: Step) -> Step:
    """Cleanup step that only runs when the action was not abandoned."""
    def run(ctx: ActionContext) -> Optional[Iterable[Step]]:
        if ctx.aborted:
            return None
        return step.run(ctx)
    return Step(step.delay, run, label=step.label)


def find_priority_app(ctx: ActionContext) -> Optional[Any]:
    """
    Handle of a running priority app, or None.

    When a preferred app and another priority app are both running, the
    preferred one wins with ``preferred_app_chance``.
    """
    config = ctx.config
    preferred = _find_first(ctx, [n for n in config.priority_apps if n in config.preferred_apps])
    other = _find_first(ctx, [n for n in config.priority_apps if n not in config.preferred_apps])
    if preferred is None:
        return other
    if other is None or ctx.rng.random() < config.preferred_app_chance:
        return preferred
    return other


def _find_first(ctx: ActionContext, names: Sequence[str]) -> Optional[Any]:
    for name in names:
        try:
            handle = ctx.query.find_application(name)
        except Exception as exc:
            ctx.emit_log(f"find_application({name}) failed: {exc}", "WARNING")
            continue
        if handle is not None:
            return handle
    return None


def jitter_step(ctx: ActionContext) -> Optional[Step]:
    """Tiny pointer nudge that precedes every action."""
    px = ctx.config.pointer_jitter_px
    if px <= 0 or ctx.pointer is None:
        return None
    x, y = ctx.pointer
    tx, ty = x + ctx.rng.randint(-px, px), y + ctx.rng.randint(-px, px)
    screen = ctx.screen()
    if screen is not None:
        tx, ty = screen.clamp_point(tx, ty)
    return move_pointer_step(0.0, tx, ty)


# ----------------------------------------------------------------------
# Planners
# ----------------------------------------------------------------------

@dataclass
class BaseAction:
    """Common interface: build a plan for the given context, or None to skip."""

    name = "base"

    def is_enabled(self, config: ActivityConfig) -> bool:
        return True

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class TypingAction(BaseAction):
    name = "typing"

    def is_enabled(self, config: ActivityConfig) -> bool:
        return config.enable_typing

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        if ctx.window is None or ctx.text_source is None:
            return None
        app = ctx.app_name
        if not _matches_any(app, ctx.config.typing_apps):
            return None
        text = ctx.text_source.text_for(app)
        if not text:
            return None

        if _matches_any(app, ("Code", "Visual Studio Code")):
            iterations = ctx.rng.randint(2, 3)
        elif _matches_any(app, ctx.config.priority_apps):
            iterations = ctx.rng.randint(1, 2)
        else:
            iterations = 1

        # A leftover selection would be replaced by the first typed character.
        steps: List[Step] = [collapse_selection_step(0.1, force=True)]
        for i in range(iterations):
            steps.extend(type_steps(text, ctx.rng, first_delay=0.0 if i == 0 else 0.3))
            if i < iterations - 1:
                steps.append(delete_typed_step(0.5))
        cleanup = [delete_typed_step(ctx.rng.uniform(1.0, 1.8))]
        if ctx.rng.random() < ctx.config.post_typing_scroll_chance:
            cleanup.append(after_completion(scroll_step(0.2, 0, ctx.rng.randint(-3, -1))))
        return ActionPlan(self.name, steps, cleanup)


@dataclass
class ScrollAction(BaseAction):
    name = "scroll"

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        kind = ctx.rng.randint(1, 3)
        if kind == 1:
            steps = [scroll_step(0.0, 0, ctx.rng.randint(-5, -1))]
        elif kind == 2:
            steps = [scroll_step(0.0, 0, ctx.rng.randint(-3, -1)),
                     scroll_step(0.1, 0, ctx.rng.randint(-3, -1))]
        else:
            dx = ctx.rng.choice([-3, -2, -1, 1, 2, 3])
            steps = [scroll_step(0.0, dx, 0)]
        cleanup = [reverse_scroll_step(0.5)] if ctx.config.reverse_scrolls else []
        return ActionPlan(self.name, steps, cleanup)


@dataclass
class AppSwitchAction(BaseAction):
    name = "app_switch"

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        steps: List[Step] = []
        if ctx.config.priority_apps and ctx.rng.random() < ctx.config.priority_switch_chance:
            handle = find_priority_app(ctx)
            if handle is not None:
                steps.append(Step(0.0, lambda c, h=handle: c.query.activate_application(h), label="focus priority app"))
        if not steps:
            steps.extend(self._cycle_steps(ctx))
        steps.append(scroll_step(0.3, 0, ctx.rng.randint(-3, -1)))
        cleanup = [Step(0.0, _release_held_keys, label="release modifiers")]
        return ActionPlan(self.name, steps, cleanup)

    @staticmethod
    def _cycle_steps(ctx: ActionContext) -> List[Step]:
        modifier = ctx.config.shortcuts.app_switch_modifier

        def hold(c: ActionContext) -> None:
            c.held_keys.append(modifier)
            c.input.key_down(modifier)

        def release(c: ActionContext) -> None:
            if modifier in c.held_keys:
                c.held_keys.remove(modifier)
                c.input.key_up(modifier)

        steps = [Step(0.0, hold, label=f"hold {modifier}")]
        for _ in range(ctx.rng.randint(1, 3)):
            steps.append(press_step(0.1, ["tab"]))
        steps.append(Step(0.15, release, label=f"release {modifier}"))
        return steps


def _release_held_keys(ctx: ActionContext) -> None:
    while ctx.held_keys:
        ctx.input.key_up(ctx.held_keys.pop())


@dataclass
class PointerGlideAction(BaseAction):
    name = "pointer_glide"

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        if ctx.pointer is None:
            return None
        sx, sy = ctx.pointer
        tx, ty = sx + ctx.rng.randint(-150, 150), sy + ctx.rng.randint(-100, 100)
        screen = ctx.screen()
        if screen is not None:
            tx, ty = screen.clamp_point(tx, ty)

        count = ctx.rng.randint(8, 15)
        steps = self._glide(sx, sy, tx, ty, count)
        if ctx.rng.random() < ctx.config.glide_click_chance:
            steps.append(Step(0.1, lambda c: c.input.click(tx, ty, "left"), label="click"))
        if ctx.config.glide_back:
            steps.extend(self._glide(tx, ty, sx, sy, count))
        return ActionPlan(self.name, steps)

    @staticmethod
    def _glide(sx: int, sy: int, tx: int, ty: int, count: int) -> List[Step]:
        return [
            move_pointer_step(0.02, int(sx + (tx - sx) * i / count), int(sy + (ty - sy) * i / count))
            for i in range(1, count + 1)
        ]


@dataclass
class GlobalUIAction(BaseAction):
    name = "global_ui"

    def is_enabled(self, config: ActivityConfig) -> bool:
        return config.enable_global_ui

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        steps = [open_overlay_step(0.0, ctx.config.shortcuts.overview_chord)]
        return ActionPlan(self.name, steps, [dismiss_overlay_step(0.8)])


@dataclass
class WindowResizeAction(BaseAction):
    name = "window_resize"

    MIN_WIDTH = 400
    MIN_HEIGHT = 300

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        window = ctx.window
        if window is None or window.handle is None:
            return None
        screen = ctx.screen()
        if screen is None:
            return None

        frame = window.frame
        if ctx.rng.random() > 0.5:
            changed = Rect(
                frame.x, frame.y,
                max(self.MIN_WIDTH, frame.width + ctx.rng.randint(-50, 50)),
                max(self.MIN_HEIGHT, frame.height + ctx.rng.randint(-50, 50)),
            )
        else:
            changed = Rect(frame.x + ctx.rng.randint(-30, 30), frame.y + ctx.rng.randint(-30, 30),
                           frame.width, frame.height)
        changed = changed.clamped_within(screen)
        if changed == frame:
            return None

        def apply(c: ActionContext) -> None:
            c.original_frame = frame
            c.input.set_window_frame(window, changed, 0.2)

        def restore(c: ActionContext) -> None:
            if c.original_frame is not None:
                c.input.set_window_frame(window, c.original_frame, 0.2)
                c.original_frame = None

        steps = [Step(0.0, apply, label="resize window")]
        cleanup = [Step(ctx.config.window_restore_delay, restore, label="restore window")]
        return ActionPlan(self.name, steps, cleanup)


@dataclass
class SearchAndTypeAction(BaseAction):
    name = "search_and_type"

    def is_enabled(self, config: ActivityConfig) -> bool:
        return config.enable_global_ui and config.enable_typing

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        if ctx.text_source is None:
            return None
        term = ctx.text_source.search_term()
        if not term:
            return None
        steps = [open_overlay_step(0.0, ctx.config.shortcuts.search_chord)]
        steps.extend(type_steps(term, ctx.rng, first_delay=0.3))
        cleanup = [delete_typed_step(0.7), dismiss_overlay_step(0.2)]
        return ActionPlan(self.name, steps, cleanup)


@dataclass
class SelectCopyAction(BaseAction):
    name = "select_copy"

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        mod = ctx.config.shortcuts.primary_modifier
        choice = ctx.rng.randint(1, 5)
        cleanup: List[Step] = []
        if choice == 1:
            steps = [select_step(0.0, [mod, "a"])]
        elif choice == 2:
            steps = [press_step(0.0, [mod, "c"])]
        elif choice == 3:
            steps = [open_overlay_step(0.0, [mod, "f"])]
            cleanup = [dismiss_overlay_step(0.5)]
        elif choice == 4:
            steps = [select_step(0.0, ["shift", "left"]),
                     select_step(0.05, ["shift", "left"]),
                     select_step(0.0, ["shift", "left"])]
        else:
            line_start = [mod, "left"] if mod == "cmd" else ["home"]
            line_end = ["shift", mod, "right"] if mod == "cmd" else ["shift", "end"]
            steps = [press_step(0.0, line_start), select_step(0.08, line_end)]
        if choice in (1, 4, 5):
            cleanup = [collapse_selection_step(0.3)]
        return ActionPlan(self.name, steps, cleanup)


@dataclass
class BurstScrollAction(BaseAction):
    name = "burst_scroll"

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        steps = [scroll_step(0.08, 0, ctx.rng.randint(-4, -2)) for _ in range(ctx.rng.randint(4, 8))]
        cleanup = [reverse_scroll_step(0.5)] if ctx.config.reverse_scrolls else []
        return ActionPlan(self.name, steps, cleanup)


@dataclass
class TabSwitchAction(BaseAction):
    name = "tab_switch"

    def plan(self, ctx: ActionContext) -> Optional[ActionPlan]:
        return ActionPlan(self.name, [press_step(0.0, ["ctrl", "tab"])])


ACTION_TYPES: Dict[str, type] = {
    cls.name: cls
    for cls in (
        TypingAction, ScrollAction, AppSwitchAction, PointerGlideAction, GlobalUIAction,
        WindowResizeAction, SearchAndTypeAction, SelectCopyAction, BurstScrollAction, TabSwitchAction,
    )
}


def action_from_name(name: str) -> BaseAction:
    key = str(name or "").strip().lower()
    cls = ACTION_TYPES.get(key)
    if cls is None:
        raise ActionError(f"Unknown action type: {key}")
    return cls()
