import random
import unittest

from activity.actions import (
    ACTION_TYPES,
    ActionContext,
    ActionError,
    PointerGlideAction,
    SearchAndTypeAction,
    TypingAction,
    WindowResizeAction,
    action_from_name,
    delete_typed_step,
    find_priority_app,
    jitter_step,
    type_steps,
)
from activity.engine import ActionRunner
from activity.model import ActivityConfig, Rect, Shortcuts, WindowInfo
from activity.timers import TimerRegistry
from fakes import FakeDesktop, FixedTextSource, ManualClock, ManualTimerBackend


MAC = Shortcuts.for_platform("darwin")
WINDOWS = Shortcuts.for_platform("win32")

DOCUMENT = "IMPORTANT DOCUMENT"


def _config(**overrides) -> ActivityConfig:
    options = dict(shortcuts=MAC, reverse_scrolls=True, pointer_jitter_px=8)
    options.update(overrides)
    return ActivityConfig(**options)


def _context(desktop: FakeDesktop, config: ActivityConfig, seed: int = 0, text_source=None) -> ActionContext:
    return ActionContext(
        input=desktop,
        query=desktop,
        config=config,
        rng=random.Random(seed),
        text_source=text_source if text_source is not None else FixedTextSource(),
        window=desktop.focused_window(),
        pointer=desktop.pointer_position(),
    )


class RevertCompletenessTests(unittest.TestCase):
    """Whatever an action changes is undone, whether it completes or is aborted."""

    def _run(self, name: str, seed: int, abort_after=None, shortcuts: Shortcuts = MAC) -> FakeDesktop:
        clock = ManualClock()
        backend = ManualTimerBackend(clock)
        runner = ActionRunner(TimerRegistry(backend, clock))
        desktop = FakeDesktop(shortcuts=shortcuts, document=DOCUMENT)
        ctx = _context(desktop, _config(shortcuts=shortcuts), seed)

        plan = action_from_name(name).plan(ctx)
        if plan is None:
            return desktop
        runner.run(plan, ctx)
        if abort_after is not None:
            backend.advance(abort_after)
            runner.abort()
        backend.advance(120.0)
        self.assertFalse(runner.is_running())
        return desktop

    def _assert_reverted(self, name: str, desktop: FakeDesktop) -> None:
        self.assertEqual(desktop.text, DOCUMENT, name)
        self.assertEqual(desktop.selection, 0, name)
        self.assertEqual(desktop.held, set(), name)
        self.assertFalse(desktop.overlay_open, name)
        self.assertEqual(desktop.window.frame, Rect(100, 100, 800, 600), name)
        if name in ("scroll", "burst_scroll"):
            self.assertEqual(desktop.scroll, (0, 0), name)

    def test_completed_actions_leave_no_residue(self) -> None:
        for name in ACTION_TYPES:
            for seed in range(15):
                self._assert_reverted(name, self._run(name, seed))

    def test_aborted_actions_leave_no_residue(self) -> None:
        picker = random.Random(99)
        for name in ACTION_TYPES:
            for seed in range(15):
                abort_after = picker.uniform(0.0, 3.0)
                self._assert_reverted(name, self._run(name, seed, abort_after=abort_after))

    def test_windows_shortcuts_revert_too(self) -> None:
        for name in ("app_switch", "global_ui", "select_copy", "search_and_type"):
            for seed in range(10):
                self._assert_reverted(name, self._run(name, seed, abort_after=0.2, shortcuts=WINDOWS))


class SelectionSafetyTests(unittest.TestCase):
    """A selection left behind must never be overwritten by later typing."""

    def _run_in_sequence(self, names, seed: int, shortcuts: Shortcuts = MAC, abort_first_after=None) -> FakeDesktop:
        clock = ManualClock()
        backend = ManualTimerBackend(clock)
        runner = ActionRunner(TimerRegistry(backend, clock))
        desktop = FakeDesktop(shortcuts=shortcuts, document=DOCUMENT)
        config = _config(shortcuts=shortcuts)
        for index, name in enumerate(names):
            ctx = _context(desktop, config, seed)
            plan = action_from_name(name).plan(ctx)
            self.assertIsNotNone(plan, name)
            runner.run(plan, ctx)
            if index == 0 and abort_first_after is not None:
                backend.advance(abort_first_after)
                runner.abort()
            backend.advance(60.0)
            self.assertFalse(runner.is_running())
        return desktop

    def test_select_copy_then_typing_keeps_the_document(self) -> None:
        for shortcuts in (MAC, WINDOWS):
            for seed in range(20):
                desktop = self._run_in_sequence(["select_copy", "typing"], seed, shortcuts)
                self.assertEqual(desktop.text, DOCUMENT, seed)
                self.assertEqual(desktop.selection, 0, seed)

    def test_aborted_selection_is_collapsed_too(self) -> None:
        for seed in range(20):
            desktop = self._run_in_sequence(["select_copy", "typing"], seed, abort_first_after=0.01)
            self.assertEqual(desktop.text, DOCUMENT, seed)

    def test_typing_drops_a_selection_it_did_not_make(self) -> None:
        desktop = FakeDesktop(shortcuts=MAC, document=DOCUMENT)
        desktop.press_key(["cmd"], "a")
        self.assertEqual(desktop.selection, len(DOCUMENT))

        clock = ManualClock()
        backend = ManualTimerBackend(clock)
        runner = ActionRunner(TimerRegistry(backend, clock))
        ctx = _context(desktop, _config())
        runner.run(TypingAction().plan(ctx), ctx)
        backend.advance(60.0)
        self.assertEqual(desktop.text, DOCUMENT)


class MissingContextTests(unittest.TestCase):
    def test_typing_needs_an_allow_listed_window_and_text(self) -> None:
        desktop = FakeDesktop(app_name="Finder")
        self.assertIsNone(TypingAction().plan(_context(desktop, _config())))

        desktop = FakeDesktop()
        ctx = _context(desktop, _config())
        ctx.window = None
        self.assertIsNone(TypingAction().plan(ctx))

        ctx = _context(desktop, _config())
        ctx.text_source = None
        self.assertIsNone(TypingAction().plan(ctx))

    def test_window_resize_needs_a_window(self) -> None:
        ctx = _context(FakeDesktop(), _config())
        ctx.window = None
        self.assertIsNone(WindowResizeAction().plan(ctx))

    def test_window_resize_needs_a_movable_window(self) -> None:
        ctx = _context(FakeDesktop(), _config())
        ctx.window = WindowInfo("Notes", "Notes", Rect(100, 100, 800, 600), handle=None)
        self.assertIsNone(WindowResizeAction().plan(ctx))

    def test_pointer_glide_needs_the_pointer(self) -> None:
        ctx = _context(FakeDesktop(), _config())
        ctx.pointer = None
        self.assertIsNone(PointerGlideAction().plan(ctx))

    def test_search_needs_a_text_source(self) -> None:
        ctx = _context(FakeDesktop(), _config())
        ctx.text_source = None
        self.assertIsNone(SearchAndTypeAction().plan(ctx))

    def test_unknown_action_name(self) -> None:
        with self.assertRaises(ActionError):
            action_from_name("juggle")


class ActionDetailTests(unittest.TestCase):
    def test_typing_repeats_in_code_editors(self) -> None:
        text = FixedTextSource().text_for("")
        for seed in range(10):
            ctx = _context(FakeDesktop(app_name="Visual Studio Code"), _config(), seed)
            plan = TypingAction().plan(ctx)
            typed = [s for s in plan.steps if s.label.startswith("type ")]
            self.assertIn(len(typed) // len(text), (2, 3))

        ctx = _context(FakeDesktop(app_name="TextEdit"), _config())
        plan = TypingAction().plan(ctx)
        self.assertEqual(len([s for s in plan.steps if s.label.startswith("type ")]), len(text))

    def test_typing_delays_look_human(self) -> None:
        steps = type_steps("ab1!", random.Random(5))
        letters, others = steps[:2], steps[2:]
        for step in letters:
            self.assertTrue(0.04 <= step.delay <= 0.72, step.delay)
        for step in others:
            self.assertTrue(0.08 <= step.delay <= 0.78, step.delay)

    def test_delete_expands_into_one_backspace_per_character(self) -> None:
        ctx = _context(FakeDesktop(), _config())
        ctx.typed = 3
        follow_up = delete_typed_step(0.5).run(ctx)
        self.assertEqual(len(follow_up), 3)
        self.assertEqual(follow_up[0].delay, 0.0)
        for step in follow_up[1:]:
            self.assertTrue(0.025 <= step.delay <= 0.04)

    def test_window_changes_stay_on_screen(self) -> None:
        for seed in range(30):
            desktop = FakeDesktop(frame=Rect(1500, 850, 420, 230))
            ctx = _context(desktop, _config(), seed)
            plan = WindowResizeAction().plan(ctx)
            if plan is None:
                continue
            plan.steps[0].run(ctx)
            changed = desktop.frames[-1]
            screen = FakeDesktop.SCREEN
            self.assertGreaterEqual(changed.x, screen.x)
            self.assertGreaterEqual(changed.y, screen.y)
            self.assertLessEqual(changed.right, screen.right)
            self.assertLessEqual(changed.bottom, screen.bottom)

    def test_typing_sometimes_scrolls_after_the_final_delete(self) -> None:
        desktop = FakeDesktop(document=DOCUMENT)
        ctx = _context(desktop, _config(post_typing_scroll_chance=1.0))
        plan = TypingAction().plan(ctx)
        self.assertEqual(plan.cleanup[0].label, "delete typed text")
        self.assertTrue(plan.cleanup[1].label.startswith("scroll 0,"))

        clock = ManualClock()
        backend = ManualTimerBackend(clock)
        runner = ActionRunner(TimerRegistry(backend, clock))
        runner.run(plan, ctx)
        backend.advance(60.0)
        self.assertEqual(desktop.text, DOCUMENT)
        self.assertLess(desktop.scroll[1], 0)

        plan = TypingAction().plan(_context(FakeDesktop(), _config(post_typing_scroll_chance=0.0)))
        self.assertEqual(len(plan.cleanup), 1)

    def test_scroll_after_typing_is_skipped_when_aborted(self) -> None:
        desktop = FakeDesktop(document=DOCUMENT)
        ctx = _context(desktop, _config(post_typing_scroll_chance=1.0))
        clock = ManualClock()
        backend = ManualTimerBackend(clock)
        runner = ActionRunner(TimerRegistry(backend, clock))
        runner.run(TypingAction().plan(ctx), ctx)
        backend.advance(0.5)
        runner.abort()
        backend.advance(60.0)
        self.assertEqual(desktop.text, DOCUMENT)
        self.assertEqual(desktop.scroll, (0, 0))

    def test_glide_clicks_at_its_target(self) -> None:
        for seed in range(10):
            ctx = _context(FakeDesktop(), _config(glide_click_chance=1.0), seed)
            labels = [s.label for s in PointerGlideAction().plan(ctx).steps]
            self.assertEqual(labels[-1], "click")

            ctx = _context(FakeDesktop(), _config(glide_click_chance=0.0), seed)
            self.assertNotIn("click", [s.label for s in PointerGlideAction().plan(ctx).steps])

    def test_preferred_priority_app_wins_most_of_the_time(self) -> None:
        desktop = FakeDesktop(applications=["Code", "Google Chrome"])
        picks = [find_priority_app(_context(desktop, _config(), seed)) for seed in range(200)]
        self.assertEqual(set(picks), {"Code", "Google Chrome"})
        self.assertGreater(picks.count("Code"), 120)

        only_chrome = FakeDesktop(applications=["Chrome"])
        self.assertEqual(find_priority_app(_context(only_chrome, _config())), "Chrome")
        self.assertIsNone(find_priority_app(_context(FakeDesktop(), _config())))

        always = _config(preferred_app_chance=1.0)
        self.assertEqual(find_priority_app(_context(desktop, always, 3)), "Code")

    def test_jitter_is_small_and_optional(self) -> None:
        for seed in range(20):
            ctx = _context(FakeDesktop(pointer=(500, 400)), _config(pointer_jitter_px=8), seed)
            step = jitter_step(ctx)
            step.run(ctx)
            x, y = ctx.query.pointer_position()
            self.assertLessEqual(abs(x - 500), 8)
            self.assertLessEqual(abs(y - 400), 8)

        ctx = _context(FakeDesktop(), _config(pointer_jitter_px=0))
        self.assertIsNone(jitter_step(ctx))

    def test_jitter_is_clamped_to_the_screen(self) -> None:
        for seed in range(20):
            ctx = _context(FakeDesktop(pointer=(0, 0)), _config(pointer_jitter_px=8), seed)
            jitter_step(ctx).run(ctx)
            x, y = ctx.query.pointer_position()
            self.assertTrue(FakeDesktop.SCREEN.contains(x, y))


if __name__ == "__main__":
    unittest.main()
