"""Test doubles: simulated time and a recording desktop."""

from __future__ import annotations

import heapq
import itertools
from typing import Any, Callable, List, Optional, Sequence, Set, Tuple

from activity.model import InputEvent, InputEventType, Rect, Shortcuts, WindowInfo


class ManualClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class ManualTimerBackend:
    """TimerBackend whose callbacks only run when the test advances time."""

    def __init__(self, clock: ManualClock) -> None:
        self._clock = clock
        self._heap: List[Tuple[float, int, Callable[[], None]]] = []
        self._ids = itertools.count()
        self._cancelled: Set[int] = set()

    def after(self, seconds: float, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        heapq.heappush(self._heap, (self._clock.now + seconds, handle, callback))
        return handle

    def cancel(self, handle: Any) -> None:
        self._cancelled.add(handle)

    @property
    def pending_count(self) -> int:
        return sum(1 for _, handle, _ in self._heap if handle not in self._cancelled)

    def advance(self, seconds: float) -> None:
        target = self._clock.now + seconds
        while self._heap and self._heap[0][0] <= target:
            deadline, handle, callback = heapq.heappop(self._heap)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            self._clock.now = max(self._clock.now, deadline)
            callback()
        self._clock.now = target


class RecordingTarget:
    """Minimal InputSynthesis that only records calls."""

    def __init__(self, on_call: Optional[Callable[[], None]] = None) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        self._on_call = on_call

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self._on_call:
            self._on_call()

    def press_key(self, modifiers, key):
        self._record("press_key", tuple(modifiers), key)

    def key_down(self, key):
        self._record("key_down", key)

    def key_up(self, key):
        self._record("key_up", key)

    def type_text(self, text):
        self._record("type_text", text)

    def move_scroll(self, dx, dy):
        self._record("move_scroll", dx, dy)

    def move_pointer_to(self, x, y):
        self._record("move_pointer_to", x, y)

    def click(self, x, y, button="left"):
        self._record("click", x, y, button)

    def set_window_frame(self, window, frame, animation_duration=0.0):
        self._record("set_window_frame", window, frame, animation_duration)


class FakeDesktop:
    """
    Recording desktop with just enough state to check reverts: a text buffer,
    held keys, an overlay flag, the scroll offset and the focused window frame.

    The caret sits at the end of ``text``; ``selection`` is the number of
    characters selected before it. Typing or backspace with a live selection
    replaces the selected characters, as a real editor does.
    """

    SCREEN = Rect(0, 0, 1920, 1080)

    def __init__(
        self,
        app_name: str = "TextEdit",
        frame: Rect = Rect(100, 100, 800, 600),
        pointer: Tuple[int, int] = (500, 400),
        shortcuts: Optional[Shortcuts] = None,
        applications: Sequence[str] = (),
        document: str = "",
    ) -> None:
        self.window: Optional[WindowInfo] = WindowInfo(app_name, f"Untitled - {app_name}", frame, handle=1)
        self.pointer = pointer
        self.text = document
        self.selection = 0
        self.held: Set[str] = set()
        self.scroll = (0, 0)
        self.overlay_open = False
        self.frames: List[Rect] = []
        self.calls: List[str] = []
        self.activated: List[str] = []
        self.applications = list(applications)
        shortcuts = shortcuts or Shortcuts.for_platform()
        self._overlay_chords = {
            tuple(shortcuts.overview_chord),
            tuple(shortcuts.search_chord),
            (shortcuts.primary_modifier, "f"),
        }
        self._select_all = (shortcuts.primary_modifier, "a")
        self._select_line = {("shift", shortcuts.primary_modifier, "right"), ("shift", "end")}
        # Called after every synthetic emission (used to feed echoes back).
        self.observer: Optional[Callable[[str], None]] = None

    # InputSynthesis -----------------------------------------------------

    def press_key(self, modifiers: Sequence[str], key: str) -> None:
        chord = tuple(modifiers) + (key,)
        if chord in self._overlay_chords:
            self.overlay_open = True
        elif key == "escape" and not modifiers:
            self.overlay_open = False
        elif chord == self._select_all or chord in self._select_line:
            self.selection = len(self.text)
        elif chord == ("shift", "left"):
            self.selection = min(len(self.text), self.selection + 1)
        elif key in ("left", "right") and not modifiers:
            self.selection = 0
        elif key == "backspace" and not modifiers:
            self.text = self.text[:-max(1, self.selection)] if self.text else ""
            self.selection = 0
        self._emitted("press_key")

    def key_down(self, key: str) -> None:
        self.held.add(key)
        self._emitted("key_down")

    def key_up(self, key: str) -> None:
        self.held.discard(key)
        self._emitted("key_up")

    def type_text(self, text: str) -> None:
        if self.selection:
            self.text = self.text[:-self.selection]
            self.selection = 0
        self.text += text
        self._emitted("type_text")

    def move_scroll(self, dx: int, dy: int) -> None:
        self.scroll = (self.scroll[0] + dx, self.scroll[1] + dy)
        self._emitted("move_scroll")

    def move_pointer_to(self, x: int, y: int) -> None:
        self.pointer = (x, y)
        self._emitted("move_pointer_to")

    def click(self, x: int, y: int, button: str = "left") -> None:
        self._emitted("click")

    def set_window_frame(self, window: WindowInfo, frame: Rect, animation_duration: float = 0.0) -> None:
        self.frames.append(frame)
        self.window = WindowInfo(window.app_name, window.title, frame, window.handle)
        self._emitted("set_window_frame")

    # ContextQuery -------------------------------------------------------

    def focused_window(self) -> Optional[WindowInfo]:
        return self.window

    def pointer_position(self) -> Tuple[int, int]:
        return self.pointer

    def screen_frame(self, window: Optional[WindowInfo] = None) -> Rect:
        return self.SCREEN

    def find_application(self, identifier: str) -> Optional[Any]:
        return identifier if identifier in self.applications else None

    def activate_application(self, handle: Any) -> None:
        self.activated.append(handle)

    def _emitted(self, name: str) -> None:
        self.calls.append(name)
        if self.observer:
            self.observer(name)


class FixedTextSource:
    def __init__(self, text: str = "hello, world 42", term: str = "notes") -> None:
        self._text = text
        self._term = term

    def text_for(self, app_name: str) -> Optional[str]:
        return self._text

    def search_term(self) -> str:
        return self._term


def user_event(clock: ManualClock, event_type: InputEventType = InputEventType.KEY_DOWN) -> InputEvent:
    return InputEvent(event_type, clock.now)
