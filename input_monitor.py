"""Global input monitor: feeds raw mouse and keyboard events to the activity core."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

try:
    from pynput import keyboard, mouse  # type: ignore
except Exception:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore
    mouse = None  # type: ignore
import tkinter as tk

from activity.model import InputEvent, InputEventType


EventCallback = Callable[[InputEvent], None]
ErrorCallback = Callable[[Exception], None]

MODIFIER_KEY_PREFIXES = ("shift", "ctrl", "alt", "cmd", "caps")

# Pointer moves arrive by the hundred per second; one per window is enough.
MOVE_THROTTLE_SECONDS = 0.05


def event_type_for_key(key) -> InputEventType:
    """KEY_DOWN for ordinary keys, MODIFIER_CHANGED for modifiers."""
    name = getattr(key, "name", None)
    if isinstance(name, str) and name.split("_")[0] in MODIFIER_KEY_PREFIXES:
        return InputEventType.MODIFIER_CHANGED
    return InputEventType.KEY_DOWN


class MoveThrottle:
    """Lets one pointer-move through per ``interval`` seconds."""

    def __init__(self, interval: float = MOVE_THROTTLE_SECONDS) -> None:
        self._interval = interval
        self._last: Optional[float] = None

    def admit(self, timestamp: float) -> bool:
        if self._last is not None and timestamp - self._last < self._interval:
            return False
        self._last = timestamp
        return True


class InputMonitor:
    """
    Listens to every mouse and keyboard event and reports it on the Tkinter thread.

    Events are stamped with ``time.monotonic()`` on the listener thread, the
    same clock the core uses to stamp its own synthetic input. The listener
    callbacks never return False, so no event is ever suppressed or stopped.
    """

    def __init__(self, root: tk.Tk, clock: Callable[[], float] = time.monotonic) -> None:
        self._root = root
        self._clock = clock
        self._lock = threading.Lock()
        self._mouse_listener: Optional[object] = None
        self._keyboard_listener: Optional[object] = None
        self._on_event: Optional[EventCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self._throttle = MoveThrottle()

    @property
    def is_running(self) -> bool:
        return self._mouse_listener is not None or self._keyboard_listener is not None

    def start(self, on_event: EventCallback, on_error: Optional[ErrorCallback] = None) -> bool:
        """Start both listeners. Returns False if already running or unavailable."""
        with self._lock:
            if self.is_running:
                return False

            self._on_event = on_event
            self._on_error = on_error

            try:
                if mouse is None or keyboard is None:
                    raise RuntimeError("pynput backend not available; input monitoring is disabled")
                self._mouse_listener = mouse.Listener(
                    on_move=self._handle_move,
                    on_click=self._handle_click,
                    on_scroll=self._handle_scroll,
                )
                self._keyboard_listener = keyboard.Listener(
                    on_press=self._handle_press,
                    on_release=self._handle_release,
                )
                self._mouse_listener.start()
                self._keyboard_listener.start()
                return True
            except Exception as exc:  # pragma: no cover - hardware dependent
                self._stop_listeners()
                if on_error:
                    self._notify_error(exc)
                return False

    def stop(self) -> None:
        with self._lock:
            self._stop_listeners()

    # Listener callbacks (pynput thread) ---------------------------------

    def _handle_move(self, _x, _y) -> None:
        timestamp = self._clock()
        if self._throttle.admit(timestamp):
            self._notify_event(InputEvent(InputEventType.POINTER_MOVED, timestamp))

    def _handle_click(self, _x, _y, _button, pressed: bool) -> None:
        if pressed:
            self._notify_event(InputEvent(InputEventType.BUTTON_DOWN, self._clock()))

    def _handle_scroll(self, _x, _y, _dx, _dy) -> None:
        self._notify_event(InputEvent(InputEventType.SCROLL, self._clock()))

    def _handle_press(self, key) -> None:
        self._notify_event(InputEvent(event_type_for_key(key), self._clock()))

    def _handle_release(self, key) -> None:
        # Releasing a modifier changes the flags; other releases carry nothing new.
        if event_type_for_key(key) is InputEventType.MODIFIER_CHANGED:
            self._notify_event(InputEvent(InputEventType.MODIFIER_CHANGED, self._clock()))

    # Internal helpers -------------------------------------------------

    def _stop_listeners(self) -> None:
        for attr in ("_mouse_listener", "_keyboard_listener"):
            listener = getattr(self, attr)
            setattr(self, attr, None)
            if listener is not None:
                try:
                    listener.stop()  # type: ignore[attr-defined]
                except Exception:
                    pass

    def _notify_event(self, event: InputEvent) -> None:
        try:
            self._root.after(0, lambda: self._safe_invoke(self._on_event, event))
        except RuntimeError:
            # Tk main loop already gone during shutdown.
            pass

    def _notify_error(self, exc: Exception) -> None:
        self._root.after(0, lambda: self._safe_invoke(self._on_error, exc))

    @staticmethod
    def _safe_invoke(callback: Optional[Callable], *args) -> None:
        if callback:
            try:
                callback(*args)
            except Exception:
                # Suppress callback errors; they should be handled by caller logging.
                pass
