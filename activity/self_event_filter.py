"""
Tells our own synthetic input apart from the real user.

Synthetic events re-enter the same OS event stream the monitor listens to.
Every emission through ``EchoMarkingInput`` stamps the filter, and raw events
that arrive within the grace window after the last stamp are echoes.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Sequence

from .capabilities import InputSynthesis
from .model import InputEvent, Rect, WindowInfo


class EventOrigin(Enum):
    SYNTHETIC_ECHO = "synthetic_echo"
    REAL_USER = "real_user"


class SelfEventFilter:
    """Grace-window classifier for raw input events."""

    def __init__(self, grace_ms: float) -> None:
        self._grace_ms = max(0.0, float(grace_ms))
        self._last_synthetic_time: Optional[float] = None

    @property
    def last_synthetic_action_time(self) -> Optional[float]:
        return self._last_synthetic_time

    def mark_synthetic(self, timestamp: float) -> None:
        self._last_synthetic_time = timestamp

    def classify(self, event: InputEvent) -> EventOrigin:
        if self._last_synthetic_time is None:
            return EventOrigin.REAL_USER
        # Whole-millisecond comparison: 1.4 - 1.1 must count as a full 300 ms.
        elapsed_ms = round((event.timestamp - self._last_synthetic_time) * 1000.0, 6)
        if elapsed_ms < self._grace_ms:
            return EventOrigin.SYNTHETIC_ECHO
        return EventOrigin.REAL_USER

    def is_real_user(self, event: InputEvent) -> bool:
        return self.classify(event) is EventOrigin.REAL_USER


class EchoMarkingInput:
    """Input synthesis wrapper that stamps the filter around each emission."""

    def __init__(self, target: InputSynthesis, event_filter: SelfEventFilter, clock: Callable[[], float]) -> None:
        self._target = target
        self._filter = event_filter
        self._clock = clock

    def _emit(self, method: Callable[..., None], *args) -> None:
        # Stamp again afterwards: a slow backend call must not outlast the grace window.
        self._filter.mark_synthetic(self._clock())
        try:
            method(*args)
        finally:
            self._filter.mark_synthetic(self._clock())

    def press_key(self, modifiers: Sequence[str], key: str) -> None:
        self._emit(self._target.press_key, modifiers, key)

    def key_down(self, key: str) -> None:
        self._emit(self._target.key_down, key)

    def key_up(self, key: str) -> None:
        self._emit(self._target.key_up, key)

    def type_text(self, text: str) -> None:
        self._emit(self._target.type_text, text)

    def move_scroll(self, dx: int, dy: int) -> None:
        self._emit(self._target.move_scroll, dx, dy)

    def move_pointer_to(self, x: int, y: int) -> None:
        self._emit(self._target.move_pointer_to, x, y)

    def click(self, x: int, y: int, button: str = "left") -> None:
        self._emit(self._target.click, x, y, button)

    def set_window_frame(self, window: WindowInfo, frame: Rect, animation_duration: float = 0.0) -> None:
        self._emit(self._target.set_window_frame, window, frame, animation_duration)
