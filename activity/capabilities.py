"""
Interfaces the activity core calls into.

The core never touches an OS API directly: the desktop backend, the timer
facility and the text source are injected behind these protocols.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Sequence, Tuple

from .model import Rect, WindowInfo


class InputSynthesis(Protocol):
    """Fire-and-forget synthetic input."""

    def press_key(self, modifiers: Sequence[str], key: str) -> None: ...

    def key_down(self, key: str) -> None: ...

    def key_up(self, key: str) -> None: ...

    def type_text(self, text: str) -> None: ...

    def move_scroll(self, dx: int, dy: int) -> None: ...

    def move_pointer_to(self, x: int, y: int) -> None: ...

    def click(self, x: int, y: int, button: str = "left") -> None: ...

    def set_window_frame(self, window: WindowInfo, frame: Rect, animation_duration: float = 0.0) -> None: ...


class ContextQuery(Protocol):
    """Read-only view of the desktop."""

    def focused_window(self) -> Optional[WindowInfo]: ...

    def pointer_position(self) -> Tuple[int, int]: ...

    def screen_frame(self, window: Optional[WindowInfo] = None) -> Rect: ...

    def find_application(self, identifier: str) -> Optional[Any]: ...

    def activate_application(self, handle: Any) -> None: ...


class Desktop(InputSynthesis, ContextQuery, Protocol):
    """Everything the desktop backend provides."""


class TimerBackend(Protocol):
    """Single-threaded delayed callbacks (``after``/``cancel``)."""

    def after(self, seconds: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class TextSource(Protocol):
    """Chooses what to type for a given application."""

    def text_for(self, app_name: str) -> Optional[str]: ...

    def search_term(self) -> str: ...
