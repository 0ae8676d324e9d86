"""
Domain model for the activity core: configuration, automation state and the
small value types exchanged with the desktop capabilities.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


FLOW_MODES = ("weighted", "sequential")

CHANCE_OPTIONS = (
    "priority_switch_chance",
    "preferred_app_chance",
    "priority_focus_chance",
    "post_typing_scroll_chance",
    "glide_click_chance",
)

DEFAULT_TYPING_APPS: Tuple[str, ...] = (
    "Code", "TextEdit", "Notes", "Terminal", "Safari", "Chrome", "Slack",
    "Mail", "iTerm", "Firefox", "Xcode", "Sublime", "Pages", "Messages",
)

DEFAULT_PRIORITY_APPS: Tuple[str, ...] = ("Visual Studio Code", "Code", "Google Chrome", "Chrome")

# Priority apps picked ahead of the others when several are running.
DEFAULT_PREFERRED_APPS: Tuple[str, ...] = ("Visual Studio Code", "Code")


class ActivityState(Enum):
    """Observable state of the pause/resume machine."""
    ACTIVE = "active"
    PAUSED = "paused"


class InputEventType(Enum):
    """Raw input notifications delivered by the event source."""
    POINTER_MOVED = "pointer_moved"
    BUTTON_DOWN = "button_down"
    SCROLL = "scroll"
    KEY_DOWN = "key_down"
    MODIFIER_CHANGED = "modifier_changed"


@dataclass(frozen=True)
class InputEvent:
    """A raw input notification stamped with a monotonic time in seconds."""
    type: InputEventType
    timestamp: float


@dataclass(frozen=True)
class Rect:
    """Screen rectangle in pixels."""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def clamp_point(self, x: int, y: int) -> Tuple[int, int]:
        """Clamp a point so it lies inside the rectangle."""
        cx = max(self.x, min(int(x), self.right - 1))
        cy = max(self.y, min(int(y), self.bottom - 1))
        return cx, cy

    def clamped_within(self, bounds: "Rect") -> "Rect":
        """Return a copy shrunk and shifted so it lies fully inside ``bounds``."""
        width = min(self.width, bounds.width)
        height = min(self.height, bounds.height)
        x = max(bounds.x, min(self.x, bounds.right - width))
        y = max(bounds.y, min(self.y, bounds.bottom - height))
        return Rect(x, y, width, height)


@dataclass(frozen=True)
class WindowInfo:
    """Focused window as reported by the context query capability."""
    app_name: str
    title: str
    frame: Rect
    handle: Any = None


@dataclass(frozen=True)
class Shortcuts:
    """Key chords that differ per operating system.

    A chord is a tuple of key names; the last entry is the key, the rest are
    modifiers held while it is pressed.
    """
    primary_modifier: str
    app_switch_modifier: str
    overview_chord: Tuple[str, ...]
    search_chord: Tuple[str, ...]

    @staticmethod
    def for_platform(platform: Optional[str] = None) -> "Shortcuts":
        platform = platform or sys.platform
        if platform == "darwin":
            return Shortcuts(
                primary_modifier="cmd",
                app_switch_modifier="cmd",
                overview_chord=("ctrl", "up"),
                search_chord=("cmd", "space"),
            )
        return Shortcuts(
            primary_modifier="ctrl",
            app_switch_modifier="alt",
            overview_chord=("cmd", "tab"),
            search_chord=("cmd",),
        )


@dataclass
class ActivityConfig:
    """
    Static options for one run of the automation.

    The self-event grace window of 300 ms is sized for the latency of a single
    synthetic emission: every keystroke, scroll and pointer step re-stamps the
    last synthetic time, so a multi-step action never needs a wider window,
    and a genuine reaction right after a synthetic event is still seen.
    """
    idle_seconds: float = 5.0
    self_event_grace_ms: float = 300.0
    min_interval: float = 1.0
    max_interval: float = 3.0
    enable_global_ui: bool = True
    enable_typing: bool = True
    flow_mode: str = "weighted"
    action_weights: Dict[str, float] = field(default_factory=dict)
    typing_apps: Tuple[str, ...] = DEFAULT_TYPING_APPS
    priority_apps: Tuple[str, ...] = DEFAULT_PRIORITY_APPS
    priority_switch_chance: float = 0.7
    preferred_apps: Tuple[str, ...] = DEFAULT_PREFERRED_APPS
    preferred_app_chance: float = 0.8
    priority_focus_chance: float = 0.75
    pointer_jitter_px: int = 8
    post_typing_scroll_chance: float = 0.3
    glide_click_chance: float = 0.3
    glide_back: bool = False
    reverse_scrolls: bool = False
    window_restore_delay: float = 1.5
    shortcuts: Shortcuts = field(default_factory=Shortcuts.for_platform)

    def __post_init__(self):
        if self.idle_seconds <= 0:
            raise ValueError("idle_seconds must be positive")

        if self.self_event_grace_ms < 0:
            raise ValueError("self_event_grace_ms cannot be negative")

        if self.min_interval < 0 or self.max_interval < 0:
            raise ValueError("Action intervals cannot be negative")

        if self.min_interval > self.max_interval:
            raise ValueError("min_interval must not exceed max_interval")

        if self.flow_mode not in FLOW_MODES:
            raise ValueError(f"Unknown flow mode: {self.flow_mode}")

        for name in CHANCE_OPTIONS:
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")

        for name, weight in self.action_weights.items():
            if weight < 0:
                raise ValueError(f"Weight for '{name}' cannot be negative")

    @property
    def self_event_grace_seconds(self) -> float:
        return self.self_event_grace_ms / 1000.0


@dataclass
class AutomationState:
    """
    Process-wide automation flags.

    ``running`` changes only on explicit start/stop, ``paused_by_user`` only
    on filtered user input and idle timeout. ``current_step_index`` is the
    cursor of the sequential flow.
    """
    running: bool = False
    paused_by_user: bool = False
    current_step_index: int = 0

    @property
    def activity_state(self) -> ActivityState:
        if self.running and not self.paused_by_user:
            return ActivityState.ACTIVE
        return ActivityState.PAUSED
