"""
Persisted settings for the Keep Active application.
Flat key/value options, converted into the validated ActivityConfig at startup.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from activity.model import DEFAULT_PREFERRED_APPS, DEFAULT_PRIORITY_APPS, DEFAULT_TYPING_APPS, ActivityConfig


@dataclass
class ApplicationSettings:
    """Persisted application preferences."""

    idle_seconds: float = 5.0
    self_event_grace_ms: float = 300.0
    min_interval: float = 1.0
    max_interval: float = 3.0
    enable_global_ui: bool = True
    enable_typing: bool = True
    flow_mode: str = "weighted"
    action_weights: Dict[str, float] = field(default_factory=dict)
    typing_apps: List[str] = field(default_factory=lambda: list(DEFAULT_TYPING_APPS))
    priority_apps: List[str] = field(default_factory=lambda: list(DEFAULT_PRIORITY_APPS))
    priority_switch_chance: float = 0.7
    preferred_apps: List[str] = field(default_factory=lambda: list(DEFAULT_PREFERRED_APPS))
    preferred_app_chance: float = 0.8
    priority_focus_chance: float = 0.75
    pointer_jitter_px: int = 8
    post_typing_scroll_chance: float = 0.3
    glide_click_chance: float = 0.3
    glide_back: bool = False
    reverse_scrolls: bool = False
    window_restore_delay: float = 1.5
    toggle_hotkey: str = "ctrl+alt+cmd+s"
    trigger_hotkey: str = "ctrl+alt+cmd+t"
    notifications_enabled: bool = True
    auto_start: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize settings to primitive types for JSON storage."""
        return {
            "idle_seconds": self.idle_seconds,
            "self_event_grace_ms": self.self_event_grace_ms,
            "min_interval": self.min_interval,
            "max_interval": self.max_interval,
            "enable_global_ui": self.enable_global_ui,
            "enable_typing": self.enable_typing,
            "flow_mode": self.flow_mode,
            "action_weights": dict(self.action_weights),
            "typing_apps": list(self.typing_apps),
            "priority_apps": list(self.priority_apps),
            "priority_switch_chance": self.priority_switch_chance,
            "preferred_apps": list(self.preferred_apps),
            "preferred_app_chance": self.preferred_app_chance,
            "priority_focus_chance": self.priority_focus_chance,
            "pointer_jitter_px": self.pointer_jitter_px,
            "post_typing_scroll_chance": self.post_typing_scroll_chance,
            "glide_click_chance": self.glide_click_chance,
            "glide_back": self.glide_back,
            "reverse_scrolls": self.reverse_scrolls,
            "window_restore_delay": self.window_restore_delay,
            "toggle_hotkey": self.toggle_hotkey,
            "trigger_hotkey": self.trigger_hotkey,
            "notifications_enabled": self.notifications_enabled,
            "auto_start": self.auto_start,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ApplicationSettings":
        """Create settings instance from JSON dictionary."""
        defaults = ApplicationSettings()

        weights_data = data.get("action_weights", {}) or {}
        weights: Dict[str, float] = {}
        if isinstance(weights_data, dict):
            for name, raw in weights_data.items():
                weights[str(name)] = float(raw or 0.0)

        def str_list(key: str, fallback: List[str]) -> List[str]:
            raw = data.get(key)
            if isinstance(raw, list):
                return [str(item) for item in raw if str(item).strip()]
            return list(fallback)

        def number(key: str, fallback: float) -> float:
            raw = data.get(key, fallback)
            return float(raw if raw is not None else fallback)

        return ApplicationSettings(
            idle_seconds=number("idle_seconds", defaults.idle_seconds),
            self_event_grace_ms=number("self_event_grace_ms", defaults.self_event_grace_ms),
            min_interval=number("min_interval", defaults.min_interval),
            max_interval=number("max_interval", defaults.max_interval),
            enable_global_ui=bool(data.get("enable_global_ui", defaults.enable_global_ui)),
            enable_typing=bool(data.get("enable_typing", defaults.enable_typing)),
            flow_mode=str(data.get("flow_mode", defaults.flow_mode) or defaults.flow_mode),
            action_weights=weights,
            typing_apps=str_list("typing_apps", defaults.typing_apps),
            priority_apps=str_list("priority_apps", defaults.priority_apps),
            priority_switch_chance=number("priority_switch_chance", defaults.priority_switch_chance),
            preferred_apps=str_list("preferred_apps", defaults.preferred_apps),
            preferred_app_chance=number("preferred_app_chance", defaults.preferred_app_chance),
            priority_focus_chance=number("priority_focus_chance", defaults.priority_focus_chance),
            pointer_jitter_px=int(number("pointer_jitter_px", defaults.pointer_jitter_px)),
            post_typing_scroll_chance=number("post_typing_scroll_chance", defaults.post_typing_scroll_chance),
            glide_click_chance=number("glide_click_chance", defaults.glide_click_chance),
            glide_back=bool(data.get("glide_back", defaults.glide_back)),
            reverse_scrolls=bool(data.get("reverse_scrolls", defaults.reverse_scrolls)),
            window_restore_delay=number("window_restore_delay", defaults.window_restore_delay),
            toggle_hotkey=str(data.get("toggle_hotkey", defaults.toggle_hotkey) or defaults.toggle_hotkey),
            trigger_hotkey=str(data.get("trigger_hotkey", defaults.trigger_hotkey) or defaults.trigger_hotkey),
            notifications_enabled=bool(data.get("notifications_enabled", defaults.notifications_enabled)),
            auto_start=bool(data.get("auto_start", defaults.auto_start)),
        )

    def to_config(self) -> ActivityConfig:
        """Build the validated runtime configuration (raises ValueError on bad values)."""
        return ActivityConfig(
            idle_seconds=self.idle_seconds,
            self_event_grace_ms=self.self_event_grace_ms,
            min_interval=self.min_interval,
            max_interval=self.max_interval,
            enable_global_ui=self.enable_global_ui,
            enable_typing=self.enable_typing,
            flow_mode=self.flow_mode,
            action_weights=dict(self.action_weights),
            typing_apps=tuple(self.typing_apps),
            priority_apps=tuple(self.priority_apps),
            priority_switch_chance=self.priority_switch_chance,
            preferred_apps=tuple(self.preferred_apps),
            preferred_app_chance=self.preferred_app_chance,
            priority_focus_chance=self.priority_focus_chance,
            pointer_jitter_px=self.pointer_jitter_px,
            post_typing_scroll_chance=self.post_typing_scroll_chance,
            glide_click_chance=self.glide_click_chance,
            glide_back=self.glide_back,
            reverse_scrolls=self.reverse_scrolls,
            window_restore_delay=self.window_restore_delay,
        )
