"""Global hotkeys for Keep Active (toggle and trigger-now), built on pynput."""

from __future__ import annotations

from typing import Callable, Dict, Optional

try:
    from pynput import keyboard  # type: ignore
except Exception as _e:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore


class HotkeyManager:
    """Manages the two global hotkeys across Windows, macOS, and Linux."""

    _SPECIAL_KEY_ALIASES: Dict[str, str] = {
        "ctrl": "ctrl",
        "control": "ctrl",
        "alt": "alt",
        "shift": "shift",
        "win": "cmd",
        "cmd": "cmd",
        "command": "cmd",
        "option": "alt",
        "super": "cmd",
        "space": "space",
        "tab": "tab",
        "esc": "esc",
        "escape": "esc",
    }

    def __init__(
        self,
        toggle_hotkey: str = "ctrl+alt+cmd+s",
        trigger_hotkey: str = "ctrl+alt+cmd+t",
        log: Optional[Callable[..., None]] = None,
    ) -> None:
        self._toggle_hotkey = toggle_hotkey
        self._trigger_hotkey = trigger_hotkey
        self._toggle_callback: Optional[Callable[[], None]] = None
        self._trigger_callback: Optional[Callable[[], None]] = None
        self._listener: Optional[object] = None
        self._is_registered = False
        self._log = log

    def register_toggle_callback(self, callback: Callable[[], None]) -> None:
        self._toggle_callback = callback

    def register_trigger_callback(self, callback: Callable[[], None]) -> None:
        self._trigger_callback = callback

    @property
    def is_registered(self) -> bool:
        return self._is_registered

    def build_hotkey_map(self) -> Dict[str, Callable[[], None]]:
        """pynput hotkey string -> callback for every registered callback."""
        hotkey_map: Dict[str, Callable[[], None]] = {}
        if self._toggle_callback:
            hotkey_map[self._to_pynput_hotkey(self._toggle_hotkey)] = self._toggle_callback
        if self._trigger_callback:
            trigger = self._to_pynput_hotkey(self._trigger_hotkey)
            if trigger in hotkey_map:
                raise ValueError(f"Toggle and trigger hotkeys are identical: {self._trigger_hotkey}")
            hotkey_map[trigger] = self._trigger_callback
        return hotkey_map

    def enable_hotkeys(self) -> bool:
        if self._is_registered:
            return True

        try:
            hotkey_map = self.build_hotkey_map()
        except ValueError as exc:
            self._emit(f"Invalid hotkey definition: {exc}", "ERROR")
            return False

        if not hotkey_map:
            return False

        if keyboard is None:
            self._emit("pynput/keyboard backend not available; global hotkeys disabled", "WARNING")
            self._listener = None
            self._is_registered = False
            return False
        try:
            self._listener = keyboard.GlobalHotKeys(hotkey_map)
            self._listener.start()
            self._is_registered = True
            return True
        except Exception as exc:  # pragma: no cover - system specific
            self._emit(f"Failed to register hotkeys: {exc}", "ERROR")
            self._listener = None
            self._is_registered = False
            return False

    def disable_hotkeys(self) -> None:
        if not self._is_registered:
            return

        if self._listener is not None:
            try:
                self._listener.stop()  # type: ignore[attr-defined]
            except Exception:
                pass
            self._listener = None

        self._is_registered = False

    def get_toggle_hotkey(self) -> str:
        return self._toggle_hotkey

    def get_trigger_hotkey(self) -> str:
        return self._trigger_hotkey

    def update_hotkeys(self, toggle_hotkey: str, trigger_hotkey: str) -> bool:
        was_registered = self._is_registered
        if was_registered:
            self.disable_hotkeys()

        self._toggle_hotkey = toggle_hotkey
        self._trigger_hotkey = trigger_hotkey

        if was_registered:
            return self.enable_hotkeys()
        return True

    def _to_pynput_hotkey(self, hotkey: str) -> str:
        if not hotkey:
            raise ValueError("Empty hotkey string")

        tokens = [token.strip() for token in hotkey.replace("+", " ").split() if token.strip()]
        if not tokens:
            raise ValueError("Hotkey contains no tokens")

        parsed: list[str] = []
        for token in tokens:
            lower_token = token.lower()

            if lower_token in self._SPECIAL_KEY_ALIASES:
                parsed.append(f"<{self._SPECIAL_KEY_ALIASES[lower_token]}>")
                continue

            if lower_token.startswith("f") and lower_token[1:].isdigit():
                parsed.append(f"<{lower_token}>")
                continue

            if len(lower_token) == 1:
                parsed.append(lower_token)
                continue

            raise ValueError(f"Unknown key '{token}' in hotkey '{hotkey}'")

        return "+".join(parsed)

    def _emit(self, message: str, level: str = "INFO") -> None:
        if self._log:
            self._log(message, level)
        else:
            print(message)
