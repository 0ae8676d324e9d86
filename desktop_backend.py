"""
Desktop backend: synthetic input and context queries for the activity core.

Notes
-----
- Keyboard and scroll go through pynput; pointer moves, clicks and the screen
  size fallback go through pyautogui.
- On Windows, text is typed with pywinauto ``send_keys`` and the focused
  window, its frame and application activation come from pywinauto.
- On macOS the frontmost application name and activation come from AppKit;
  the focused window is read and moved through the Accessibility API, which
  needs the accessibility permission. Without it the window has no handle.
- On Linux the focused window is read and moved through python-xlib.
- Every backend is imported lazily; a missing one makes the affected call
  raise, which the core logs and treats as missing context.
"""

from __future__ import annotations

import re
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

from activity.model import Rect, WindowInfo


KEY_ALIASES: Dict[str, str] = {
    "escape": "esc",
    "return": "enter",
    "control": "ctrl",
    "option": "alt",
    "command": "cmd",
    "win": "cmd",
    "super": "cmd",
    "pageup": "page_up",
    "pagedown": "page_down",
}

# Characters pywinauto's send_keys treats as modifiers or grouping.
_SEND_KEYS_SPECIAL = set("+^%~{}()[]")

_TITLE_SEPARATORS = (" - ", " — ", " – ", " | ")


def key_name_to_pynput(name: str, key_mod: Any) -> Any:
    """Map a key name ("cmd", "escape", "a") onto a pynput key."""
    if len(name) == 1:
        return name
    lowered = name.lower()
    attr = KEY_ALIASES.get(lowered, lowered)
    key = getattr(key_mod, attr, None)
    if key is None:
        raise ValueError(f"Unknown key name: {name}")
    return key


def escape_send_keys(text: str) -> str:
    """Escape text so pywinauto's send_keys types it literally."""
    return "".join("{" + ch + "}" if ch in _SEND_KEYS_SPECIAL else ch for ch in text)


def app_name_from_title(title: str) -> str:
    """Best-effort application name from a window title ("file.py - Visual Studio Code")."""
    title = (title or "").strip()
    for separator in _TITLE_SEPARATORS:
        if separator in title:
            return title.rsplit(separator, 1)[-1].strip()
    return title


def monitor_for_point(monitors: Sequence[Rect], x: int, y: int) -> Optional[Rect]:
    """Monitor containing the point, else the first monitor."""
    for monitor in monitors:
        if monitor.contains(x, y):
            return monitor
    return monitors[0] if monitors else None


def list_monitors() -> List[Rect]:
    """Monitor rectangles from screeninfo, or one screen from pyautogui."""
    try:
        from screeninfo import get_monitors  # type: ignore
        monitors = [Rect(int(m.x), int(m.y), int(m.width), int(m.height)) for m in get_monitors() or []]
        if monitors:
            return monitors
    except Exception:
        pass
    # Fallback: single screen via pyautogui
    import pyautogui  # local import
    size = pyautogui.size()
    return [Rect(0, 0, int(size.width), int(size.height))]


class DesktopBackend:
    """Implements the core's InputSynthesis and ContextQuery on the real desktop."""

    def __init__(self, platform: Optional[str] = None, log=None) -> None:
        self._platform = platform or sys.platform
        self._log = log
        self._keyboard = None
        self._key_mod = None
        self._mouse = None
        self._xdisplay = None
        self._ax_warned = False

    @property
    def is_windows(self) -> bool:
        return self._platform.startswith("win")

    @property
    def is_macos(self) -> bool:
        return self._platform == "darwin"

    @property
    def is_linux(self) -> bool:
        return self._platform.startswith("linux")

    # Input synthesis --------------------------------------------------

    def press_key(self, modifiers: Sequence[str], key: str) -> None:
        kb, key_mod = self._keyboard_controller()
        held = [key_name_to_pynput(m, key_mod) for m in modifiers]
        target = key_name_to_pynput(key, key_mod)
        with kb.pressed(*held):
            kb.press(target)
            kb.release(target)

    def key_down(self, key: str) -> None:
        kb, key_mod = self._keyboard_controller()
        kb.press(key_name_to_pynput(key, key_mod))

    def key_up(self, key: str) -> None:
        kb, key_mod = self._keyboard_controller()
        kb.release(key_name_to_pynput(key, key_mod))

    def type_text(self, text: str) -> None:
        if not text:
            return
        # Prefer pywinauto on Windows; fall back to pynput
        if self.is_windows:
            try:
                from pywinauto.keyboard import send_keys as pw_send_keys  # type: ignore
                pw_send_keys(escape_send_keys(text), with_spaces=True, pause=0.0)
                return
            except Exception as e:  # pragma: no cover
                self._emit(f"pywinauto send_keys failed, fallback to pynput: {e}", "WARNING")
        kb, _key_mod = self._keyboard_controller()
        kb.type(text)

    def move_scroll(self, dx: int, dy: int) -> None:
        # Prefer pynput where available
        try:
            self._mouse_controller().scroll(int(dx), int(dy))
            return
        except Exception as e:
            self._emit(f"pynput scroll failed, fallback to pyautogui: {e}", "WARNING")
        import pyautogui  # local import
        if dy:
            pyautogui.scroll(int(dy))
        if dx:
            pyautogui.hscroll(int(dx))

    def move_pointer_to(self, x: int, y: int) -> None:
        pyautogui = self._pyautogui()
        pyautogui.moveTo(int(x), int(y))

    def click(self, x: int, y: int, button: str = "left") -> None:
        pyautogui = self._pyautogui()
        btn_name = button if button in ("left", "right", "middle") else "left"
        pyautogui.click(x=int(x), y=int(y), button=btn_name)

    def set_window_frame(self, window: WindowInfo, frame: Rect, animation_duration: float = 0.0) -> None:
        # The window managers reached from here do not animate frame changes.
        if window.handle is None:
            raise RuntimeError(f"Window of '{window.app_name}' cannot be moved")
        if self.is_windows:
            from pywinauto.controls.hwndwrapper import HwndWrapper  # type: ignore
            HwndWrapper(window.handle).move_window(x=frame.x, y=frame.y, width=frame.width, height=frame.height)
            return
        if self.is_linux:
            display = self._x_display()
            xwin = display.create_resource_object("window", window.handle)
            xwin.configure(x=frame.x, y=frame.y, width=frame.width, height=frame.height)
            display.sync()
            return
        if self.is_macos:
            self._ax_set_frame(window.handle, frame)
            return
        raise RuntimeError("Moving windows is not supported on this platform")

    # Context queries --------------------------------------------------

    def focused_window(self) -> Optional[WindowInfo]:
        if self.is_windows:
            return self._focused_window_windows()
        if self.is_macos:
            return self._focused_window_macos()
        if self.is_linux:
            return self._focused_window_linux()
        return None

    def pointer_position(self) -> Tuple[int, int]:
        x, y = self._pyautogui().position()
        return int(x), int(y)

    def screen_frame(self, window: Optional[WindowInfo] = None) -> Rect:
        monitors = list_monitors()
        if window is not None:
            cx = window.frame.x + window.frame.width // 2
            cy = window.frame.y + window.frame.height // 2
        else:
            cx, cy = self.pointer_position()
        monitor = monitor_for_point(monitors, cx, cy)
        assert monitor is not None
        return monitor

    def find_application(self, identifier: str) -> Optional[Any]:
        if not identifier:
            return None
        if self.is_windows:
            try:
                from pywinauto import Application  # type: ignore
                return Application(backend="uia").connect(title_re=f".*{re.escape(identifier)}.*", found_index=0)
            except Exception:
                return None
        if self.is_macos:
            from AppKit import NSWorkspace  # type: ignore
            for app in NSWorkspace.sharedWorkspace().runningApplications():
                if str(app.localizedName() or "") == identifier:
                    return app
            return None
        return None

    def activate_application(self, handle: Any) -> None:
        if self.is_windows:
            handle.top_window().set_focus()
            return
        if self.is_macos:
            from AppKit import NSApplicationActivateIgnoringOtherApps  # type: ignore
            handle.activateWithOptions_(NSApplicationActivateIgnoringOtherApps)
            return
        raise RuntimeError("Activating applications is not supported on this platform")

    # Internal helpers -------------------------------------------------

    def _focused_window_windows(self) -> Optional[WindowInfo]:
        from pywinauto import findwindows  # type: ignore
        element = findwindows.find_element(active_only=True)
        rect = element.rectangle
        title = str(element.name or "")
        return WindowInfo(
            app_name=app_name_from_title(title),
            title=title,
            frame=Rect(int(rect.left), int(rect.top), int(rect.width()), int(rect.height())),
            handle=element.handle,
        )

    def _focused_window_macos(self) -> Optional[WindowInfo]:
        app = self._frontmost_application()
        if app is None:
            return None
        name = str(app.localizedName() or "")
        try:
            element = self._ax_focused_window(int(app.processIdentifier()))
        except Exception as exc:
            element = None
            if not self._ax_warned:
                self._ax_warned = True
                self._emit(f"Accessibility unavailable: {exc}", "WARNING")
        if element is not None:
            frame = self._ax_frame(element)
            if frame is not None:
                title = self._ax_attribute(element, "kAXTitleAttribute")
                return WindowInfo(app_name=name, title=str(title or name), frame=frame, handle=element)
        # Only the screen is known; the window cannot be moved.
        frame = monitor_for_point(list_monitors(), *self.pointer_position())
        return WindowInfo(app_name=name, title=name, frame=frame, handle=None)

    @staticmethod
    def _frontmost_application():
        from AppKit import NSWorkspace  # type: ignore
        return NSWorkspace.sharedWorkspace().frontmostApplication()

    @staticmethod
    def _accessibility():
        import ApplicationServices  # type: ignore
        import Quartz  # type: ignore
        return ApplicationServices, Quartz

    def _ax_focused_window(self, pid: int) -> Any:
        ax, _ = self._accessibility()
        if not ax.AXIsProcessTrusted():
            raise RuntimeError("accessibility permission not granted")
        app_element = ax.AXUIElementCreateApplication(pid)
        return self._ax_attribute(app_element, "kAXFocusedWindowAttribute")

    def _ax_attribute(self, element: Any, attribute: str) -> Any:
        ax, _ = self._accessibility()
        err, value = ax.AXUIElementCopyAttributeValue(element, getattr(ax, attribute), None)
        if err != ax.kAXErrorSuccess:
            return None
        return value

    def _ax_frame(self, element: Any) -> Optional[Rect]:
        ax, _ = self._accessibility()
        position = self._ax_attribute(element, "kAXPositionAttribute")
        size = self._ax_attribute(element, "kAXSizeAttribute")
        if position is None or size is None:
            return None
        ok_pos, point = ax.AXValueGetValue(position, ax.kAXValueCGPointType, None)
        ok_size, extent = ax.AXValueGetValue(size, ax.kAXValueCGSizeType, None)
        if not (ok_pos and ok_size):
            return None
        return Rect(int(point.x), int(point.y), int(extent.width), int(extent.height))

    def _ax_set_frame(self, element: Any, frame: Rect) -> None:
        ax, quartz = self._accessibility()
        values = (
            (ax.kAXPositionAttribute, ax.AXValueCreate(ax.kAXValueCGPointType, quartz.CGPointMake(frame.x, frame.y))),
            (ax.kAXSizeAttribute, ax.AXValueCreate(ax.kAXValueCGSizeType, quartz.CGSizeMake(frame.width, frame.height))),
        )
        for attribute, value in values:
            err = ax.AXUIElementSetAttributeValue(element, attribute, value)
            if err != ax.kAXErrorSuccess:
                raise RuntimeError(f"Setting {attribute} failed (AX error {err})")

    def _focused_window_linux(self) -> Optional[WindowInfo]:
        from Xlib import X  # type: ignore
        display = self._x_display()
        root = display.screen().root
        prop = root.get_full_property(display.intern_atom("_NET_ACTIVE_WINDOW"), X.AnyPropertyType)
        if prop is None or not prop.value or not prop.value[0]:
            return None
        window_id = int(prop.value[0])
        xwin = display.create_resource_object("window", window_id)
        wm_class = xwin.get_wm_class() or ("", "")
        title = str(xwin.get_wm_name() or "")
        geometry = xwin.get_geometry()
        origin = xwin.translate_coords(root, 0, 0)
        return WindowInfo(
            app_name=str(wm_class[-1] or app_name_from_title(title)),
            title=title,
            frame=Rect(-int(origin.x), -int(origin.y), int(geometry.width), int(geometry.height)),
            handle=window_id,
        )

    def _keyboard_controller(self):
        if self._keyboard is None:
            from pynput.keyboard import Controller as KeyboardController, Key as KeyModule  # type: ignore
            self._keyboard = KeyboardController()
            self._key_mod = KeyModule
        return self._keyboard, self._key_mod

    def _mouse_controller(self):
        if self._mouse is None:
            from pynput.mouse import Controller as MouseController  # type: ignore
            self._mouse = MouseController()
        return self._mouse

    @staticmethod
    def _pyautogui():
        import pyautogui  # local import to avoid hard dep at import time
        # Configure pyautogui for safety
        pyautogui.FAILSAFE = True  # Move mouse to corner to stop
        pyautogui.PAUSE = 0.0
        return pyautogui

    def _x_display(self):
        if self._xdisplay is None:
            from Xlib import display  # type: ignore
            self._xdisplay = display.Display()
        return self._xdisplay

    def _emit(self, message: str, level: str = "INFO") -> None:
        if self._log:
            try:
                self._log(message, level)
            except Exception:
                pass
