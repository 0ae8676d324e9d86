import unittest
from types import SimpleNamespace
from unittest import mock

from activity.model import Rect, WindowInfo
from desktop_backend import (
    DesktopBackend,
    app_name_from_title,
    escape_send_keys,
    key_name_to_pynput,
    monitor_for_point,
)


KEYS = SimpleNamespace(esc="<esc>", cmd="<cmd>", ctrl="<ctrl>", alt="<alt>", page_down="<pgdn>", up="<up>")


class KeyNameTests(unittest.TestCase):
    def test_single_characters_pass_through(self) -> None:
        self.assertEqual(key_name_to_pynput("f", KEYS), "f")

    def test_aliases(self) -> None:
        self.assertEqual(key_name_to_pynput("escape", KEYS), "<esc>")
        self.assertEqual(key_name_to_pynput("Command", KEYS), "<cmd>")
        self.assertEqual(key_name_to_pynput("option", KEYS), "<alt>")
        self.assertEqual(key_name_to_pynput("PageDown", KEYS), "<pgdn>")
        self.assertEqual(key_name_to_pynput("up", KEYS), "<up>")

    def test_unknown_key(self) -> None:
        with self.assertRaises(ValueError):
            key_name_to_pynput("hyper", KEYS)


class TextHelperTests(unittest.TestCase):
    def test_send_keys_escaping(self) -> None:
        self.assertEqual(escape_send_keys("a+b (c)"), "a{+}b {(}c{)}")
        self.assertEqual(escape_send_keys("plain text"), "plain text")

    def test_app_name_from_title(self) -> None:
        self.assertEqual(app_name_from_title("main.py - project - Visual Studio Code"), "Visual Studio Code")
        self.assertEqual(app_name_from_title("Inbox | Outlook"), "Outlook")
        self.assertEqual(app_name_from_title("Notepad"), "Notepad")
        self.assertEqual(app_name_from_title(""), "")


class MonitorTests(unittest.TestCase):
    MONITORS = [Rect(0, 0, 1920, 1080), Rect(1920, 0, 1280, 1024)]

    def test_monitor_containing_point(self) -> None:
        self.assertEqual(monitor_for_point(self.MONITORS, 2000, 10), self.MONITORS[1])
        self.assertEqual(monitor_for_point(self.MONITORS, 5, 5), self.MONITORS[0])

    def test_fallback_to_first_monitor(self) -> None:
        self.assertEqual(monitor_for_point(self.MONITORS, -50, -50), self.MONITORS[0])
        self.assertIsNone(monitor_for_point([], 0, 0))


class BackendGuardTests(unittest.TestCase):
    def test_window_without_handle_cannot_be_moved(self) -> None:
        backend = DesktopBackend(platform="darwin")
        window = WindowInfo("Notes", "Notes", Rect(0, 0, 100, 100), handle=None)
        with self.assertRaises(RuntimeError):
            backend.set_window_frame(window, Rect(10, 10, 50, 50))

    def test_unknown_platform(self) -> None:
        backend = DesktopBackend(platform="sunos5")
        self.assertIsNone(backend.focused_window())
        self.assertIsNone(backend.find_application("Code"))
        self.assertIsNone(backend.find_application(""))
        with self.assertRaises(RuntimeError):
            backend.activate_application(object())

class FakeAccessibility:
    """Stands in for the ApplicationServices and Quartz modules."""

    kAXErrorSuccess = 0
    kAXFocusedWindowAttribute = "AXFocusedWindow"
    kAXPositionAttribute = "AXPosition"
    kAXSizeAttribute = "AXSize"
    kAXTitleAttribute = "AXTitle"
    kAXValueCGPointType = 1
    kAXValueCGSizeType = 2

    def __init__(self, trusted: bool = True, set_error: int = 0) -> None:
        self.trusted = trusted
        self.set_error = set_error
        self.window = object()
        self.attributes = {
            "AXFocusedWindow": self.window,
            "AXPosition": ("point", SimpleNamespace(x=40.0, y=25.0)),
            "AXSize": ("size", SimpleNamespace(width=800.0, height=600.0)),
            "AXTitle": "notes.md - Code",
        }
        self.assigned = []

    def AXIsProcessTrusted(self):
        return self.trusted

    def AXUIElementCreateApplication(self, pid):
        return ("app", pid)

    def AXUIElementCopyAttributeValue(self, element, attribute, _):
        if attribute not in self.attributes:
            return -25212, None
        return 0, self.attributes[attribute]

    def AXValueGetValue(self, value, value_type, _):
        return True, value[1]

    def AXValueCreate(self, value_type, value):
        return value

    def AXUIElementSetAttributeValue(self, element, attribute, value):
        self.assigned.append((element, attribute, value))
        return self.set_error

    @staticmethod
    def CGPointMake(x, y):
        return (x, y)

    @staticmethod
    def CGSizeMake(width, height):
        return (width, height)


class MacWindowTests(unittest.TestCase):
    def _backend(self, fake: FakeAccessibility) -> DesktopBackend:
        backend = DesktopBackend(platform="darwin", log=lambda msg, level="INFO": self.logs.append((msg, level)))
        app = SimpleNamespace(localizedName=lambda: "Code", processIdentifier=lambda: 321)
        self.logs = []
        self._patches = [
            mock.patch.object(DesktopBackend, "_frontmost_application", return_value=app),
            mock.patch.object(DesktopBackend, "_accessibility", return_value=(fake, fake)),
            mock.patch.object(DesktopBackend, "pointer_position", return_value=(10, 10)),
            mock.patch("desktop_backend.list_monitors", return_value=[Rect(0, 0, 1440, 900)]),
        ]
        for patcher in self._patches:
            patcher.start()
            self.addCleanup(patcher.stop)
        return backend

    def test_focused_window_has_accessibility_frame_and_handle(self) -> None:
        fake = FakeAccessibility()
        window = self._backend(fake).focused_window()
        self.assertEqual(window.app_name, "Code")
        self.assertEqual(window.title, "notes.md - Code")
        self.assertEqual(window.frame, Rect(40, 25, 800, 600))
        self.assertIs(window.handle, fake.window)

    def test_focused_window_is_moved_through_accessibility(self) -> None:
        fake = FakeAccessibility()
        backend = self._backend(fake)
        window = backend.focused_window()
        backend.set_window_frame(window, Rect(100, 50, 640, 480))
        self.assertEqual(fake.assigned, [
            (fake.window, "AXPosition", (100, 50)),
            (fake.window, "AXSize", (640, 480)),
        ])

    def test_rejected_frame_change_raises(self) -> None:
        fake = FakeAccessibility(set_error=-25205)
        backend = self._backend(fake)
        with self.assertRaises(RuntimeError):
            backend.set_window_frame(backend.focused_window(), Rect(0, 0, 300, 300))

    def test_without_permission_the_screen_is_reported_without_handle(self) -> None:
        backend = self._backend(FakeAccessibility(trusted=False))
        first = backend.focused_window()
        backend.focused_window()
        self.assertEqual(first.frame, Rect(0, 0, 1440, 900))
        self.assertIsNone(first.handle)
        # Warned once, not on every query.
        self.assertEqual(len([m for m, level in self.logs if level == "WARNING"]), 1)

    def test_no_focused_window(self) -> None:
        fake = FakeAccessibility()
        del fake.attributes["AXFocusedWindow"]
        window = self._backend(fake).focused_window()
        self.assertIsNone(window.handle)
        self.assertEqual(window.title, "Code")



if __name__ == "__main__":
    unittest.main()
