"""Transient on-screen notices for automation state changes."""

from __future__ import annotations

import tkinter as tk
from typing import List, Optional


class NotificationOverlay:
    """Shows a small topmost toast near the top of the screen and removes it after a while."""

    def __init__(self, root: tk.Tk, duration_ms: int = 1500) -> None:
        self._root = root
        self._duration_ms = duration_ms
        self._enabled = True
        self._windows: List[tk.Toplevel] = []
        self._hide_job: Optional[str] = None

    def toggle(self, enabled: bool) -> None:
        self._enabled = enabled
        if not enabled:
            self._clear()

    def show(self, message: str) -> None:
        """Replace any visible toast with ``message``."""
        if not self._enabled:
            return
        self._clear()

        overlay = tk.Toplevel(self._root)
        overlay.overrideredirect(True)
        overlay.attributes("-topmost", True)
        overlay.attributes("-alpha", 0.85)
        overlay.configure(bg="#222222")

        label = tk.Label(
            overlay,
            text=message,
            font=("Arial", 12, "bold"),
            fg="white",
            bg="#222222",
        )
        label.pack(ipadx=12, ipady=6)

        overlay.update_idletasks()
        width = overlay.winfo_reqwidth()
        x = max(0, (overlay.winfo_screenwidth() - width) // 2)
        overlay.geometry(f"+{x}+40")
        self._windows.append(overlay)
        self._hide_job = self._root.after(self._duration_ms, self._clear)

    def _clear(self) -> None:
        if self._hide_job is not None:
            try:
                self._root.after_cancel(self._hide_job)
            except Exception:
                pass
            self._hide_job = None
        while self._windows:
            window = self._windows.pop()
            try:
                window.destroy()
            except Exception:
                pass
