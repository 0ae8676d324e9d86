"""
Main entry point for the Keep Active application.
"""

import argparse
import sys
import tkinter as tk
from pathlib import Path
from typing import Optional, Sequence


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep the desktop active while you are away.")
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Settings file to use (default: $KEEP_ACTIVE_SETTINGS or settings.json next to the app).",
    )
    parser.add_argument(
        "--no-autostart",
        action="store_true",
        help="Open the window without starting the automation.",
    )
    return parser.parse_args(argv)


def _enable_high_dpi_awareness() -> None:
    if not sys.platform.startswith("win"):
        return

    try:
        import ctypes

        try:
            ctypes.windll.shcore.SetProcessDpiAwareness(2)
        except AttributeError:
            ctypes.windll.user32.SetProcessDPIAware()
    except Exception:
        # Tk falls back to bitmap scaling.
        pass


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    from gui import KeepActiveGUI

    _enable_high_dpi_awareness()
    root = tk.Tk()
    KeepActiveGUI(
        root,
        settings_path=args.settings,
        auto_start=False if args.no_autostart else None,
    )
    root.mainloop()


if __name__ == "__main__":
    main()
