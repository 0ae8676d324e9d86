"""
Graphical user interface for the Keep Active application.

Key capabilities
----------------
- Show whether automation is active, paused by the user or stopped
- Count down to the automatic resume after user input
- Start/stop and "trigger now" buttons plus global hotkeys
- Persist user preferences (idle timeout, intervals, flow mode, hotkeys, ...)
- Log pane fed by the StatusLogger, with copy and export
"""

from __future__ import annotations

import os
import sys
import tkinter as tk
from pathlib import Path
from tkinter import ttk, messagebox, scrolledtext
from typing import Optional

from activity import ActionCatalog, ActivityController, ActivityState, TkTimerBackend
from activity.model import FLOW_MODES, ActivityConfig
from desktop_backend import DesktopBackend
from hotkey_manager import HotkeyManager
from input_monitor import InputMonitor
from logger import LogEntry, StatusLogger
from models import ApplicationSettings
from notification_overlay import NotificationOverlay
from settings_manager import SettingsManager
from text_corpus import CorpusTextSource


class KeepActiveGUI:
    """Tkinter based GUI that orchestrates all application services."""

    STATUS_POLL_MS = 250
    DEFAULT_WINDOW_SIZE = (560, 640)

    def __init__(self, root: tk.Tk, settings_path: Optional[Path] = None, auto_start: Optional[bool] = None):
        self.root = root
        self.root.title("Keep Active")
        width, height = self.DEFAULT_WINDOW_SIZE
        self.root.geometry(f"{width}x{height}")
        self.root.minsize(480, 520)

        self.settings_manager = SettingsManager(settings_path)
        loaded = self.settings_manager.load_validated()
        self.settings: ApplicationSettings = loaded.settings

        self.style = ttk.Style()
        self._configure_styles()

        # Runtime state --------------------------------------------------
        self.logger = StatusLogger()
        self.hotkey_manager = HotkeyManager(
            toggle_hotkey=self.settings.toggle_hotkey,
            trigger_hotkey=self.settings.trigger_hotkey,
            log=self._log_message,
        )
        self.overlay = NotificationOverlay(root)
        self.input_monitor = InputMonitor(root)
        self.desktop = DesktopBackend(log=self._log_message)
        self.controller: Optional[ActivityController] = None

        self._persist_suspended = True
        self.status_job: Optional[str] = None

        # Tk variables ---------------------------------------------------
        self.state_var = tk.StringVar(value="Gestoppt")
        self.countdown_var = tk.StringVar(value="")
        self.status_var = tk.StringVar(value="Status: Bereit")
        self.idle_seconds_var = tk.DoubleVar(value=self.settings.idle_seconds)
        self.min_interval_var = tk.DoubleVar(value=self.settings.min_interval)
        self.max_interval_var = tk.DoubleVar(value=self.settings.max_interval)
        self.flow_mode_var = tk.StringVar(value=self.settings.flow_mode)
        self.enable_typing_var = tk.BooleanVar(value=self.settings.enable_typing)
        self.enable_global_ui_var = tk.BooleanVar(value=self.settings.enable_global_ui)
        self.reverse_scrolls_var = tk.BooleanVar(value=self.settings.reverse_scrolls)
        self.notifications_var = tk.BooleanVar(value=self.settings.notifications_enabled)
        self.auto_start_var = tk.BooleanVar(value=self.settings.auto_start)
        self.toggle_hotkey_var = tk.StringVar(value=self.settings.toggle_hotkey)
        self.trigger_hotkey_var = tk.StringVar(value=self.settings.trigger_hotkey)

        # UI --------------------------------------------------------------
        self._build_ui()
        self.logger.on_entry(self._append_log_line)
        self.overlay.toggle(self.notifications_var.get())

        # Platform-specific hints (Linux/Wayland, missing tools)
        self._check_platform_hints()

        # Services -------------------------------------------------------
        if loaded.rejected:
            self._log_message(
                f"Ungültige Einstellungen, Standardwerte werden verwendet: {loaded.rejected} "
                f"(Sicherung: {self.settings_manager.backup_path})",
                level="ERROR",
            )
        self._create_controller(loaded.config, loaded.catalog)
        self._start_input_monitor()
        self._setup_hotkeys()
        self._start_status_updates()
        if self.settings.auto_start if auto_start is None else auto_start:
            self.controller.start()

        self._persist_suspended = False
        self.root.protocol("WM_DELETE_WINDOW", self._on_closing)

    def _configure_styles(self) -> None:
        try:
            self.style.theme_use("clam")
        except tk.TclError:
            pass
        self.style.configure("Header.TLabel", font=("Segoe UI", 16, "bold"))
        self.style.configure("State.TLabel", font=("Segoe UI", 13, "bold"))
        self.style.configure("Hint.TLabel", foreground="#666666")
        self.style.configure("Accent.TButton", font=("Segoe UI", 10, "bold"))
        self.style.configure("Ghost.TButton", relief=tk.FLAT)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)

        container = ttk.Frame(self.root, padding=14)
        container.grid(row=0, column=0, sticky="nsew")
        container.columnconfigure(0, weight=1)
        container.rowconfigure(2, weight=1)

        self._build_control_section(container)
        self._build_options_section(container)
        self._build_status_section(container)

    def _build_control_section(self, parent: ttk.Frame) -> None:
        frame = ttk.Frame(parent)
        frame.grid(row=0, column=0, sticky="ew")
        frame.columnconfigure(0, weight=1)

        ttk.Label(frame, text="Keep Active", style="Header.TLabel").grid(row=0, column=0, sticky="w")
        ttk.Label(frame, textvariable=self.state_var, style="State.TLabel").grid(row=1, column=0, sticky="w", pady=(6, 0))
        ttk.Label(frame, textvariable=self.countdown_var, style="Hint.TLabel").grid(row=2, column=0, sticky="w")

        button_bar = ttk.Frame(frame)
        button_bar.grid(row=0, column=1, rowspan=3, sticky="e")
        self.toggle_button = ttk.Button(button_bar, text="Starten", command=self._toggle, style="Accent.TButton")
        self.toggle_button.grid(row=0, column=0, padx=(0, 6))
        ttk.Button(button_bar, text="Jetzt ausführen", command=self._trigger_now).grid(row=0, column=1)

    def _build_options_section(self, parent: ttk.Frame) -> None:
        frame = ttk.LabelFrame(parent, text="Optionen & Hotkeys", padding=12)
        frame.grid(row=1, column=0, sticky="ew", pady=(12, 0))
        frame.columnconfigure(1, weight=1)
        frame.columnconfigure(3, weight=1)

        ttk.Label(frame, text="Leerlauf bis Fortsetzen (s):").grid(row=0, column=0, sticky="w")
        ttk.Spinbox(frame, from_=1, to=600, increment=1, textvariable=self.idle_seconds_var, width=7).grid(
            row=0, column=1, sticky="w", padx=(8, 16)
        )
        ttk.Label(frame, text="Ablauf:").grid(row=0, column=2, sticky="w")
        ttk.Combobox(frame, textvariable=self.flow_mode_var, values=FLOW_MODES, state="readonly", width=11).grid(
            row=0, column=3, sticky="w", padx=(8, 0)
        )

        ttk.Label(frame, text="Intervall min (s):").grid(row=1, column=0, sticky="w", pady=(6, 0))
        ttk.Spinbox(frame, from_=0, to=600, increment=0.5, textvariable=self.min_interval_var, width=7).grid(
            row=1, column=1, sticky="w", padx=(8, 16), pady=(6, 0)
        )
        ttk.Label(frame, text="Intervall max (s):").grid(row=1, column=2, sticky="w", pady=(6, 0))
        ttk.Spinbox(frame, from_=0, to=600, increment=0.5, textvariable=self.max_interval_var, width=7).grid(
            row=1, column=3, sticky="w", padx=(8, 0), pady=(6, 0)
        )

        checks = ttk.Frame(frame)
        checks.grid(row=2, column=0, columnspan=4, sticky="w", pady=(8, 0))
        ttk.Checkbutton(checks, text="Tippen erlauben", variable=self.enable_typing_var).grid(row=0, column=0, sticky="w")
        ttk.Checkbutton(checks, text="System-UI (Übersicht, Suche)", variable=self.enable_global_ui_var).grid(
            row=0, column=1, sticky="w", padx=(12, 0)
        )
        ttk.Checkbutton(checks, text="Scrollen zurücksetzen", variable=self.reverse_scrolls_var).grid(
            row=1, column=0, sticky="w"
        )
        ttk.Checkbutton(
            checks,
            text="Einblendungen anzeigen",
            variable=self.notifications_var,
            command=self._on_notifications_toggle,
        ).grid(row=1, column=1, sticky="w", padx=(12, 0))
        ttk.Checkbutton(
            checks,
            text="Beim Start automatisch aktivieren",
            variable=self.auto_start_var,
            command=self._persist_settings,
        ).grid(row=2, column=0, sticky="w")

        ttk.Button(frame, text="Optionen anwenden", command=self._apply_options, style="Accent.TButton").grid(
            row=3, column=3, sticky="e", pady=(8, 0)
        )

        ttk.Separator(frame, orient=tk.HORIZONTAL).grid(row=4, column=0, columnspan=4, sticky="ew", pady=(12, 10))

        ttk.Label(frame, text="Start/Stopp-Hotkey:").grid(row=5, column=0, sticky="w")
        ttk.Entry(frame, textvariable=self.toggle_hotkey_var, width=18).grid(row=5, column=1, sticky="ew", padx=(8, 16))
        ttk.Label(frame, text="Sofort-Hotkey:").grid(row=6, column=0, sticky="w", pady=(6, 0))
        ttk.Entry(frame, textvariable=self.trigger_hotkey_var, width=18).grid(
            row=6, column=1, sticky="ew", padx=(8, 16), pady=(6, 0)
        )
        ttk.Button(frame, text="Hotkeys anwenden", command=self._apply_hotkeys).grid(
            row=5, column=3, rowspan=2, sticky="e"
        )
        ttk.Label(
            frame,
            text="Tipp: Jede eigene Maus- oder Tastatureingabe pausiert die Automatisierung.",
            style="Hint.TLabel",
            wraplength=440,
        ).grid(row=7, column=0, columnspan=4, sticky="w", pady=(10, 0))

    def _build_status_section(self, parent: ttk.Frame) -> None:
        frame = ttk.LabelFrame(parent, text="Status & Log", padding=12)
        frame.grid(row=2, column=0, sticky="nsew", pady=(12, 0))
        frame.columnconfigure(0, weight=1)
        frame.rowconfigure(1, weight=1)

        ttk.Label(frame, textvariable=self.status_var).grid(row=0, column=0, sticky="w")

        self.log_text = scrolledtext.ScrolledText(frame, height=10, state=tk.DISABLED, wrap=tk.WORD)
        self.log_text.grid(row=1, column=0, sticky="nsew", pady=(8, 0))

        button_bar = ttk.Frame(frame)
        button_bar.grid(row=2, column=0, sticky="e", pady=(10, 0))

        ttk.Button(
            button_bar,
            text="Log kopieren",
            command=self._copy_logs_to_clipboard,
            style="Ghost.TButton",
        ).grid(row=0, column=0, padx=(0, 6))

        ttk.Button(
            button_bar,
            text="Log leeren",
            command=self._clear_log_output,
            style="Ghost.TButton",
        ).grid(row=0, column=1, padx=(0, 6))

        ttk.Button(
            button_bar,
            text="Log exportieren",
            command=self._export_logs,
            style="Ghost.TButton",
        ).grid(row=0, column=2)

    # ------------------------------------------------------------------
    # Activity controller
    # ------------------------------------------------------------------
    def _create_controller(self, config: ActivityConfig, catalog: ActionCatalog) -> None:
        controller = ActivityController(
            config=config,
            desktop=self.desktop,
            timer_backend=TkTimerBackend(self.root),
            text_source=CorpusTextSource(),
            catalog=catalog,
            log=self._log_message,
        )
        controller.on_transition(self._on_transition)
        self.controller = controller
        self._refresh_state_label()

    def _apply_options(self) -> None:
        try:
            self.settings.idle_seconds = float(self.idle_seconds_var.get())
            self.settings.min_interval = float(self.min_interval_var.get())
            self.settings.max_interval = float(self.max_interval_var.get())
        except (tk.TclError, ValueError):
            messagebox.showerror("Optionen", "Bitte gültige Zahlen eingeben.")
            return
        self.settings.flow_mode = self.flow_mode_var.get()
        self.settings.enable_typing = bool(self.enable_typing_var.get())
        self.settings.enable_global_ui = bool(self.enable_global_ui_var.get())
        self.settings.reverse_scrolls = bool(self.reverse_scrolls_var.get())

        try:
            config, catalog = self.settings_manager.validate(self.settings)
        except ValueError as exc:
            messagebox.showerror("Optionen", str(exc))
            return

        was_running = self.controller is not None and self.controller.state_machine.is_running
        if self.controller is not None:
            self.controller.shutdown()
        self._create_controller(config, catalog)
        if was_running:
            self.controller.start()
        self._log_message("Optionen übernommen.")
        self._persist_settings()

    def _toggle(self) -> None:
        if self.controller is not None:
            self.controller.toggle()
            self._refresh_state_label()

    def _trigger_now(self) -> None:
        if self.controller is not None:
            self.controller.trigger_now()

    def _on_transition(self, state: ActivityState, message: str) -> None:
        self._refresh_state_label()
        self.overlay.show(message)

    def _refresh_state_label(self) -> None:
        machine = self.controller.state_machine if self.controller else None
        if machine is None or not machine.is_running:
            self.state_var.set("Gestoppt")
            self.toggle_button.configure(text="Starten")
        elif machine.is_paused_by_user:
            self.state_var.set("Pausiert (Benutzereingabe)")
            self.toggle_button.configure(text="Stoppen")
        else:
            self.state_var.set("Aktiv")
            self.toggle_button.configure(text="Stoppen")

    def _start_status_updates(self) -> None:
        def poll() -> None:
            try:
                controller = self.controller
                if controller is None:
                    self.countdown_var.set("")
                elif controller.state_machine.resume_pending:
                    remaining = controller.state_machine.seconds_until_resume()
                    self.countdown_var.set(f"Fortsetzen in {remaining:.1f} s")
                elif controller.state is ActivityState.ACTIVE:
                    if controller.scheduler.in_flight:
                        self.countdown_var.set("Aktion läuft …")
                    else:
                        self.countdown_var.set(f"Nächste Aktion in {controller.scheduler.seconds_until_next():.1f} s")
                else:
                    self.countdown_var.set("")
            except Exception:
                self.countdown_var.set("")
            self.status_job = self.root.after(self.STATUS_POLL_MS, poll)

        poll()

    # ------------------------------------------------------------------
    # Input monitor and hotkeys
    # ------------------------------------------------------------------
    def _start_input_monitor(self) -> None:
        started = self.input_monitor.start(on_event=self._on_input_event, on_error=self._on_monitor_error)
        if not started:
            self._log_message(
                "Eingabeüberwachung nicht verfügbar – Pausieren bei Benutzereingaben ist deaktiviert.",
                level="WARNING",
            )

    def _on_input_event(self, event) -> None:
        if self.controller is not None:
            self.controller.handle_input_event(event)

    def _on_monitor_error(self, exc: Exception) -> None:  # pragma: no cover - platform specific
        self._log_message(f"Eingabeüberwachung fehlgeschlagen: {exc}", level="ERROR")

    def _setup_hotkeys(self) -> None:
        self.hotkey_manager.register_toggle_callback(self._handle_hotkey_toggle)
        self.hotkey_manager.register_trigger_callback(self._handle_hotkey_trigger)
        ok = self.hotkey_manager.enable_hotkeys()
        if not ok:
            self._log_message("Hotkeys konnten nicht global registriert werden. Prüfen Sie Systemberechtigungen.", level="WARNING")

    def _apply_hotkeys(self) -> None:
        toggle = self.toggle_hotkey_var.get().strip() or "ctrl+alt+cmd+s"
        trigger = self.trigger_hotkey_var.get().strip() or "ctrl+alt+cmd+t"
        if self.hotkey_manager.update_hotkeys(toggle, trigger):
            self._log_message(f"Hotkeys aktualisiert: Start/Stopp={toggle}, Sofort={trigger}")
            self._persist_settings()
        else:
            messagebox.showwarning("Hotkeys", "Hotkeys konnten nicht aktualisiert werden.")

    def _handle_hotkey_toggle(self) -> None:
        self.root.after(0, self._toggle)

    def _handle_hotkey_trigger(self) -> None:
        self.root.after(0, self._trigger_now)

    def _on_notifications_toggle(self) -> None:
        self.overlay.toggle(self.notifications_var.get())
        self._persist_settings()

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    def _log_message(self, message: str, level: str = "INFO") -> None:
        self.logger.log(message, level)
        self.status_var.set(f"Status: {message}")

    def _append_log_line(self, entry: LogEntry) -> None:
        self.log_text.configure(state=tk.NORMAL)
        self.log_text.insert(tk.END, str(entry) + "\n")
        self.log_text.see(tk.END)
        self.log_text.configure(state=tk.DISABLED)

    def _clear_log_output(self) -> None:
        self.log_text.configure(state=tk.NORMAL)
        self.log_text.delete("1.0", tk.END)
        self.log_text.configure(state=tk.DISABLED)
        self.status_var.set("Status: Loganzeige gelöscht.")

    def _copy_logs_to_clipboard(self) -> None:
        self.log_text.configure(state=tk.NORMAL)
        content = self.log_text.get("1.0", tk.END).strip()
        self.log_text.configure(state=tk.DISABLED)
        if not content:
            self.status_var.set("Status: Log ist leer.")
            return
        self.root.clipboard_clear()
        self.root.clipboard_append(content)
        self.status_var.set("Status: Log in Zwischenablage.")

    def _export_logs(self) -> None:
        from tkinter import filedialog

        path = filedialog.asksaveasfilename(
            defaultextension=".txt",
            filetypes=[("Textdateien", "*.txt"), ("Alle Dateien", "*.*")],
        )
        if not path:
            return
        if self.logger.export_logs_to_file(path):
            messagebox.showinfo("Export", "Log erfolgreich exportiert.")
        else:
            messagebox.showerror("Export", "Log konnte nicht exportiert werden.")

    # ------------------------------------------------------------------
    # Persistence and shutdown
    # ------------------------------------------------------------------
    def _persist_settings(self) -> None:
        if self._persist_suspended:
            return
        self.settings.notifications_enabled = bool(self.notifications_var.get())
        self.settings.auto_start = bool(self.auto_start_var.get())
        self.settings.toggle_hotkey = self.toggle_hotkey_var.get().strip() or "ctrl+alt+cmd+s"
        self.settings.trigger_hotkey = self.trigger_hotkey_var.get().strip() or "ctrl+alt+cmd+t"
        self.settings_manager.save(self.settings)

    def _on_closing(self) -> None:
        self.hotkey_manager.disable_hotkeys()
        self.input_monitor.stop()
        if self.controller is not None:
            self.controller.shutdown()
        self.overlay.toggle(False)
        if self.status_job:
            self.root.after_cancel(self.status_job)
        self._persist_settings()
        self.root.destroy()

    # ------------------------------------------------------------------
    # Platform checks
    # ------------------------------------------------------------------
    def _check_platform_hints(self) -> None:
        try:
            msgs = []
            if sys.platform.startswith("linux"):
                session = (os.environ.get("XDG_SESSION_TYPE", "").strip().lower())
                if session == "wayland":
                    msgs.append("Linux/Wayland erkannt – Eingabeüberwachung und Fenstersteuerung sind ggf. eingeschränkt. Xorg-Sitzung empfohlen.")
                # python-xlib for pynput and window queries
                try:
                    import Xlib  # type: ignore
                    _ = Xlib  # silence unused
                except Exception:
                    msgs.append("Python-Xlib fehlt – installieren Sie 'python-xlib'.")
            elif sys.platform == "darwin":
                msgs.append("macOS: Bedienungshilfen- und Eingabeüberwachungs-Rechte für Terminal/Python erforderlich.")
            for m in msgs:
                self._log_message(m, level="WARNING")
        except Exception:
            # Never break startup because of environment checks
            pass
