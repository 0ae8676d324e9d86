"""
Status Logger - keeps the log history and the current status of Keep Active.

The activity core reports through a plain ``log(message, level)`` callback;
``StatusLogger.log`` is that callback.
"""

from datetime import datetime
from typing import Callable, List, Optional
from dataclasses import dataclass


LEVELS = ("INFO", "WARNING", "ERROR")


@dataclass
class LogEntry:
    """A single log line."""
    timestamp: datetime
    message: str
    level: str = "INFO"

    def __str__(self) -> str:
        time_str = self.timestamp.strftime("%H:%M:%S")
        return f"[{time_str}] {self.level}: {self.message}"


class StatusLogger:
    """
    Bounded in-memory log with a current status line.

    Listeners registered with ``on_entry`` see every new entry (the GUI log
    pane uses this).
    """

    def __init__(self, max_entries: int = 200):
        """
        Initialize the logger.

        Args:
            max_entries: Maximum number of log entries to keep in memory
        """
        self._log_entries: List[LogEntry] = []
        self._max_entries = max_entries
        self._current_status = "Ready"
        self._listeners: List[Callable[[LogEntry], None]] = []

    def on_entry(self, callback: Callable[[LogEntry], None]) -> None:
        self._listeners.append(callback)

    def log(self, message: str, level: str = "INFO") -> None:
        """Callback signature shared with the activity core."""
        level = str(level or "INFO").upper()
        if level not in LEVELS:
            level = "INFO"
        self._add_entry(message, level)

    def log_info(self, message: str) -> None:
        self._add_entry(message, "INFO")

    def log_warning(self, message: str) -> None:
        self._add_entry(message, "WARNING")

    def log_error(self, message: str) -> None:
        self._add_entry(message, "ERROR")

    def update_status(self, status: str) -> None:
        """
        Update the current status.

        Args:
            status: The new status message
        """
        self._current_status = status
        self.log_info(status)

    def get_current_status(self) -> str:
        return self._current_status

    def get_recent_logs(self, count: int = 10) -> List[LogEntry]:
        """
        Get the most recent log entries.

        Args:
            count: Number of recent entries to return
        """
        return self._log_entries[-count:]

    def get_all_logs(self, level: Optional[str] = None) -> List[LogEntry]:
        """Returns all log entries, optionally only those of one level."""
        if level is None:
            return self._log_entries.copy()
        return [e for e in self._log_entries if e.level == level.upper()]

    def clear_logs(self) -> None:
        self._log_entries.clear()
        self.log_info("Log history cleared")

    def _add_entry(self, message: str, level: str) -> None:
        entry = LogEntry(
            timestamp=datetime.now(),
            message=message,
            level=level
        )

        self._log_entries.append(entry)

        # Trim old entries if we exceed max
        if len(self._log_entries) > self._max_entries:
            self._log_entries = self._log_entries[-self._max_entries:]

        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception:
                # A broken view must not break logging.
                pass

    def export_logs_to_file(self, filepath: str) -> bool:
        """
        Export all logs to a text file.

        Args:
            filepath: Path where the log file should be saved

        Returns:
            bool: True if export was successful
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                f.write("Keep Active - Log Export\n")
                f.write(f"Generated: {datetime.now()}\n")
                f.write("=" * 50 + "\n\n")

                for entry in self._log_entries:
                    time_str = entry.timestamp.strftime("%Y-%m-%d %H:%M:%S")
                    f.write(f"[{time_str}] {entry.level}: {entry.message}\n")

            return True
        except Exception as e:
            print(f"Failed to export logs: {e}")
            return False
