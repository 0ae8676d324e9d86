"""
Timer bookkeeping for the activity core.

Every delayed callback the scheduler, the action runner or the pause/resume
machine creates goes through one ``TimerRegistry``. Each timer is tagged with
an owner so a state transition can cancel a whole group at once.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from .capabilities import TimerBackend


@dataclass
class TimerHandle:
    """Registry-side record of one pending callback."""
    timer_id: int
    owner: str
    deadline: float
    backend_handle: Any = None


class TimerRegistry:
    """Owns every pending timer of the core, keyed by owner."""

    def __init__(self, backend: TimerBackend, clock: Callable[[], float]) -> None:
        self._backend = backend
        self._clock = clock
        self._ids = itertools.count(1)
        self._pending: Dict[int, TimerHandle] = {}

    def now(self) -> float:
        return self._clock()

    def schedule(self, owner: str, seconds: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``seconds`` unless cancelled first."""
        delay = max(0.0, float(seconds))
        handle = TimerHandle(timer_id=next(self._ids), owner=owner, deadline=self._clock() + delay)
        self._pending[handle.timer_id] = handle

        def fire() -> None:
            # A cancelled timer may still be delivered by a backend that raced us.
            if self._pending.pop(handle.timer_id, None) is None:
                return
            callback()

        handle.backend_handle = self._backend.after(delay, fire)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        """Cancel one timer; unknown, fired or already cancelled handles are ignored."""
        if handle is None:
            return
        if self._pending.pop(handle.timer_id, None) is None:
            return
        self._backend.cancel(handle.backend_handle)

    def cancel_owner(self, owner: str) -> int:
        """Cancel every pending timer of ``owner`` and return how many were dropped."""
        return self.cancel_owners([owner])

    def cancel_owners(self, owners: Iterable[str]) -> int:
        wanted = set(owners)
        doomed = [h for h in self._pending.values() if h.owner in wanted]
        for handle in doomed:
            self.cancel(handle)
        return len(doomed)

    def cancel_all(self) -> int:
        doomed = list(self._pending.values())
        for handle in doomed:
            self.cancel(handle)
        return len(doomed)

    def is_pending(self, handle: Optional[TimerHandle]) -> bool:
        return handle is not None and handle.timer_id in self._pending

    def pending(self, owner: Optional[str] = None) -> List[TimerHandle]:
        return [h for h in self._pending.values() if owner is None or h.owner == owner]

    def remaining(self, handle: Optional[TimerHandle]) -> float:
        """Seconds until ``handle`` fires, or 0 if it is not pending."""
        if not self.is_pending(handle):
            return 0.0
        return max(0.0, handle.deadline - self._clock())


class TkTimerBackend:
    """Timer backend on top of ``Tk.after`` so every callback runs on the UI thread."""

    def __init__(self, root) -> None:
        self._root = root

    def after(self, seconds: float, callback: Callable[[], None]) -> str:
        return self._root.after(int(round(seconds * 1000)), callback)

    def cancel(self, handle: Any) -> None:
        if handle is None:
            return
        try:
            self._root.after_cancel(handle)
        except Exception:
            # Tk raises once the interpreter is gone; cancelling is best-effort then.
            pass
