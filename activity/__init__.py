"""
Activity package: keeps the desktop looking busy while the user is away.

Key parts
---------
- model:             configuration, automation state and small value types
- capabilities:      protocols for desktop input, context queries, timers, text
- timers:            owned timer registry + Tk backend
- self_event_filter: tells our own synthetic input apart from the user
- state_machine:     pause on user input, resume after the idle timeout
- scheduler:         random-interval, single-flight action loop
- actions/catalog:   weighted catalog of multi-step actions with reverts
- engine:            runner that drives one action's steps
- selector:          picks an action for the current context
- controller:        wires everything together
"""

from .catalog import ActionCatalog
from .controller import ActivityController
from .model import ActivityConfig, ActivityState, AutomationState, InputEvent, InputEventType, Rect, WindowInfo
from .timers import TkTimerBackend

__all__ = [
    "ActionCatalog",
    "ActivityConfig",
    "ActivityController",
    "ActivityState",
    "AutomationState",
    "InputEvent",
    "InputEventType",
    "Rect",
    "TkTimerBackend",
    "WindowInfo",
]
