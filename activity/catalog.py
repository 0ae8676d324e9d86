"""
Action catalog data model: weighted entries, weighted choice and the fixed
sequential flow.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .actions import ActionError, BaseAction, action_from_name
from .model import ActivityConfig, AutomationState


# Declared order matters: weighted choice walks entries in this order.
DEFAULT_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("typing", 45),
    ("scroll", 25),
    ("app_switch", 10),
    ("pointer_glide", 8),
    ("global_ui", 4),
    ("window_resize", 3),
    ("search_and_type", 2),
    ("select_copy", 1),
    ("burst_scroll", 2),
    ("tab_switch", 0),
)

SEQUENTIAL_FLOW: Tuple[str, ...] = (
    "typing",
    "window_resize",
    "search_and_type",
    "tab_switch",
    "pointer_glide",
)


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    weight: float
    action: BaseAction = field(compare=False)


def weighted_choice(entries: Sequence[CatalogEntry], rng: random.Random) -> Optional[CatalogEntry]:
    """Pick the first entry whose cumulative weight reaches a roll in (0, total]."""
    total = sum(e.weight for e in entries)
    if total <= 0:
        return None
    roll = (1.0 - rng.random()) * total
    cumulative = 0.0
    for entry in entries:
        if entry.weight <= 0:
            continue
        cumulative += entry.weight
        if cumulative >= roll:
            return entry
    # Float rounding can leave the roll a hair above the final sum.
    return [e for e in entries if e.weight > 0][-1]


@dataclass
class ActionCatalog:
    """Immutable list of (weight, action) pairs loaded once per run."""
    entries: Tuple[CatalogEntry, ...] = ()

    @staticmethod
    def from_weights(overrides: Optional[Dict[str, Any]] = None) -> "ActionCatalog":
        """Build the standard catalog, replacing default weights with ``overrides``."""
        overrides = dict(overrides or {})
        entries: List[CatalogEntry] = []
        for name, default_weight in DEFAULT_WEIGHTS:
            weight = float(overrides.pop(name, default_weight) or 0.0)
            entries.append(CatalogEntry(name=name, weight=max(0.0, weight), action=action_from_name(name)))
        if overrides:
            raise ActionError(f"Unknown action type: {', '.join(sorted(overrides))}")
        return ActionCatalog(entries=tuple(entries))

    def get(self, name: str) -> Optional[CatalogEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def enabled(self, config: ActivityConfig) -> List[CatalogEntry]:
        """Entries whose feature flags are on, in declared order."""
        return [e for e in self.entries if e.action.is_enabled(config)]

    def choose(self, config: ActivityConfig, rng: random.Random) -> Optional[CatalogEntry]:
        return weighted_choice(self.enabled(config), rng)


class SequentialFlow:
    """Fixed-order loop over catalog entries; the cursor lives in AutomationState."""

    def __init__(self, catalog: ActionCatalog, state: AutomationState, order: Sequence[str] = SEQUENTIAL_FLOW):
        self._catalog = catalog
        self._state = state
        self._order = tuple(order)
        if not self._order:
            raise ValueError("Sequential flow needs at least one step")
        for name in self._order:
            if catalog.get(name) is None:
                raise ValueError(f"Sequential flow references unknown action '{name}'")

    @property
    def order(self) -> Tuple[str, ...]:
        return self._order

    @property
    def current_index(self) -> int:
        return self._state.current_step_index % len(self._order)

    def current(self) -> CatalogEntry:
        entry = self._catalog.get(self._order[self.current_index])
        assert entry is not None
        return entry

    def advance(self) -> None:
        self._state.current_step_index = (self.current_index + 1) % len(self._order)
