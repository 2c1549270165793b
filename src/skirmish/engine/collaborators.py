"""Interfaces the combat core uses to talk to the rest of the game.

The engine never persists anything or computes level thresholds itself. It
reports exp and drops to a ``Progression`` and announces what happened to an
``EventEmitter``. The in-memory defaults here keep the engine usable on its
own (CLI, tests).
"""
from __future__ import annotations

import copy
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from skirmish.mechanics import leveling

logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    def load(self) -> dict[str, Any] | None: ...

    def save(self, partial: dict[str, Any]) -> dict[str, Any]: ...


class InMemoryProgressStore:
    """Progress kept in a dict. ``save`` merges the partial record over it."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] | None = copy.deepcopy(initial) if initial is not None else None

    def load(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._data) if self._data is not None else None

    def save(self, partial: dict[str, Any]) -> dict[str, Any]:
        merged = dict(self._data or {})
        merged.update(copy.deepcopy(partial))
        self._data = merged
        return copy.deepcopy(merged)


@dataclass
class ExpGainResult:
    """What the progression side reports back after an exp grant."""

    level: int
    exp: int
    previous_level: int
    unspent_points: int = 0
    stats: dict[str, int] = field(default_factory=dict)
    spells: list[str] = field(default_factory=list)
    equipped: dict[str, str] = field(default_factory=dict)
    gold: int | None = None
    pending_choices: list[dict[str, Any]] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level


class Progression(Protocol):
    def apply_exp_gain(self, amount: int) -> ExpGainResult: ...

    def grant_items(self, items: list[dict[str, Any]]) -> None: ...


DEFAULT_PROGRESS: dict[str, Any] = {
    "level": 1,
    "exp": 0,
    "unspent_points": 0,
    "stats": {"STR": 3, "DEX": 3, "MAG": 3, "CON": 3},
    "spells": [],
    "inventory": {},
    "gold": 0,
    "equipped": {},
    "pending_spell_choices": [],
}


class ProgressionService:
    """Default progression: exp curve and level rewards from ``mechanics.leveling``."""

    def __init__(self, store: ProgressStore, defaults: dict[str, Any] | None = None):
        self.store = store
        self.defaults = defaults if defaults is not None else DEFAULT_PROGRESS

    def _load(self) -> dict[str, Any]:
        progress = copy.deepcopy(self.defaults)
        progress.update(self.store.load() or {})
        return progress

    def apply_exp_gain(self, amount: int) -> ExpGainResult:
        progress = self._load()
        previous_level = int(progress.get("level") or 1)
        opened = leveling.apply_exp(progress, amount) if amount > 0 else []
        saved = self.store.save(progress)
        return ExpGainResult(
            level=int(saved.get("level") or 1),
            exp=int(saved.get("exp") or 0),
            previous_level=previous_level,
            unspent_points=int(saved.get("unspent_points") or 0),
            stats=dict(saved.get("stats") or {}),
            spells=list(saved.get("spells") or []),
            equipped=dict(saved.get("equipped") or {}),
            gold=saved.get("gold"),
            pending_choices=opened,
        )

    def grant_items(self, items: list[dict[str, Any]]) -> None:
        progress = self._load()
        inventory = dict(progress.get("inventory") or {})
        for item in items:
            item_id = item.get("id")
            qty = int(item.get("qty") or 0)
            if not item_id or qty <= 0:
                continue
            inventory[item_id] = inventory.get(item_id, 0) + qty
        self.store.save({"inventory": inventory})


class EventEmitter(Protocol):
    def emit(self, name: str, payload: dict[str, Any]) -> None: ...


class EventBus:
    """Synchronous publish/subscribe. A failing listener never breaks the emitter."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[[dict[str, Any]], None]]] = defaultdict(list)

    def subscribe(self, name: str, listener: Callable[[dict[str, Any]], None]) -> None:
        self._listeners[name].append(listener)

    def emit(self, name: str, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners.get(name, [])):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for %r failed", name)


def safe_emit(events: EventEmitter, name: str, payload: dict[str, Any]) -> None:
    """Emit without letting a broken emitter interrupt combat."""
    try:
        events.emit(name, payload)
    except Exception as e:
        logger.warning(f"Emitting {name} failed: {e}")
