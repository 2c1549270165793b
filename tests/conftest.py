"""Shared fixtures for the Skirmish test suite."""
from __future__ import annotations

import random
from typing import Any

import pytest

from skirmish.config import GameConfig
from skirmish.content.loader import Catalog
from skirmish.engine.battle import BattleEngine
from skirmish.engine.collaborators import EventBus, InMemoryProgressStore


class FixedRandom(random.Random):
    """A Random whose ``random()`` always returns the same value."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


NO_CRIT = 0.99
ALWAYS_CRIT = 0.0


ENEMIES: dict[str, dict[str, Any]] = {
    "dummy": {"name": "Dummy", "maxHP": 1, "atk": 0},
    "goblin": {
        "name": "Goblin", "maxHP": 20, "atk": 5, "def": 1, "expReward": 10,
        "elementMods": {"fire": 2.0},
        "drops": [{"id": "goblin_ear", "qty": 2}],
    },
    "brute": {"name": "Brute", "maxHP": 200, "atk": 4, "def": 0},
    "caster": {"name": "Caster", "maxHP": 30, "atk": 3, "mAtk": 6, "spells": ["zap", "mend"]},
    "boss": {"name": "Warlord", "maxHP": 50, "atk": 9, "def": 3, "expReward": 100, "boss": True},
}

SPELLS: dict[str, dict[str, Any]] = {
    "firebolt": {"name": "Firebolt", "kind": "damage", "element": "fire", "cost": 4},
    "bash": {"name": "Bash", "kind": "damage", "damageType": "physical", "powerMult": 1.5, "cost": 2},
    "quake": {
        "name": "Quake", "kind": "damage", "damageType": "physical", "target": "aoe",
        "canCrit": False, "cost": 5, "cooldown": 2,
    },
    "heal": {"name": "Heal", "kind": "heal", "healAmount": 10, "cost": 3},
    "stun_bolt": {
        "name": "Stun Bolt", "kind": "damage", "cost": 1,
        "effects": [{"type": "stun", "id": "stunned", "turns": 1}],
    },
    "poison_cloud": {
        "name": "Poison Cloud", "kind": "damage", "target": "aoe", "cost": 1,
        "effects": [{"type": "dot", "id": "poison", "value": 2, "turns": 2}],
    },
    "zap": {"name": "Zap", "kind": "damage", "element": "lightning", "cost": 0, "cooldown": 2},
    "mend": {"name": "Mend", "kind": "heal", "healAmount": 8, "cooldown": 3},
}

ITEMS: dict[str, dict[str, Any]] = {
    "potion": {"name": "Potion", "kind": "heal", "healAmount": 10},
    "ether": {"name": "Ether", "kind": "mana", "mpAmount": 5},
    "bomb": {"name": "Bomb", "kind": "damage", "damage": 6, "element": "fire", "target": "aoe"},
    "knife": {"name": "Knife", "kind": "damage", "damage": 4},
    "sword": {"name": "Sword", "kind": "equipment", "slot": "weapon", "bonus": {"atk": 3}},
    "ring": {"name": "Ring", "kind": "equipment", "slot": "ring", "bonus": {"stats": {"DEX": 2, "CRIT": 10}}},
    "goblin_ear": {"name": "Goblin Ear", "kind": "material"},
}

PLAYER_BASE: dict[str, Any] = {
    "name": "Hero",
    "stats": {"STR": 3, "DEX": 3, "MAG": 3, "CON": 3},
    "spellbook": ["firebolt", "bash", "quake", "heal", "stun_bolt", "poison_cloud"],
    "inventory": {"potion": 2, "ether": 1, "bomb": 1, "knife": 2},
}


@pytest.fixture
def catalog() -> Catalog:
    return Catalog.from_dicts(enemies=ENEMIES, spells=SPELLS, items=ITEMS, player_base=PLAYER_BASE)


@pytest.fixture
def config() -> GameConfig:
    return GameConfig()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def engine(catalog, config, events) -> BattleEngine:
    """Engine whose crit rolls never succeed."""
    return BattleEngine(
        catalog, config=config, progress_store=InMemoryProgressStore(),
        events=events, rng=FixedRandom(NO_CRIT),
    )


@pytest.fixture
def crit_engine(catalog, config) -> BattleEngine:
    """Engine whose crit rolls always succeed."""
    return BattleEngine(catalog, config=config, rng=FixedRandom(ALWAYS_CRIT))


@pytest.fixture
def fixed_random():
    """Factory for a Random pinned to one value: ``fixed_random(0.0)``."""
    return FixedRandom
