"""Damage math: clamps, base damage, elemental multipliers, crits.

Pure functions, no I/O. Randomness is injected so callers can seed it.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Any, Mapping

from skirmish.config import CritConfig
from skirmish.models.entity import Attributes
from skirmish.utils import safe_float


def clamp_resource(value: float, maximum: int) -> int:
    """Floor and clamp an HP/MP value into [0, maximum]."""
    if not math.isfinite(value):
        return 0
    return max(0, min(maximum, math.floor(value)))


def calc_damage(attack: int, defense: int) -> int:
    """Basic attack-minus-defense damage. Never below 1."""
    return max(1, attack - defense)


def scaled_damage(attack: int, defense: int, power_mult: float = 1.0) -> int:
    return max(1, math.floor(calc_damage(attack, defense) * (power_mult or 1.0)))


def element_multiplier(element_mods: Mapping[str, Any] | None, element: str | None) -> float:
    """Look up the multiplier for ``element``. Numeric strings are accepted."""
    if not element or not element_mods:
        return 1.0
    return safe_float(element_mods.get(element), 1.0)


@dataclass(frozen=True)
class ElementalHit:
    damage: int
    mult: float


def apply_elemental(base_damage: int, element: str | None, element_mods: Mapping[str, Any] | None) -> ElementalHit:
    mult = element_multiplier(element_mods, element)
    return ElementalHit(damage=max(1, math.floor(base_damage * mult)), mult=mult)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def crit_chance(stats: Attributes, config: CritConfig) -> float:
    raw = config.base_chance + stats.DEX * config.dex_to_chance + stats.CRIT * 0.01
    return _clamp(raw, 0.0, config.max_chance)


def crit_multiplier(stats: Attributes, config: CritConfig) -> float:
    raw = config.base_mult + stats.CRITDMG * config.critdmg_to_mult
    return _clamp(raw, 1.0, config.max_mult)


@dataclass(frozen=True)
class CritRoll:
    crit: bool
    mult: float = 1.0


def roll_crit(stats: Attributes, config: CritConfig, rng: random.Random, allowed: bool = True) -> CritRoll:
    """Roll for a crit. ``allowed=False`` short-circuits without consuming the rng."""
    if not allowed:
        return CritRoll(crit=False)
    if rng.random() < crit_chance(stats, config):
        return CritRoll(crit=True, mult=crit_multiplier(stats, config))
    return CritRoll(crit=False)


def apply_crit(damage: int, roll: CritRoll) -> int:
    if not roll.crit:
        return damage
    return max(1, math.floor(damage * roll.mult))


def format_mult(mult: float) -> str:
    """Render a multiplier the way the battle log shows it: 2.0 -> "2", 1.25 -> "1.25"."""
    return f"{mult:g}"
