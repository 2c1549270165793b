"""Derived combat stats from attributes, equipment and active statuses.

Everything is recomputed from the entity's raw inputs (player attributes and
equipment, or the enemy's base snapshot) plus the statuses that are active
right now. Nothing is applied incrementally, so an expired buff simply stops
showing up on the next recompute.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from skirmish.content.loader import Catalog
from skirmish.mechanics.damage import clamp_resource
from skirmish.models.content import BASE_STAT_KEYS, ItemKind
from skirmish.models.entity import Attributes, CombatStats, Enemy, Entity, Player, Status

logger = logging.getLogger(__name__)

DERIVED_FIELDS = ("atk", "def_", "m_atk", "m_def", "max_hp", "max_mp")


def derive_combat(attrs: Attributes, level: int) -> CombatStats:
    half_level = math.floor(level / 2)
    return CombatStats(
        atk=2 + 2 * attrs.STR + half_level,
        def_=1 + math.floor((attrs.CON + attrs.DEX) / 2),
        max_hp=20 + 8 * attrs.CON + 2 * level,
        max_mp=5 + 5 * attrs.MAG + half_level,
        m_atk=2 + 2 * attrs.MAG + half_level,
        m_def=1 + math.floor((attrs.MAG + attrs.CON) / 2),
    )


def _equipment(equipped: Mapping[str, str], catalog: Catalog):
    for slot, item_id in equipped.items():
        if not item_id:
            continue
        item = catalog.get_item(item_id)
        if item is None:
            logger.debug("Equipped %s in %s is not in the catalog", item_id, slot)
            continue
        if item.kind == ItemKind.EQUIPMENT:
            yield item


def apply_equipment_to_stats(stats: Attributes, equipped: Mapping[str, str], catalog: Catalog) -> Attributes:
    """Add each equipped item's attribute bonuses (bonus.stats) to ``stats``."""
    deltas: dict[str, float] = {}
    for item in _equipment(equipped, catalog):
        for key, value in item.bonus.stats.items():
            if key in BASE_STAT_KEYS:
                deltas[key] = deltas.get(key, 0) + value
    return stats.plus(deltas)


def add_derived(derived: CombatStats, deltas: Mapping[str, float]) -> CombatStats:
    data = derived.model_dump()
    for key, delta in deltas.items():
        if key in data:
            data[key] = math.floor(data[key] + delta)
    return CombatStats(**data)


def apply_equipment_to_derived(derived: CombatStats, equipped: Mapping[str, str], catalog: Catalog) -> CombatStats:
    """Add each equipped item's flat derived bonuses (atk, def, maxHP...)."""
    deltas: dict[str, float] = {}
    for item in _equipment(equipped, catalog):
        for key in DERIVED_FIELDS:
            value = getattr(item.bonus, key)
            if value:
                deltas[key] = deltas.get(key, 0) + value
    return add_derived(derived, deltas)


@dataclass
class StatusModifiers:
    base: dict[str, float] = field(default_factory=dict)
    derived: dict[str, float] = field(default_factory=dict)


def collect_status_modifiers(statuses: Iterable[Status]) -> StatusModifiers:
    """Sum the deltas of active buffs and debuffs.

    Attribute keys (STR, DEX...) land in ``base``; everything else in
    ``derived``. A buff or debuff without a stat modifies atk.
    """
    mods = StatusModifiers()
    for status in statuses:
        if not status.is_modifier or not status.is_active:
            continue
        stat = status.stat or "atk"
        bucket = mods.base if stat in BASE_STAT_KEYS else mods.derived
        bucket[stat] = bucket.get(stat, 0) + status.value
    return mods


def _settle_resources(entity: Entity, heal: bool) -> None:
    if heal:
        entity.hp = entity.max_hp
        entity.mp = entity.max_mp
    else:
        entity.hp = clamp_resource(entity.hp, entity.max_hp)
        entity.mp = clamp_resource(entity.mp, entity.max_mp)


def recompute_player(player: Player, catalog: Catalog, heal: bool = False) -> None:
    mods = collect_status_modifiers(player.statuses)
    effective = apply_equipment_to_stats(player.stats, player.equipped, catalog).plus(mods.base)
    derived = derive_combat(effective, player.level)
    derived = apply_equipment_to_derived(derived, player.equipped, catalog)
    derived = add_derived(derived, mods.derived)
    player.effective_stats = effective
    player.set_combat_stats(derived)
    _settle_resources(player, heal)


def recompute_enemy(enemy: Enemy, heal: bool = False) -> None:
    mods = collect_status_modifiers(enemy.statuses)
    enemy.set_combat_stats(add_derived(enemy.base, mods.derived))
    _settle_resources(enemy, heal)


def recompute_derived(entity: Entity, catalog: Catalog, heal: bool = False) -> None:
    """Recompute ``entity``'s combat stats in place.

    With ``heal=False`` current HP/MP are kept and clamped to the new maxima.
    With ``heal=True`` they are reset to the maxima (level-up).
    """
    if isinstance(entity, Player):
        recompute_player(entity, catalog, heal=heal)
    elif isinstance(entity, Enemy):
        recompute_enemy(entity, heal=heal)
    else:
        raise TypeError(f"cannot recompute stats for {type(entity).__name__}")
