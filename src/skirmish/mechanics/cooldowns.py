"""Per-entity action cooldowns, keyed by spell or item id."""
from __future__ import annotations

from skirmish.models.entity import Entity


def tick_cooldowns(entity: Entity) -> None:
    """Count every cooldown down by one, dropping the ones that reach zero."""
    remaining = {}
    for key, turns in entity.cooldowns.items():
        if turns - 1 > 0:
            remaining[key] = turns - 1
    entity.cooldowns = remaining


def set_cooldown(entity: Entity, key: str, turns: int) -> None:
    if not key or turns <= 0:
        return
    entity.cooldowns[key] = int(turns)


def get_cooldown(entity: Entity, key: str) -> int:
    return entity.cooldowns.get(key, 0)
