"""Timed status effects: damage over time, stun, buffs and debuffs.

Statuses only ever count down. An expired status is removed and never comes
back; pushing the same effect again creates a new instance.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from skirmish.mechanics.damage import clamp_resource
from skirmish.models.content import EffectDef, StatusType
from skirmish.models.entity import Entity, Status


def push_status(entity: Entity, effect: EffectDef, source: str | None = None) -> Status | None:
    """Attach a fresh status built from ``effect``. Zero-turn effects are ignored."""
    if effect.turns <= 0:
        return None
    status = Status(
        id=effect.id or effect.type.value,
        type=effect.type,
        stat=effect.stat,
        value=effect.value,
        turns_left=effect.turns,
        source=source,
        applied=effect.type in (StatusType.BUFF, StatusType.DEBUFF),
    )
    entity.statuses.append(status)
    return status


def has_status(entity: Entity, type_or_id: str) -> bool:
    return any(
        s.is_active and (s.type.value == type_or_id or s.id == type_or_id)
        for s in entity.statuses
    )


@dataclass
class StatusTick:
    died: bool = False
    skipped: bool = False
    lines: list[str] = field(default_factory=list)


def apply_start_of_turn_statuses(entity: Entity) -> StatusTick:
    """Deal DOT damage, then check for stun.

    If a DOT kills the entity nothing else is processed for it this tick.
    """
    tick = StatusTick()
    for status in entity.statuses:
        if status.type != StatusType.DOT or not status.is_active:
            continue
        dmg = math.floor(status.value)
        if dmg <= 0:
            continue
        before = entity.hp
        entity.hp = clamp_resource(before - dmg, entity.max_hp)
        tick.lines.append(
            f"{entity.name} suffers {dmg} damage from {status.id}. ({entity.hp}/{entity.max_hp})"
        )
        if before > 0 and entity.hp <= 0:
            tick.died = True
            return tick

    if any(s.type == StatusType.STUN and s.is_active for s in entity.statuses):
        tick.skipped = True
        tick.lines.append(f"{entity.name} is stunned and cannot act!")
    return tick


def decay_statuses(entity: Entity) -> list[Status]:
    """Count every status down by one turn. Returns the ones that expired."""
    expired = []
    kept = []
    for status in entity.statuses:
        status.turns_left = max(0, status.turns_left - 1)
        if status.is_active:
            kept.append(status)
        else:
            expired.append(status)
    entity.statuses = kept
    return expired
