"""Exp curve and level-up rewards. Pure math over a progress dict, no I/O."""
from __future__ import annotations

import math
from typing import Any

MAX_LEVELS_PER_GAIN = 100

# Spells granted automatically on reaching a level.
FIXED_SPELL_UNLOCKS: dict[int, list[str]] = {
    1: ["firebolt"],
}

# Milestone levels that offer a choice between spells.
SPELL_CHOICE_TABLE: dict[int, list[str]] = {
    2: ["firebolt", "multi-shot"],
    5: ["ice_spike", "rock_shot"],
    10: ["freeze", "dark_orb"],
    15: ["burn", "freeze"],
    20: ["shield", "thunderbolt"],
}


def exp_to_next_level(level: int) -> int:
    """Exp needed to go from ``level`` to ``level + 1``."""
    return math.ceil(100 * 1.2 ** max(0, level - 1))


def fixed_spells_at(level: int) -> list[str]:
    return list(FIXED_SPELL_UNLOCKS.get(level, []))


def spell_choices_at(level: int) -> list[str]:
    return list(SPELL_CHOICE_TABLE.get(level, []))


def _add_spells(progress: dict[str, Any], spell_ids: list[str]) -> None:
    known = list(progress.get("spells") or [])
    for spell_id in spell_ids:
        if spell_id not in known:
            known.append(spell_id)
    progress["spells"] = known


def apply_level_rewards(progress: dict[str, Any], new_level: int) -> list[str]:
    """Grant one stat point and any fixed spells. Returns the choice options, if any."""
    progress["unspent_points"] = int(progress.get("unspent_points") or 0) + 1
    fixed = fixed_spells_at(new_level)
    if fixed:
        _add_spells(progress, fixed)
    return spell_choices_at(new_level)


def apply_exp(progress: dict[str, Any], amount: int) -> list[dict[str, Any]]:
    """Add exp to ``progress`` in place, levelling up as many times as it allows.

    Returns the spell choices the new levels opened, as ``{level, options}``
    records. They are also merged into ``progress["pending_spell_choices"]``,
    replacing any earlier entry for the same level.
    """
    progress["level"] = int(progress.get("level") or 1)
    progress["exp"] = int(progress.get("exp") or 0) + math.floor(amount)

    opened: list[dict[str, Any]] = []
    for _ in range(MAX_LEVELS_PER_GAIN):
        need = exp_to_next_level(progress["level"])
        if progress["exp"] < need:
            break
        progress["exp"] -= need
        progress["level"] += 1
        choices = apply_level_rewards(progress, progress["level"])
        if choices:
            opened.append({"level": progress["level"], "options": choices})

    pending = [
        p for p in progress.get("pending_spell_choices") or []
        if p.get("level") not in {c["level"] for c in opened}
    ]
    progress["pending_spell_choices"] = pending + opened
    return opened


def commit_spell_choice(progress: dict[str, Any], level: int, spell_id: str) -> None:
    """Learn ``spell_id`` and clear the pending choice for ``level``."""
    _add_spells(progress, [spell_id])
    progress["pending_spell_choices"] = [
        p for p in progress.get("pending_spell_choices") or []
        if p.get("level") != level
    ]
