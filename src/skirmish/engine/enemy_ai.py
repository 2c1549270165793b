"""Enemy action choice: the first ready spell, else a basic attack.

Enemies never crit. Basic attacks carry no element; damage spells use the
spell's element against the player's element mods.
"""
from __future__ import annotations

import logging

from skirmish.content.loader import Catalog
from skirmish.mechanics.cooldowns import get_cooldown, set_cooldown
from skirmish.mechanics.damage import apply_elemental, calc_damage, clamp_resource, format_mult, scaled_damage
from skirmish.mechanics.derived_stats import recompute_derived
from skirmish.mechanics.statuses import push_status
from skirmish.models.battle import BattleState, add_log
from skirmish.models.content import SpellDef, SpellKind
from skirmish.models.entity import Enemy

logger = logging.getLogger(__name__)


def enemy_spells(enemy: Enemy, catalog: Catalog) -> list[SpellDef]:
    spells = []
    for spell_id in enemy.spells:
        spell = catalog.get_spell(spell_id)
        if spell is None:
            logger.debug("%s knows unknown spell %r", enemy.id, spell_id)
            continue
        spells.append(spell)
    return spells


def choose_enemy_spell(enemy: Enemy, catalog: Catalog) -> SpellDef | None:
    for spell in enemy_spells(enemy, catalog):
        if get_cooldown(enemy, spell.id) > 0:
            continue
        if spell.kind == SpellKind.HEAL and enemy.hp >= enemy.max_hp:
            continue
        return spell
    return None


def enemy_use_spell(state: BattleState, enemy: Enemy, spell: SpellDef, catalog: Catalog) -> None:
    player = state.player
    if spell.kind == SpellKind.HEAL:
        before = enemy.hp
        enemy.hp = clamp_resource(before + spell.heal_amount, enemy.max_hp)
        add_log(
            state,
            f"{enemy.name} casts {spell.display_name} and heals {enemy.hp - before}. "
            f"({enemy.name} HP {enemy.hp}/{enemy.max_hp})",
        )
        for effect in spell.effects:
            push_status(enemy, effect, source=spell.id)
        recompute_derived(enemy, catalog)
    else:
        if spell.is_physical:
            kind = "physical"
            base = scaled_damage(enemy.atk, player.def_, spell.power_mult)
        else:
            kind = "magical"
            base = scaled_damage(enemy.m_atk, player.m_def, spell.power_mult)
        hit = apply_elemental(base, spell.element or kind, player.element_mods)
        player.hp = clamp_resource(player.hp - hit.damage, player.max_hp)
        mult = f" (×{format_mult(hit.mult)})" if hit.mult != 1 else ""
        add_log(
            state,
            f"{enemy.name} uses {spell.display_name} for {hit.damage} {kind} damage{mult}. "
            f"({player.name} HP {player.hp}/{player.max_hp})",
        )
        if player.is_alive:
            for effect in spell.effects:
                push_status(player, effect, source=spell.id)
            recompute_derived(player, catalog)

    set_cooldown(enemy, spell.id, spell.cooldown or 1)


def enemy_basic_attack(state: BattleState, enemy: Enemy) -> None:
    player = state.player
    dmg = calc_damage(enemy.atk, player.def_)
    player.hp = clamp_resource(player.hp - dmg, player.max_hp)
    add_log(
        state,
        f"{enemy.name} hits {player.name} for {dmg} physical damage. "
        f"({player.name} HP {player.hp}/{player.max_hp})",
    )


def perform_enemy_action(state: BattleState, enemy: Enemy, catalog: Catalog) -> None:
    spell = choose_enemy_spell(enemy, catalog)
    if spell is not None:
        enemy_use_spell(state, enemy, spell, catalog)
    else:
        enemy_basic_attack(state, enemy)
