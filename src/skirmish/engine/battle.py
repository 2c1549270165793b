"""Battle engine: the public combat actions.

Every action takes a BattleState and returns a new one built with
``derive_next_state``. The state passed in is never modified. An action that
is not legal right now returns the fresh copy unchanged, without a log line.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Sequence

from skirmish.config import GameConfig
from skirmish.content.loader import Catalog
from skirmish.engine.builders import EnemySource, base_progress, build_enemies, build_player
from skirmish.engine.collaborators import (
    EventBus,
    EventEmitter,
    InMemoryProgressStore,
    Progression,
    ProgressionService,
    ProgressStore,
    safe_emit,
)
from skirmish.engine.enemy_ai import perform_enemy_action
from skirmish.engine.rewards import RewardDispatcher
from skirmish.engine.turn_start import TurnContext, start_unit_turn
from skirmish.mechanics.cooldowns import get_cooldown, set_cooldown
from skirmish.mechanics.damage import (
    CritRoll,
    apply_crit,
    apply_elemental,
    calc_damage,
    clamp_resource,
    format_mult,
    roll_crit,
    scaled_damage,
)
from skirmish.mechanics.derived_stats import recompute_derived
from skirmish.mechanics.statuses import push_status
from skirmish.models.battle import BattleResult, BattleState, Turn, add_log, derive_next_state
from skirmish.models.content import EffectDef, ItemDef, ItemKind, SpellDef, SpellKind
from skirmish.models.entity import ALLOCATABLE_STATS, Enemy, Entity, TurnStartResult
from skirmish.utils import id_variants

logger = logging.getLogger(__name__)


def prune_dead_enemies(state: BattleState) -> None:
    state.enemies = [e for e in state.enemies if e.hp > 0]


def check_end(state: BattleState) -> None:
    """Settle the battle if one side is down. Mutual knockout counts as a win."""
    if state.over:
        return
    player_dead = state.player.hp <= 0
    enemies_left = len(state.living_enemies)
    if player_dead and enemies_left == 0:
        state.over, state.result = True, BattleResult.WIN
        add_log(state, "Both sides fall, and you prevail!")
    elif enemies_left == 0:
        state.over, state.result = True, BattleResult.WIN
        add_log(state, "Victory!")
    elif player_dead:
        state.over, state.result = True, BattleResult.LOSS
        add_log(state, "Defeat...")


def _mult_text(mult: float) -> str:
    return f" (×{format_mult(mult)})" if mult != 1 else ""


def _crit_text(roll: CritRoll) -> str:
    return f" CRIT ×{format_mult(roll.mult)}" if roll.crit else ""


@dataclass
class SpellView:
    spell: SpellDef
    cooldown_remaining: int
    castable: bool


@dataclass
class ItemView:
    item: ItemDef
    qty: int
    cooldown_remaining: int
    usable: bool


class BattleEngine:
    """Resolves player and enemy actions against a catalog.

    Collaborators default to in-memory implementations, so an engine built
    from just a catalog runs complete battles.
    """

    def __init__(
        self,
        catalog: Catalog,
        config: GameConfig | None = None,
        progress_store: ProgressStore | None = None,
        progression: Progression | None = None,
        events: EventEmitter | None = None,
        rng: random.Random | None = None,
    ):
        self.catalog = catalog
        self.config = config or GameConfig()
        self.progress_store = progress_store or InMemoryProgressStore()
        self.progression = progression or ProgressionService(
            self.progress_store, defaults=base_progress(catalog.player_base),
        )
        self.events = events or EventBus()
        self.rng = rng or random.Random()
        self.rewards = RewardDispatcher(catalog, self.progression, self.events)
        self.turn_ctx = TurnContext(catalog=catalog, on_enemy_death=self.rewards.on_enemy_death)

    # -- Setup ------------------------------------------------------------

    def start_battle(
        self,
        enemy: EnemySource | Sequence[EnemySource] | None = None,
        level: int | None = None,
    ) -> BattleState:
        """Build the player and enemies and open the player's first turn.

        ``level`` is the dungeon level. When given it overrides any level the
        enemy ids or specs carry.
        """
        source = enemy if enemy is not None else self.config.battle.default_enemy
        try:
            progress = self.progress_store.load()
        except Exception as e:
            logger.warning(f"Loading progress failed, starting from the base template: {e}")
            progress = None

        player = build_player(self.catalog.player_base, progress, self.catalog)
        enemies, primary = build_enemies(source, self.catalog, self.config.scaling, level=level)
        if isinstance(source, (list, tuple)):
            first = source[0] if source else None
        else:
            first = source
        state = BattleState(
            player=player,
            enemies=enemies,
            log_tail=self.config.battle.log_tail,
            enemy_id=first if isinstance(first, str) else (primary.id if primary else None),
        )
        name = primary.name if primary else "enemy"
        add_log(state, f"A wild {name} appears! {player.name} prepares for battle.")
        logger.info("Battle started: %s vs %s", player.name, [e.id for e in enemies])

        self._start_turn(state, state.player)
        check_end(state)
        return state

    # -- Turn plumbing ----------------------------------------------------

    def _start_turn(self, state: BattleState, entity: Entity) -> TurnStartResult:
        state.turn_tick += 1
        return start_unit_turn(state, entity, self.turn_ctx, state.turn_tick)

    def _finish_player_action(self, state: BattleState) -> BattleState:
        prune_dead_enemies(state)
        check_end(state)
        if not state.over:
            state.turn = Turn.ENEMY
        return state

    def _player_can_act(self, state: BattleState) -> bool:
        player = state.player
        if state.over or state.turn != Turn.PLAYER or not player.is_alive:
            return False
        start = player.last_start
        return not (start is not None and start.skipped and player.last_turn_tick == state.turn_tick)

    def _target(self, state: BattleState, index: int | None) -> Enemy | None:
        if index is None:
            living = state.living_enemies
            return living[0] if living else None
        if 0 <= index < len(state.enemies) and state.enemies[index].is_alive:
            return state.enemies[index]
        return None

    def _damage_enemy(self, target: Enemy, dmg: int, crit: bool = False) -> bool:
        """Apply damage. Returns True if this hit killed the target."""
        before = target.hp
        target.hp = clamp_resource(before - dmg, target.max_hp)
        safe_emit(self.events, "hit", {"target": target.id, "damage": dmg, "crit": crit})
        return before > 0 and target.hp <= 0

    def _push_effects(self, target: Entity, effects: list[EffectDef], source: str) -> None:
        if not effects or not target.is_alive:
            return
        for effect in effects:
            push_status(target, effect, source=source)
        recompute_derived(target, self.catalog)

    # -- Player actions ---------------------------------------------------

    def player_attack(self, state: BattleState, target_index: int | None = None) -> BattleState:
        s = derive_next_state(state)
        if not self._player_can_act(s):
            return s
        target = self._target(s, target_index)
        if target is None:
            return s

        player = s.player
        hit = apply_elemental(calc_damage(player.atk, target.def_), "physical", target.element_mods)
        roll = roll_crit(player.effective_stats, self.config.crit, self.rng)
        dmg = apply_crit(hit.damage, roll)
        killed = self._damage_enemy(target, dmg, roll.crit)
        add_log(
            s,
            f"{player.name} attacks {target.name} for {dmg} physical damage"
            f"{_mult_text(hit.mult)}{_crit_text(roll)}. ({target.name} HP {target.hp}/{target.max_hp})",
        )
        if killed:
            self.rewards.on_enemy_death(s, target)
        return self._finish_player_action(s)

    def _resolve_spell(self, spell_id: str) -> SpellDef | None:
        return self.catalog.get_spell(spell_id)

    def _knows_spell(self, state: BattleState, spell: SpellDef, spell_id: str) -> bool:
        known = set(state.player.spells)
        return any(v in known for v in id_variants(spell_id) + id_variants(spell.id))

    def can_cast(self, state: BattleState, spell_id: str) -> bool:
        if not self._player_can_act(state):
            return False
        spell = self._resolve_spell(spell_id)
        if spell is None or not self._knows_spell(state, spell, spell_id):
            return False
        player = state.player
        if get_cooldown(player, spell.id) > 0:
            return False
        if player.mp < spell.cost:
            return False
        if spell.kind == SpellKind.HEAL:
            return player.hp < player.max_hp
        return True

    def _spell_hit(self, state: BattleState, spell: SpellDef, target: Enemy) -> None:
        player = state.player
        aoe = " (AOE)" if spell.is_aoe else ""
        if spell.is_physical:
            base = scaled_damage(player.atk, target.def_, spell.power_mult)
            hit = apply_elemental(base, spell.element or "physical", target.element_mods)
            roll = roll_crit(player.effective_stats, self.config.crit, self.rng, allowed=spell.can_crit)
            dmg = apply_crit(hit.damage, roll)
            killed = self._damage_enemy(target, dmg, roll.crit)
            add_log(
                state,
                f"{player.name} uses {spell.display_name}{aoe} on {target.name} for {dmg} physical damage"
                f"{_mult_text(hit.mult)}{_crit_text(roll)}! ({target.name} HP {target.hp}/{target.max_hp})",
            )
        else:
            base = scaled_damage(player.m_atk, target.m_def, spell.power_mult)
            hit = apply_elemental(base, spell.element or "magical", target.element_mods)
            killed = self._damage_enemy(target, hit.damage)
            add_log(
                state,
                f"{player.name} casts {spell.display_name}{aoe} on {target.name} for {hit.damage} magic damage"
                f"{_mult_text(hit.mult)}! ({target.name} HP {target.hp}/{target.max_hp})",
            )
        self._push_effects(target, spell.effects, spell.id)
        if killed:
            self.rewards.on_enemy_death(state, target)

    def player_cast(self, state: BattleState, spell_id: str, target_index: int | None = None) -> BattleState:
        s = derive_next_state(state)
        if not self.can_cast(s, spell_id):
            return s
        spell = self._resolve_spell(spell_id)
        target = None
        if spell.kind == SpellKind.DAMAGE and not spell.is_aoe:
            target = self._target(s, target_index)
            if target is None:
                return s

        player = s.player
        player.mp = clamp_resource(player.mp - spell.cost, player.max_mp)
        add_log(s, f"{player.name} spends {spell.cost} MP (MP {player.mp}/{player.max_mp}).")
        set_cooldown(player, spell.id, spell.cooldown)

        if spell.kind == SpellKind.HEAL:
            before = player.hp
            player.hp = clamp_resource(before + spell.heal_amount, player.max_hp)
            add_log(
                s,
                f"{player.name} casts {spell.display_name} and heals {player.hp - before}. "
                f"({player.name} HP {player.hp}/{player.max_hp})",
            )
            self._push_effects(player, spell.effects, spell.id)
        elif spell.is_aoe:
            for enemy in list(s.living_enemies):
                self._spell_hit(s, spell, enemy)
        else:
            self._spell_hit(s, spell, target)

        return self._finish_player_action(s)

    def can_use_item(self, state: BattleState, item_id: str) -> bool:
        if not self._player_can_act(state):
            return False
        item = self.catalog.get_item(item_id)
        if item is None:
            return False
        player = state.player
        if player.inventory.get(item_id, 0) <= 0:
            return False
        if get_cooldown(player, item.id) > 0:
            return False
        if item.kind == ItemKind.HEAL:
            return player.hp < player.max_hp
        if item.kind == ItemKind.MANA:
            return player.mp < player.max_mp
        return item.kind == ItemKind.DAMAGE

    def _item_hit(self, state: BattleState, item: ItemDef, target: Enemy) -> None:
        element = item.element or "physical"
        hit = apply_elemental(max(1, item.damage), element, target.element_mods)
        roll = roll_crit(
            state.player.effective_stats, self.config.crit, self.rng,
            allowed=item.can_crit and element == "physical",
        )
        dmg = apply_crit(hit.damage, roll)
        killed = self._damage_enemy(target, dmg, roll.crit)
        verb = f"hits {target.name} for {dmg} damage" if item.is_aoe else f"deals {dmg} damage to {target.name}"
        add_log(
            state,
            f"{item.display_name} {verb}{_mult_text(hit.mult)}{_crit_text(roll)}! "
            f"({target.name} HP {target.hp}/{target.max_hp})",
        )
        self._push_effects(target, item.effects, item.id)
        if killed:
            self.rewards.on_enemy_death(state, target)

    def player_use_item(self, state: BattleState, item_id: str, target_index: int | None = None) -> BattleState:
        s = derive_next_state(state)
        if not self.can_use_item(s, item_id):
            return s
        item = self.catalog.get_item(item_id)
        target = None
        if item.kind == ItemKind.DAMAGE and not item.is_aoe:
            target = self._target(s, target_index)
            if target is None:
                return s

        player = s.player
        remaining = player.inventory.get(item_id, 0) - 1
        if remaining > 0:
            player.inventory[item_id] = remaining
        else:
            player.inventory.pop(item_id, None)
        add_log(s, f"{player.name} uses {item.display_name}.")
        set_cooldown(player, item.id, item.cooldown)

        if item.kind == ItemKind.HEAL:
            before = player.hp
            player.hp = clamp_resource(before + item.heal_amount, player.max_hp)
            add_log(s, f"Restored {player.hp - before} HP. ({player.name} HP {player.hp}/{player.max_hp})")
            self._push_effects(player, item.effects, item.id)
        elif item.kind == ItemKind.MANA:
            before = player.mp
            player.mp = clamp_resource(before + item.mp_amount, player.max_mp)
            add_log(s, f"Recovered {player.mp - before} MP. (MP {player.mp}/{player.max_mp})")
            self._push_effects(player, item.effects, item.id)
        elif item.is_aoe:
            for enemy in list(s.living_enemies):
                self._item_hit(s, item, enemy)
        else:
            self._item_hit(s, item, target)

        return self._finish_player_action(s)

    def allocate_stat(self, state: BattleState, key: str) -> BattleState:
        """Spend one unspent point on STR, DEX, MAG or CON."""
        s = derive_next_state(state)
        player = s.player
        if key not in ALLOCATABLE_STATS or player.unspent_points <= 0:
            return s
        player.unspent_points -= 1
        player.stats = player.stats.plus({key: 1})
        recompute_derived(player, self.catalog)
        add_log(s, f"Allocated +1 {key}.")
        return s

    # -- Enemy turn -------------------------------------------------------

    def enemy_act(self, state: BattleState) -> BattleState:
        """Every living enemy takes its turn, then control returns to the player.

        If the player's own start of turn leaves them stunned the turn stays
        with the enemies and the next call runs another enemy round.
        """
        s = derive_next_state(state)
        if s.over or s.turn != Turn.ENEMY:
            return s

        for enemy in list(s.enemies):
            if not enemy.is_alive:
                continue
            started = self._start_turn(s, enemy)
            if started.died or started.skipped:
                continue
            perform_enemy_action(s, enemy, self.catalog)
            if not s.player.is_alive:
                break

        prune_dead_enemies(s)
        check_end(s)
        if s.over:
            return s

        started = self._start_turn(s, s.player)
        check_end(s)
        if s.over or started.skipped:
            # A stunned player loses the round; the turn stays with the enemies.
            return s
        s.turn = Turn.PLAYER
        add_log(s, "Your turn.")
        return s

    # -- UI helpers -------------------------------------------------------

    def get_spells(self, state: BattleState) -> list[SpellView]:
        """The player's spellbook, resolved against the catalog. Unknown ids are skipped."""
        views = []
        for spell_id in state.player.spells:
            spell = self._resolve_spell(spell_id)
            if spell is None:
                continue
            views.append(SpellView(
                spell=spell,
                cooldown_remaining=get_cooldown(state.player, spell.id),
                castable=self.can_cast(state, spell_id),
            ))
        return views

    def get_items(self, state: BattleState) -> list[ItemView]:
        """Inventory entries with a catalog record, sorted by name."""
        views = []
        for item_id, qty in state.player.inventory.items():
            item = self.catalog.get_item(item_id)
            if item is None or qty <= 0:
                continue
            views.append(ItemView(
                item=item,
                qty=qty,
                cooldown_remaining=get_cooldown(state.player, item.id),
                usable=self.can_use_item(state, item_id),
            ))
        views.sort(key=lambda v: v.item.display_name)
        return views

