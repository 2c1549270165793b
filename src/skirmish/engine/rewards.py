"""Enemy death handling: kill notices, exp, level-ups and drops."""
from __future__ import annotations

import logging

from skirmish.content.loader import Catalog
from skirmish.engine.builders import attributes_from
from skirmish.engine.collaborators import EventEmitter, ExpGainResult, Progression, safe_emit
from skirmish.mechanics.derived_stats import recompute_derived
from skirmish.mechanics.scaling import parse_scaled_id
from skirmish.models.battle import BattleState, add_log
from skirmish.models.entity import Enemy

logger = logging.getLogger(__name__)


class RewardDispatcher:
    def __init__(self, catalog: Catalog, progression: Progression, events: EventEmitter):
        self.catalog = catalog
        self.progression = progression
        self.events = events

    def on_enemy_death(self, state: BattleState, enemy: Enemy) -> bool:
        """Process ``enemy``'s death once. Returns False if it was already processed."""
        if enemy.death_processed:
            return False
        enemy.death_processed = True
        add_log(state, f"{enemy.name} falls!")
        parsed = parse_scaled_id(enemy.id)
        safe_emit(self.events, "kill", {"enemy_id": parsed[0] if parsed else enemy.id, "qty": 1})

        if enemy.exp_reward > 0:
            self.grant_exp(state, enemy.exp_reward)
        for drop in enemy.drops:
            if drop.qty > 0:
                self.grant_drop(state, enemy, drop.id, drop.qty)
        return True

    def grant_exp(self, state: BattleState, amount: int) -> None:
        add_log(state, f"Gained {amount} EXP.")
        safe_emit(self.events, "exp_gained", {"amount": amount})
        try:
            result = self.progression.apply_exp_gain(amount)
        except Exception as e:
            logger.warning(f"Exp grant failed: {e}")
            return
        self._apply_progress(state, result)

    def _apply_progress(self, state: BattleState, result: ExpGainResult) -> None:
        player = state.player
        player.level = result.level
        player.exp = result.exp
        player.unspent_points = result.unspent_points
        if result.stats:
            player.stats = attributes_from(result.stats)
        if result.spells:
            player.spells = list(result.spells)
        if result.equipped:
            player.equipped = dict(result.equipped)
        if result.gold is not None:
            player.gold = result.gold

        if result.leveled_up:
            recompute_derived(player, self.catalog, heal=True)
            add_log(state, f"Level Up! You are now level {result.level}.")
            safe_emit(self.events, "level_up", {"level": result.level, "pending_choices": result.pending_choices})
        else:
            recompute_derived(player, self.catalog)

    def grant_drop(self, state: BattleState, enemy: Enemy, item_id: str, qty: int) -> None:
        try:
            self.progression.grant_items([{"id": item_id, "qty": qty}])
        except Exception as e:
            logger.warning(f"Granting drop {item_id} failed: {e}")
        safe_emit(self.events, "collect", {"item_id": item_id, "qty": qty})

        inventory = state.player.inventory
        inventory[item_id] = inventory.get(item_id, 0) + qty
        add_log(state, f"{enemy.name} dropped {qty} × {self.catalog.item_name(item_id)}.")

