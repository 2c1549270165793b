"""Batch battle simulation for balance checks.

Runs many seeded battles against one enemy and aggregates win rate, length
and damage figures. Each battle uses a fresh engine and progress store so
exp from one fight never carries into the next.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Literal

from skirmish.config import GameConfig
from skirmish.content.loader import Catalog
from skirmish.engine.battle import BattleEngine
from skirmish.engine.builders import EnemySource
from skirmish.engine.collaborators import EventBus
from skirmish.models.battle import BattleResult, BattleState, Turn
from skirmish.models.content import ItemKind, SpellKind

logger = logging.getLogger(__name__)

Policy = Literal["attack", "auto"]

LOW_HP_RATIO = 0.35


@dataclass
class BattleStats:
    result: BattleResult | None = None
    turns: int = 0
    player_hp_remaining: int = 0
    damage_taken: int = 0
    hits: int = 0
    crits: int = 0
    damage_dealt: int = 0


@dataclass
class SimulationSummary:
    enemy: str
    iterations: int
    wins: int = 0
    losses: int = 0
    unfinished: int = 0
    battles: list[BattleStats] = field(default_factory=list)

    @property
    def win_rate(self) -> float:
        return self.wins / self.iterations if self.iterations else 0.0

    def _mean(self, attr: str) -> float:
        if not self.battles:
            return 0.0
        return sum(getattr(b, attr) for b in self.battles) / len(self.battles)

    @property
    def avg_turns(self) -> float:
        return self._mean("turns")

    @property
    def avg_damage_taken(self) -> float:
        return self._mean("damage_taken")

    @property
    def avg_hits(self) -> float:
        return self._mean("hits")

    @property
    def crit_rate(self) -> float:
        hits = sum(b.hits for b in self.battles)
        return sum(b.crits for b in self.battles) / hits if hits else 0.0

    @property
    def avg_damage_per_hit(self) -> float:
        hits = sum(b.hits for b in self.battles)
        return sum(b.damage_dealt for b in self.battles) / hits if hits else 0.0


def choose_player_action(engine: BattleEngine, state: BattleState, policy: Policy) -> BattleState:
    """Take one player action. ``attack`` always attacks; ``auto`` heals when low, then casts."""
    if policy == "auto":
        player = state.player
        if player.hp <= player.max_hp * LOW_HP_RATIO:
            for view in engine.get_items(state):
                if view.usable and view.item.kind == ItemKind.HEAL:
                    return engine.player_use_item(state, view.item.id)
        for view in engine.get_spells(state):
            if view.castable and view.spell.kind == SpellKind.DAMAGE:
                return engine.player_cast(state, view.spell.id)
    return engine.player_attack(state)


def simulate_battle(
    engine: BattleEngine,
    enemy: EnemySource,
    level: int | None = None,
    policy: Policy = "attack",
    max_turns: int = 500,
) -> BattleStats:
    stats = BattleStats()

    def on_hit(payload: dict) -> None:
        stats.hits += 1
        stats.damage_dealt += payload["damage"]
        if payload["crit"]:
            stats.crits += 1

    if isinstance(engine.events, EventBus):
        engine.events.subscribe("hit", on_hit)

    state = engine.start_battle(enemy, level=level)
    while not state.over and stats.turns < max_turns:
        if state.turn == Turn.PLAYER:
            nxt = choose_player_action(engine, state, policy)
            if nxt.turn == state.turn and not nxt.over:
                # Nothing legal was taken; fall back to a plain attack.
                nxt = engine.player_attack(state)
        else:
            nxt = engine.enemy_act(state)
            stats.damage_taken += max(0, state.player.hp - nxt.player.hp)
        state = nxt
        stats.turns += 1

    stats.result = state.result
    stats.player_hp_remaining = state.player.hp
    return stats


def run_simulation(
    catalog: Catalog,
    enemy: str,
    iterations: int = 500,
    config: GameConfig | None = None,
    seed: int | None = None,
    level: int | None = None,
    policy: Policy = "attack",
) -> SimulationSummary:
    rng = random.Random(seed)
    summary = SimulationSummary(enemy=enemy, iterations=iterations)
    for _ in range(iterations):
        engine = BattleEngine(catalog, config=config, rng=rng)
        stats = simulate_battle(engine, enemy, level=level, policy=policy)
        summary.battles.append(stats)
        if stats.result == BattleResult.WIN:
            summary.wins += 1
        elif stats.result == BattleResult.LOSS:
            summary.losses += 1
        else:
            summary.unfinished += 1
    logger.info("Simulated %d battles vs %s: %.1f%% wins", iterations, enemy, summary.win_rate * 100)
    return summary
