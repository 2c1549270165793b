"""Start-of-turn protocol, run once per unit before it may act.

Order: tick cooldowns, apply DOT damage (stop if it kills), check stun,
decay statuses, recompute derived stats keeping current HP.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from skirmish.content.loader import Catalog
from skirmish.mechanics.cooldowns import tick_cooldowns
from skirmish.mechanics.derived_stats import recompute_derived
from skirmish.mechanics.statuses import apply_start_of_turn_statuses, decay_statuses
from skirmish.models.battle import BattleState, add_log
from skirmish.models.entity import Combatant, Enemy, Entity, TurnStartResult

logger = logging.getLogger(__name__)


@dataclass
class TurnContext:
    catalog: Catalog
    on_enemy_death: Callable[[BattleState, Enemy], object]


def _enemy_index(state: BattleState, entity: Entity) -> int | None:
    for i, enemy in enumerate(state.enemies):
        if enemy is entity:
            return i
    return None


def start_unit_turn(state: BattleState, entity: Combatant, ctx: TurnContext, tick: int) -> TurnStartResult:
    """Run the start-of-turn protocol for ``entity`` at ``tick``.

    A repeat call for the same entity and tick returns the cached result and
    changes nothing.
    """
    if entity.last_start is not None and entity.last_turn_tick == tick:
        state.last_start = entity.last_start
        return entity.last_start

    unit = entity.kind
    result = TurnStartResult(
        unit=unit,
        entity_id=entity.id,
        enemy_index=_enemy_index(state, entity) if unit == "enemy" else None,
        tick=tick,
    )

    if not entity.is_alive:
        result.died = True
    else:
        tick_cooldowns(entity)
        outcome = apply_start_of_turn_statuses(entity)
        for line in outcome.lines:
            add_log(state, line)
        if outcome.died:
            result.died = True
            if isinstance(entity, Enemy):
                ctx.on_enemy_death(state, entity)
        else:
            result.skipped = outcome.skipped
            decay_statuses(entity)
            recompute_derived(entity, ctx.catalog)

    logger.debug("Turn start %s@%d: skipped=%s died=%s", entity.id, tick, result.skipped, result.died)
    entity.last_turn_tick = tick
    entity.last_start = result
    state.last_start = result
    return result
