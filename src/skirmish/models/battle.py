from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from skirmish.models.entity import Enemy, Player, TurnStartResult

DEFAULT_LOG_TAIL = 50


class Turn(str, Enum):
    PLAYER = "player"
    ENEMY = "enemy"


class BattleResult(str, Enum):
    WIN = "win"
    LOSS = "loss"


class BattleState(BaseModel):
    """Root aggregate for one encounter."""

    player: Player
    enemies: list[Enemy] = Field(default_factory=list)
    turn: Turn = Turn.PLAYER
    over: bool = False
    result: Optional[BattleResult] = None
    log: list[str] = Field(default_factory=list)
    log_tail: int = DEFAULT_LOG_TAIL
    turn_tick: int = 0
    last_start: Optional[TurnStartResult] = None
    enemy_id: Optional[str] = None

    @property
    def living_enemies(self) -> list[Enemy]:
        return [e for e in self.enemies if e.hp > 0]


def derive_next_state(prev: BattleState) -> BattleState:
    """Build the state an action mutates, leaving ``prev`` untouched.

    The root is copied shallowly. The player and every enemy are copied deeply,
    because turn processing edits their statuses, cooldowns and inventory in
    place. The log gets a fresh list.
    """
    return prev.model_copy(update={
        "player": prev.player.model_copy(deep=True),
        "enemies": [e.model_copy(deep=True) for e in prev.enemies],
        "log": list(prev.log),
    })


def add_log(state: BattleState, line: str) -> None:
    state.log.append(line)
    overflow = len(state.log) - state.log_tail
    if overflow > 0:
        del state.log[:overflow]
