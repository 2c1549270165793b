from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from skirmish.models.content import DropDef, StatusType


class Status(BaseModel):
    """A timed effect active on an entity."""

    id: str
    type: StatusType
    stat: Optional[str] = None
    value: float = 0
    turns_left: int = 0
    source: Optional[str] = None
    applied: bool = False

    @property
    def is_active(self) -> bool:
        return self.turns_left > 0

    @property
    def is_modifier(self) -> bool:
        return self.type in (StatusType.BUFF, StatusType.DEBUFF)


class Attributes(BaseModel):
    """Base attributes a player allocates points into."""

    model_config = ConfigDict(populate_by_name=True)

    STR: int = 0
    DEX: int = 0
    MAG: int = 0
    CON: int = 0
    CRIT: int = 0
    CRITDMG: int = 0

    def plus(self, deltas: dict[str, float]) -> Attributes:
        data = self.model_dump()
        for key, delta in deltas.items():
            if key in data:
                data[key] = int(data[key] + delta)
        return Attributes(**data)


ALLOCATABLE_STATS = ("STR", "DEX", "MAG", "CON")


class CombatStats(BaseModel):
    """Derived combat values. Also used as the enemy's pre-modifier snapshot."""

    atk: int = 0
    def_: int = 0
    m_atk: int = 0
    m_def: int = 0
    max_hp: int = 1
    max_mp: int = 0


class TurnStartResult(BaseModel):
    unit: Literal["player", "enemy"]
    entity_id: Optional[str] = None
    enemy_index: Optional[int] = None
    tick: int = 0
    skipped: bool = False
    died: bool = False


class Entity(BaseModel):
    """Fields shared by every combatant."""

    id: str
    name: str
    hp: int = 0
    max_hp: int = 1
    mp: int = 0
    max_mp: int = 0
    atk: int = 0
    def_: int = 0
    m_atk: int = 0
    m_def: int = 0
    statuses: list[Status] = Field(default_factory=list)
    cooldowns: dict[str, int] = Field(default_factory=dict)
    last_turn_tick: int = 0
    last_start: Optional[TurnStartResult] = None

    @property
    def is_alive(self) -> bool:
        return self.hp > 0

    def set_combat_stats(self, stats: CombatStats) -> None:
        self.atk = max(0, stats.atk)
        self.def_ = max(0, stats.def_)
        self.m_atk = max(0, stats.m_atk)
        self.m_def = max(0, stats.m_def)
        self.max_hp = max(1, stats.max_hp)
        self.max_mp = max(0, stats.max_mp)


class Player(Entity):
    kind: Literal["player"] = "player"
    level: int = 1
    exp: int = 0
    unspent_points: int = 0
    stats: Attributes = Field(default_factory=Attributes)
    effective_stats: Attributes = Field(default_factory=Attributes)
    equipped: dict[str, str] = Field(default_factory=dict)
    inventory: dict[str, int] = Field(default_factory=dict)
    spells: list[str] = Field(default_factory=list)
    gold: int = 0
    # Enemy spells can target the player elementally; players carry no mods by default.
    element_mods: dict[str, Any] = Field(default_factory=dict)


class Enemy(Entity):
    kind: Literal["enemy"] = "enemy"
    base: CombatStats = Field(default_factory=CombatStats)
    exp_reward: int = 0
    element: Optional[str] = None
    element_mods: dict[str, Any] = Field(default_factory=dict)
    drops: list[DropDef] = Field(default_factory=list)
    spells: list[str] = Field(default_factory=list)
    boss: bool = False
    notes: str = ""
    scaled_level: Optional[int] = None
    death_processed: bool = False


Combatant = Annotated[Union[Player, Enemy], Field(discriminator="kind")]
