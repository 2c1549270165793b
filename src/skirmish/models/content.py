"""Content-table records: enemies, spells, items, and the player base template.

Records are parsed leniently. A malformed numeric field falls back to its
default instead of failing, so a bad content row never makes a battle
unplayable. Unknown effect types and stat keys are dropped at load time with a
warning, which is where authoring typos should surface.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from skirmish.utils import safe_float, safe_int

logger = logging.getLogger(__name__)

BASE_STAT_KEYS = frozenset({"STR", "DEX", "MAG", "CON", "CRIT", "CRITDMG"})

# Accepted spellings for derived-stat modifiers -> canonical field name.
DERIVED_STAT_ALIASES: dict[str, str] = {
    "atk": "atk",
    "attack": "atk",
    "def": "def_",
    "defense": "def_",
    "matk": "m_atk",
    "m_atk": "m_atk",
    "mattack": "m_atk",
    "mdef": "m_def",
    "m_def": "m_def",
    "mdefense": "m_def",
    "maxhp": "max_hp",
    "max_hp": "max_hp",
    "maxmp": "max_mp",
    "max_mp": "max_mp",
}


def canonical_stat(stat: str) -> str | None:
    """Map a status/equipment stat key onto a base or derived stat name."""
    raw = stat.strip()
    if raw.upper() in BASE_STAT_KEYS:
        return raw.upper()
    return DERIVED_STAT_ALIASES.get(raw.lower())


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class StatusType(str, Enum):
    DOT = "dot"
    STUN = "stun"
    BUFF = "buff"
    DEBUFF = "debuff"


class EffectDef(BaseModel):
    """A status effect a spell or item applies when it resolves."""

    model_config = ConfigDict(frozen=True)

    type: StatusType
    id: Optional[str] = None
    stat: Optional[str] = None
    value: float = 0
    turns: int = Field(default=1, validation_alias=_alias("turns", "turnsLeft", "turns_left"))

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> float:
        return safe_float(v, 0.0)

    @field_validator("turns", mode="before")
    @classmethod
    def coerce_turns(cls, v: Any) -> int:
        return max(0, safe_int(v, 1))

    @field_validator("stat", mode="before")
    @classmethod
    def check_stat(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        key = canonical_stat(str(v))
        if key is None:
            raise ValueError(f"unknown stat key: {v!r}")
        return key


def parse_effects(raw: Any, owner: str) -> list[EffectDef]:
    """Parse a list of effect records, dropping the ones that don't validate."""
    if not isinstance(raw, list):
        return []
    effects: list[EffectDef] = []
    for entry in raw:
        if isinstance(entry, EffectDef):
            effects.append(entry)
            continue
        try:
            effects.append(EffectDef.model_validate(entry))
        except ValueError as exc:
            logger.warning("Dropping invalid effect on %s: %s", owner, exc)
    return effects


class _EffectsMixin(BaseModel):
    effects: list[EffectDef] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def lenient_effects(cls, data: Any) -> Any:
        if isinstance(data, dict) and "effects" in data:
            data = dict(data)
            data["effects"] = parse_effects(data["effects"], str(data.get("id", "?")))
        return data


class SpellKind(str, Enum):
    DAMAGE = "damage"
    HEAL = "heal"


class SpellDef(_EffectsMixin):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    kind: SpellKind = SpellKind.DAMAGE
    damage_type: str = Field(default="magical", validation_alias=_alias("damageType", "damage_type"))
    element: Optional[str] = None
    power_mult: float = Field(default=1.0, validation_alias=_alias("powerMult", "power_mult"))
    cost: int = 0
    cooldown: int = 0
    target: str = "single"
    aoe: bool = False
    heal_amount: int = Field(default=0, validation_alias=_alias("healAmount", "heal_amount"))
    can_crit: bool = Field(default=True, validation_alias=_alias("canCrit", "can_crit"))
    description: str = ""

    @field_validator("cost", "cooldown", "heal_amount", mode="before")
    @classmethod
    def coerce_ints(cls, v: Any) -> int:
        return max(0, safe_int(v, 0))

    @field_validator("power_mult", mode="before")
    @classmethod
    def coerce_power(cls, v: Any) -> float:
        return safe_float(v, 1.0) or 1.0

    @field_validator("damage_type", mode="before")
    @classmethod
    def normalize_damage_type(cls, v: Any) -> str:
        return "physical" if str(v or "").lower() == "physical" else "magical"

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def is_aoe(self) -> bool:
        return self.aoe or self.target == "aoe"

    @property
    def is_physical(self) -> bool:
        return self.damage_type == "physical"


class EquipmentBonus(BaseModel):
    model_config = ConfigDict(frozen=True)

    atk: int = 0
    def_: int = Field(default=0, validation_alias=_alias("def", "def_"))
    m_atk: int = Field(default=0, validation_alias=_alias("mAtk", "m_atk"))
    m_def: int = Field(default=0, validation_alias=_alias("mDef", "m_def"))
    max_hp: int = Field(default=0, validation_alias=_alias("maxHP", "max_hp"))
    max_mp: int = Field(default=0, validation_alias=_alias("maxMP", "max_mp"))
    stats: dict[str, int] = Field(default_factory=dict)

    @field_validator("atk", "def_", "m_atk", "m_def", "max_hp", "max_mp", mode="before")
    @classmethod
    def coerce_ints(cls, v: Any) -> int:
        return safe_int(v, 0)

    @field_validator("stats", mode="before")
    @classmethod
    def coerce_stats(cls, v: Any) -> dict[str, int]:
        if not isinstance(v, dict):
            return {}
        return {str(k).upper(): safe_int(val, 0) for k, val in v.items()}


class ItemKind(str, Enum):
    EQUIPMENT = "equipment"
    HEAL = "heal"
    MANA = "mana"
    DAMAGE = "damage"
    MATERIAL = "material"


class ItemDef(_EffectsMixin):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    kind: ItemKind = ItemKind.MATERIAL
    slot: Optional[str] = None
    heal_amount: int = Field(default=0, validation_alias=_alias("healAmount", "heal_amount"))
    mp_amount: int = Field(default=0, validation_alias=_alias("mpAmount", "mp_amount"))
    damage: int = 0
    element: Optional[str] = None
    target: str = "single"
    aoe: bool = False
    can_crit: bool = Field(default=True, validation_alias=_alias("canCrit", "can_crit"))
    cooldown: int = 0
    price: int = 0
    bonus: EquipmentBonus = Field(default_factory=EquipmentBonus)

    @field_validator("heal_amount", "mp_amount", "damage", "cooldown", "price", mode="before")
    @classmethod
    def coerce_ints(cls, v: Any) -> int:
        return max(0, safe_int(v, 0))

    @field_validator("kind", mode="before")
    @classmethod
    def lenient_kind(cls, v: Any) -> str:
        value = str(v or "").lower()
        if value not in {k.value for k in ItemKind}:
            return ItemKind.MATERIAL.value
        return value

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def is_aoe(self) -> bool:
        return self.aoe or self.target == "aoe"


class DropDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(validation_alias=_alias("id", "itemId", "item_id"))
    qty: int = 1

    @field_validator("qty", mode="before")
    @classmethod
    def coerce_qty(cls, v: Any) -> int:
        return max(0, safe_int(v, 0))


def _optional_number(v: Any) -> Optional[float]:
    return safe_float(v, None)


class EnemyTemplate(BaseModel):
    """An enemy stat block. Numeric fields are None when the author left them out."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: Optional[str] = None
    max_hp: Optional[float] = Field(default=None, validation_alias=_alias("maxHP", "max_hp"))
    max_mp: Optional[float] = Field(default=None, validation_alias=_alias("maxMP", "max_mp"))
    atk: Optional[float] = None
    def_: Optional[float] = Field(default=None, validation_alias=_alias("def", "def_"))
    m_atk: Optional[float] = Field(default=None, validation_alias=_alias("mAtk", "m_atk"))
    m_def: Optional[float] = Field(default=None, validation_alias=_alias("mDef", "m_def"))
    exp_reward: Optional[float] = Field(default=None, validation_alias=_alias("expReward", "exp_reward"))
    element: Optional[str] = None
    element_mods: dict[str, Any] = Field(default_factory=dict, validation_alias=_alias("elementMods", "element_mods"))
    drops: list[DropDef] = Field(default_factory=list)
    spells: list[str] = Field(default_factory=list)
    boss: bool = False
    notes: str = ""
    scaled_level: Optional[int] = None

    @field_validator("max_hp", "max_mp", "atk", "def_", "m_atk", "m_def", "exp_reward", mode="before")
    @classmethod
    def lenient_number(cls, v: Any) -> Optional[float]:
        return _optional_number(v)

    @field_validator("element_mods", mode="before")
    @classmethod
    def lenient_mods(cls, v: Any) -> dict[str, Any]:
        return dict(v) if isinstance(v, dict) else {}

    @field_validator("drops", mode="before")
    @classmethod
    def lenient_drops(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        kept = []
        for drop in v:
            if isinstance(drop, DropDef):
                kept.append(drop)
            elif isinstance(drop, dict) and (drop.get("id") or drop.get("itemId") or drop.get("item_id")):
                kept.append(drop)
        return kept

    @field_validator("spells", mode="before")
    @classmethod
    def lenient_spells(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(s) for s in v if s]


class PlayerBase(BaseModel):
    """Starting template for a fresh character, before saved progress is merged."""

    model_config = ConfigDict(frozen=True)

    name: str = "Hero"
    level: int = 1
    exp: int = 0
    unspent_points: int = Field(default=0, validation_alias=_alias("unspentPoints", "unspent_points"))
    stats: dict[str, int] = Field(default_factory=lambda: {"STR": 3, "DEX": 3, "MAG": 3, "CON": 3})
    spellbook: list[str] = Field(default_factory=list, validation_alias=_alias("spellbook", "spells"))
    inventory: dict[str, int] = Field(default_factory=dict)
    equipped: dict[str, str] = Field(default_factory=dict)
    gold: int = 0
