"""Enemy level scaling. Pure functions, no I/O."""
from __future__ import annotations

import math
import re

from skirmish.config import ScalingConfig
from skirmish.models.content import EnemyTemplate

_SCALED_ID_RE = re.compile(r"^(.+?)[-_]lv(\d+)$", re.IGNORECASE)

# Fallbacks for stat fields the template leaves out.
DEFAULT_ATK = 1
DEFAULT_DEF = 0
DEFAULT_MAX_HP = 10
DEFAULT_MAX_MP = 0
DEFAULT_EXP = 0


def parse_scaled_id(enemy_id: str) -> tuple[str, int] | None:
    """Split ``goblin-lv5`` / ``goblin_lv5`` into ("goblin", 5)."""
    if not isinstance(enemy_id, str):
        return None
    match = _SCALED_ID_RE.match(enemy_id)
    if not match:
        return None
    return match.group(1), int(match.group(2))


def scale_linear(base: float, level: int, rate: float) -> int:
    if level <= 1:
        return max(0, math.floor(base))
    return max(0, math.floor(base * (1 + rate * (level - 1))))


def scale_exponential(base: float, level: int, rate: float, level_cap: int = 20) -> int:
    if level <= 1:
        return max(0, math.floor(base))
    steps = min(level - 1, level_cap)
    return max(0, math.floor(base * (1 + rate) ** steps))


def scale_exp_reward(base_exp: float, level: int, config: ScalingConfig, boss: bool = False) -> int:
    """Exp reward for a scaled enemy. Boss and dungeon multipliers come last."""
    if level <= 1 or base_exp <= 0:
        return max(0, math.floor(base_exp))
    if config.exp_mode == "exponential":
        exp = math.floor(base_exp * (1 + config.exp) ** (level - 1))
    else:
        exp = math.floor(base_exp * (1 + (level - 1) * config.exp))
    if boss:
        exp = math.floor(exp * config.boss_exp_mult)
    return max(0, math.floor(exp * config.dungeon_exp_mult))


def scale_enemy_template(template: EnemyTemplate, level: int, config: ScalingConfig) -> EnemyTemplate:
    """Return a copy of ``template`` with its stats grown to ``level``.

    Missing stat fields take their defaults first (mAtk follows atk, mDef
    follows def). Level 1 and below returns the floored base so authored
    zero-reward enemies stay at zero.
    """
    atk = template.atk if template.atk is not None else DEFAULT_ATK
    def_ = template.def_ if template.def_ is not None else DEFAULT_DEF
    m_atk = template.m_atk if template.m_atk is not None else atk
    m_def = template.m_def if template.m_def is not None else def_
    max_hp = template.max_hp if template.max_hp is not None else DEFAULT_MAX_HP
    max_mp = template.max_mp if template.max_mp is not None else DEFAULT_MAX_MP
    exp = template.exp_reward if template.exp_reward is not None else DEFAULT_EXP

    return template.model_copy(update={
        "max_hp": scale_exponential(max_hp, level, config.hp, config.hp_level_cap),
        "max_mp": scale_linear(max_mp, level, config.max_mp),
        "atk": scale_linear(atk, level, config.atk),
        "m_atk": scale_linear(m_atk, level, config.m_atk),
        "def_": scale_linear(def_, level, config.def_),
        "m_def": scale_linear(m_def, level, config.m_def),
        "exp_reward": scale_exp_reward(exp, level, config, boss=template.boss),
        "scaled_level": level,
    })
