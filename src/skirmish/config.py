"""Game configuration, loaded from config.toml and typed with pydantic."""
from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config.toml"


class ScalingConfig(BaseModel):
    """Enemy level-scaling tuning. Rates are per level above 1."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hp: float = 0.10
    atk: float = 0.06
    m_atk: float = 0.08
    def_: float = Field(default=0.04, alias="def")
    m_def: float = 0.04
    max_mp: float = 0.05
    exp: float = 0.16
    exp_mode: Literal["linear", "exponential"] = "linear"
    boss_exp_mult: float = 1.5
    dungeon_exp_mult: float = 1.0
    hp_level_cap: int = 20

    @field_validator("dungeon_exp_mult", mode="before")
    @classmethod
    def clamp_dungeon_mult(cls, v: Any) -> float:
        try:
            return max(0.0, float(v))
        except (TypeError, ValueError):
            return 1.0


class CritConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_chance: float = 0.05
    dex_to_chance: float = 0.004
    max_chance: float = 0.5
    base_mult: float = 1.5
    critdmg_to_mult: float = 0.01
    max_mult: float = 3.0


class BattleConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    log_tail: int = Field(default=50, ge=1)
    default_enemy: str = "goblin"
    content_dir: str | None = None


class LoggingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str = "WARNING"
    format: str = "%(levelname)s %(name)s: %(message)s"


class GameConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    scaling: ScalingConfig = Field(default_factory=ScalingConfig)
    crit: CritConfig = Field(default_factory=CritConfig)
    battle: BattleConfig = Field(default_factory=BattleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Path | str | None = None) -> GameConfig:
    """Load config.toml from the project root (or an explicit path).

    A missing file yields the defaults. An explicit path that does not
    exist is an error, since the caller asked for that file specifically.
    """
    if path is None:
        config_path = DEFAULT_CONFIG_PATH
        if not config_path.exists():
            return GameConfig()
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    logger.debug("Loaded config from %s", config_path)
    return GameConfig.model_validate(data)
