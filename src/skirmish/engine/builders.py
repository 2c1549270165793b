"""Build runtime Player and Enemy entities from catalog templates."""
from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Sequence, Union

from pydantic import ValidationError

from skirmish.config import ScalingConfig
from skirmish.content.loader import Catalog
from skirmish.mechanics import scaling
from skirmish.mechanics.derived_stats import recompute_derived
from skirmish.models.content import BASE_STAT_KEYS, EnemyTemplate, PlayerBase
from skirmish.models.entity import Attributes, CombatStats, Enemy, Player
from skirmish.utils import safe_int

logger = logging.getLogger(__name__)

EnemySource = Union[str, Mapping[str, Any], EnemyTemplate]

PLAYER_ID = "player"

# Progress records may use either spelling.
_PROGRESS_KEYS = {
    "unspentPoints": "unspent_points",
    "spells": "spellbook",
}


def _template_for_id(enemy_id: str, catalog: Catalog) -> tuple[EnemyTemplate, str, int | None]:
    parsed = scaling.parse_scaled_id(enemy_id)
    if parsed is not None:
        base_id, level = parsed
        template = catalog.get_enemy(base_id)
        if template is not None:
            return template, f"{base_id}-lv{level}", level
    template = catalog.get_enemy(enemy_id)
    if template is None:
        logger.warning("Unknown enemy %r, building it from defaults", enemy_id)
        template = EnemyTemplate(id=enemy_id)
    return template, enemy_id, None


def _template_for_spec(spec: Mapping[str, Any], catalog: Catalog) -> tuple[EnemyTemplate, str, int | None]:
    level = safe_int(spec.get("level"), 0) or None
    base_id = spec.get("baseId") or spec.get("base_id")
    data: dict[str, Any] = {}
    if base_id:
        base = catalog.get_enemy(base_id)
        if base is None:
            logger.warning("Unknown base enemy %r in inline spec", base_id)
        else:
            data = base.model_dump(exclude_none=True)
    data.update(spec)
    for key in ("id", "name"):
        if data.get(key) is not None:
            data[key] = str(data[key])
    try:
        template = EnemyTemplate.model_validate(data)
    except ValidationError as exc:
        logger.warning("Malformed enemy spec %r, using defaults: %s", spec, exc)
        template = EnemyTemplate()

    if spec.get("id"):
        final_id = str(spec["id"])
    elif base_id:
        final_id = f"{base_id}-lv{level}" if level else str(base_id)
    else:
        final_id = template.id or "enemy"
    return template, final_id, level


def _enemy_from_template(template: EnemyTemplate, enemy_id: str) -> Enemy:
    def stat(value: float | None, default: int) -> int:
        return default if value is None else max(0, math.floor(value))

    atk = stat(template.atk, scaling.DEFAULT_ATK)
    def_ = stat(template.def_, scaling.DEFAULT_DEF)
    base = CombatStats(
        atk=atk,
        def_=def_,
        m_atk=stat(template.m_atk, atk),
        m_def=stat(template.m_def, def_),
        max_hp=stat(template.max_hp, scaling.DEFAULT_MAX_HP) or scaling.DEFAULT_MAX_HP,
        max_mp=stat(template.max_mp, scaling.DEFAULT_MAX_MP),
    )
    enemy = Enemy(
        id=enemy_id,
        name=template.name or enemy_id,
        base=base,
        exp_reward=stat(template.exp_reward, scaling.DEFAULT_EXP),
        element=template.element,
        element_mods=dict(template.element_mods),
        drops=list(template.drops),
        spells=list(template.spells),
        boss=template.boss,
        notes=template.notes,
        scaled_level=template.scaled_level,
    )
    enemy.set_combat_stats(base)
    enemy.hp = enemy.max_hp
    enemy.mp = enemy.max_mp
    return enemy


def build_enemy(
    source: EnemySource,
    catalog: Catalog,
    config: ScalingConfig,
    level: int | None = None,
) -> Enemy:
    """Build one enemy from an id, a scaled id, a ``{baseId, level}`` spec or an inline stat block.

    An explicit ``level`` (the dungeon level) wins over any level the source names.
    """
    if isinstance(source, EnemyTemplate):
        template, enemy_id, source_level = source, source.id or "enemy", None
    elif isinstance(source, str):
        template, enemy_id, source_level = _template_for_id(source, catalog)
    elif isinstance(source, Mapping):
        template, enemy_id, source_level = _template_for_spec(source, catalog)
    else:
        raise TypeError(f"cannot build an enemy from {type(source).__name__}")

    runtime_level = level if level is not None else source_level
    if runtime_level:
        template = scaling.scale_enemy_template(template, runtime_level, config)
    return _enemy_from_template(template, enemy_id)


def build_enemies(
    id_or_spec: EnemySource | Sequence[EnemySource],
    catalog: Catalog,
    config: ScalingConfig,
    level: int | None = None,
) -> tuple[list[Enemy], Enemy | None]:
    """Build every enemy named by ``id_or_spec``. The first one is the primary target."""
    if isinstance(id_or_spec, (str, Mapping, EnemyTemplate)):
        sources = [id_or_spec]
    else:
        sources = list(id_or_spec)
    enemies = [build_enemy(src, catalog, config, level=level) for src in sources]
    return enemies, (enemies[0] if enemies else None)


def _merge_progress(base: PlayerBase, progress: Mapping[str, Any] | None) -> PlayerBase:
    merged = base.model_dump()
    for key, value in (progress or {}).items():
        key = _PROGRESS_KEYS.get(key, key)
        if key not in merged or value is None:
            continue
        if key == "stats" and isinstance(value, Mapping):
            merged["stats"] = {**merged["stats"], **value}
        else:
            merged[key] = value
    try:
        return PlayerBase.model_validate(merged)
    except ValidationError as exc:
        logger.warning(f"Ignoring malformed saved progress: {exc}")
        return base


def attributes_from(stats: Mapping[str, Any]) -> Attributes:
    values = {}
    for key, value in stats.items():
        key = str(key).upper()
        if key in BASE_STAT_KEYS:
            values[key] = safe_int(value, 0)
    return Attributes(**values)


def build_player(
    base: PlayerBase,
    progress: Mapping[str, Any] | None,
    catalog: Catalog,
) -> Player:
    """Merge saved progress over the base template and derive combat stats at full HP/MP."""
    merged = _merge_progress(base, progress)
    player = Player(
        id=PLAYER_ID,
        name=merged.name,
        level=max(1, merged.level),
        exp=max(0, merged.exp),
        unspent_points=max(0, merged.unspent_points),
        stats=attributes_from(merged.stats),
        equipped=dict(merged.equipped),
        inventory={k: v for k, v in merged.inventory.items() if v > 0},
        spells=list(merged.spellbook),
        gold=merged.gold,
    )
    recompute_derived(player, catalog, heal=True)
    return player


def base_progress(base: PlayerBase) -> dict[str, Any]:
    """The progress record a fresh character starts with."""
    return {
        "level": base.level,
        "exp": base.exp,
        "unspent_points": base.unspent_points,
        "stats": dict(base.stats),
        "spells": list(base.spellbook),
        "inventory": dict(base.inventory),
        "gold": base.gold,
        "equipped": dict(base.equipped),
        "pending_spell_choices": [],
    }
