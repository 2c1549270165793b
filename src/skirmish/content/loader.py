from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError

from skirmish.models.content import EnemyTemplate, ItemDef, PlayerBase, SpellDef
from skirmish.utils import id_variants

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent


def load_toml(filepath: Path) -> dict[str, Any]:
    with open(filepath, "rb") as f:
        return tomllib.load(f)


def _load_table(filepath: Path, key: str) -> list[dict[str, Any]]:
    if not filepath.exists():
        logger.warning("Content file missing: %s", filepath)
        return []
    try:
        data = load_toml(filepath)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("Content file %s is not valid TOML, treating it as empty: %s", filepath, exc)
        return []
    return [row for row in data.get(key, []) if isinstance(row, dict)]


def _index(rows: list[dict[str, Any]], model: type, table: str) -> dict[str, Any]:
    """Validate rows into models keyed by id. Rows that fail are skipped."""
    out: dict[str, Any] = {}
    for row in rows:
        row_id = row.get("id")
        if not row_id:
            logger.warning("Skipping %s row without an id: %r", table, row)
            continue
        try:
            out[str(row_id)] = model.model_validate(row)
        except ValidationError as exc:
            logger.warning("Skipping malformed %s %r: %s", table, row_id, exc)
    return out


def load_all_enemies(content_dir: Path = CONTENT_DIR) -> dict[str, EnemyTemplate]:
    return _index(_load_table(content_dir / "enemies.toml", "enemies"), EnemyTemplate, "enemy")


def load_all_spells(content_dir: Path = CONTENT_DIR) -> dict[str, SpellDef]:
    return _index(_load_table(content_dir / "spells.toml", "spells"), SpellDef, "spell")


def load_all_items(content_dir: Path = CONTENT_DIR) -> dict[str, ItemDef]:
    return _index(_load_table(content_dir / "items.toml", "items"), ItemDef, "item")


def load_player_base(content_dir: Path = CONTENT_DIR) -> PlayerBase:
    player_file = content_dir / "player.toml"
    if not player_file.exists():
        return PlayerBase()
    try:
        data = load_toml(player_file)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("Player base %s is not valid TOML, using defaults: %s", player_file, exc)
        return PlayerBase()
    try:
        return PlayerBase.model_validate(data.get("player", data))
    except ValidationError as exc:
        logger.warning("Malformed player base, using defaults: %s", exc)
        return PlayerBase()


class Catalog:
    """Read-only lookup over the content tables.

    Tables are frozen once built. Lookups return None for unknown ids.
    """

    def __init__(
        self,
        enemies: Mapping[str, EnemyTemplate] | None = None,
        spells: Mapping[str, SpellDef] | None = None,
        items: Mapping[str, ItemDef] | None = None,
        player_base: PlayerBase | None = None,
    ) -> None:
        self.enemies = MappingProxyType(dict(enemies or {}))
        self.spells = MappingProxyType(dict(spells or {}))
        self.items = MappingProxyType(dict(items or {}))
        self.player_base = player_base or PlayerBase()

    @classmethod
    def from_dicts(
        cls,
        enemies: Mapping[str, dict] | None = None,
        spells: Mapping[str, dict] | None = None,
        items: Mapping[str, dict] | None = None,
        player_base: dict | None = None,
    ) -> Catalog:
        """Build a catalog from plain records, as tests and tools author them."""
        def rows(table: Mapping[str, dict] | None) -> list[dict]:
            return [{"id": k, **v} for k, v in (table or {}).items()]

        return cls(
            enemies=_index(rows(enemies), EnemyTemplate, "enemy"),
            spells=_index(rows(spells), SpellDef, "spell"),
            items=_index(rows(items), ItemDef, "item"),
            player_base=PlayerBase.model_validate(player_base or {}),
        )

    def get_enemy(self, enemy_id: str) -> EnemyTemplate | None:
        return self.enemies.get(enemy_id)

    def get_spell(self, spell_id: str) -> SpellDef | None:
        """Spell ids are matched with either hyphens or underscores."""
        for candidate in id_variants(spell_id):
            spell = self.spells.get(candidate)
            if spell is not None:
                return spell
        return None

    def get_item(self, item_id: str) -> ItemDef | None:
        return self.items.get(item_id)

    def item_name(self, item_id: str) -> str:
        item = self.get_item(item_id)
        return item.display_name if item else item_id


def load_catalog(content_dir: Path | str | None = None) -> Catalog:
    directory = Path(content_dir) if content_dir else CONTENT_DIR
    catalog = Catalog(
        enemies=load_all_enemies(directory),
        spells=load_all_spells(directory),
        items=load_all_items(directory),
        player_base=load_player_base(directory),
    )
    logger.info(
        "Loaded catalog: %d enemies, %d spells, %d items",
        len(catalog.enemies), len(catalog.spells), len(catalog.items),
    )
    return catalog
