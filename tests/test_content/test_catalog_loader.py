"""Tests for src/skirmish/content/loader.py."""
from __future__ import annotations

import pytest

from skirmish.content.loader import Catalog, load_catalog
from skirmish.models.content import ItemKind, SpellKind, StatusType


@pytest.fixture(scope="module")
def shipped():
    return load_catalog()


class TestShippedContent:
    @pytest.mark.parametrize("enemy_id", ["goblin", "slime", "dark_mage", "dragon_whelp", "training_dummy"])
    def test_enemies_present(self, shipped, enemy_id):
        assert shipped.get_enemy(enemy_id) is not None

    def test_enemy_fields(self, shipped):
        goblin = shipped.get_enemy("goblin")
        assert goblin.name == "Goblin"
        assert goblin.max_hp == 18
        assert goblin.def_ == 1
        assert goblin.element_mods == {"fire": 1.25}
        assert goblin.drops[0].id == "goblin_ear"

    def test_boss_flag(self, shipped):
        assert shipped.get_enemy("dragon_whelp").boss

    def test_enemy_spells_resolve(self, shipped):
        for template in shipped.enemies.values():
            for spell_id in template.spells:
                assert shipped.get_spell(spell_id) is not None, spell_id

    def test_drops_resolve(self, shipped):
        for template in shipped.enemies.values():
            for drop in template.drops:
                assert shipped.get_item(drop.id) is not None, drop.id

    def test_spell_effects_parsed(self, shipped):
        burn = shipped.get_spell("burn")
        assert burn.effects[0].type == StatusType.DOT
        assert shipped.get_spell("dark_orb").effects[0].stat == "def_"

    def test_heal_spell(self, shipped):
        assert shipped.get_spell("heal").kind == SpellKind.HEAL

    def test_item_kinds(self, shipped):
        assert shipped.get_item("potion").kind == ItemKind.HEAL
        assert shipped.get_item("iron_sword").kind == ItemKind.EQUIPMENT
        assert shipped.get_item("bone").kind == ItemKind.MATERIAL

    def test_player_base(self, shipped):
        base = shipped.player_base
        assert base.name == "Hero"
        assert base.spellbook == ["firebolt"]
        assert base.inventory["potion"] == 3
        assert base.gold == 25

    def test_tables_are_read_only(self, shipped):
        with pytest.raises(TypeError):
            shipped.enemies["ghost"] = None


class TestLookups:
    @pytest.mark.parametrize("spell_id", ["multi-shot", "multi_shot"])
    def test_spell_id_variants(self, shipped, spell_id):
        assert shipped.get_spell(spell_id).id == "multi-shot"

    def test_unknown_ids(self, shipped):
        assert shipped.get_enemy("lich") is None
        assert shipped.get_spell("meteor") is None
        assert shipped.get_item("elixir") is None

    def test_item_name_falls_back_to_id(self, shipped):
        assert shipped.item_name("goblin_ear") == "Goblin Ear"
        assert shipped.item_name("elixir") == "elixir"


class TestMalformedContent:
    def test_invalid_spell_row_dropped(self):
        catalog = Catalog.from_dicts(spells={
            "good": {"name": "Good"},
            "bad": {"kind": "explode"},
        })
        assert set(catalog.spells) == {"good"}

    def test_invalid_effects_dropped(self):
        catalog = Catalog.from_dicts(spells={"hex": {"effects": [
            {"type": "teleport"},
            {"type": "buff", "stat": "luck", "value": 1},
            {"type": "dot", "value": 2, "turns": "3"},
        ]}})
        effects = catalog.get_spell("hex").effects
        assert len(effects) == 1
        assert effects[0].type == StatusType.DOT
        assert effects[0].turns == 3

    def test_lenient_numbers(self):
        catalog = Catalog.from_dicts(enemies={"imp": {"maxHP": "12", "atk": "lots", "def": None}})
        imp = catalog.get_enemy("imp")
        assert imp.max_hp == 12
        assert imp.atk is None
        assert imp.def_ is None

    def test_unknown_item_kind_is_material(self):
        catalog = Catalog.from_dicts(items={"rock": {"kind": "pebble"}})
        assert catalog.get_item("rock").kind == ItemKind.MATERIAL

    def test_drops_without_id_dropped(self):
        catalog = Catalog.from_dicts(enemies={"rat": {"drops": [{"qty": 1}, {"itemId": "tail", "qty": "2"}]}})
        drops = catalog.get_enemy("rat").drops
        assert [(d.id, d.qty) for d in drops] == [("tail", 2)]


class TestLoadFromDirectory:
    def test_missing_files_give_empty_catalog(self, tmp_path):
        catalog = load_catalog(tmp_path)
        assert len(catalog.enemies) == 0
        assert catalog.player_base.name == "Hero"

    def test_rows_without_id_skipped(self, tmp_path):
        (tmp_path / "enemies.toml").write_text(
            '[[enemies]]\nname = "Nameless"\n\n[[enemies]]\nid = "bat"\nmaxHP = 4\n'
        )
        catalog = load_catalog(tmp_path)
        assert list(catalog.enemies) == ["bat"]
        assert catalog.get_enemy("bat").max_hp == 4

    def test_player_table_optional(self, tmp_path):
        (tmp_path / "player.toml").write_text('name = "Ada"\ngold = 3\n')
        assert load_catalog(tmp_path).player_base.name == "Ada"

    @pytest.mark.parametrize("filename, enemies", [
        ("enemies.toml", []),
        ("spells.toml", ["bat"]),
        ("items.toml", ["bat"]),
        ("player.toml", ["bat"]),
    ])
    def test_invalid_toml_treated_as_empty(self, tmp_path, filename, enemies):
        (tmp_path / "enemies.toml").write_text('[[enemies]]\nid = "bat"\nmaxHP = 4\n')
        (tmp_path / filename).write_text("this is [not toml\n")
        catalog = load_catalog(tmp_path)
        assert list(catalog.enemies) == enemies
        assert catalog.player_base.name == "Hero"
