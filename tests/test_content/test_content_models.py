"""Tests for src/skirmish/models/content.py."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from skirmish.models.content import (
    EffectDef,
    EnemyTemplate,
    ItemDef,
    PlayerBase,
    SpellDef,
    canonical_stat,
)


class TestCanonicalStat:
    @pytest.mark.parametrize("raw, expected", [
        ("str", "STR"),
        ("CRITDMG", "CRITDMG"),
        ("def", "def_"),
        ("Defense", "def_"),
        ("mAtk", "m_atk"),
        ("maxHP", "max_hp"),
        ("luck", None),
    ])
    def test_aliases(self, raw, expected):
        assert canonical_stat(raw) == expected


class TestEffectDef:
    def test_defaults(self):
        effect = EffectDef(type="stun")
        assert effect.turns == 1
        assert effect.value == 0
        assert effect.stat is None

    def test_turns_alias_and_clamp(self):
        assert EffectDef.model_validate({"type": "dot", "turnsLeft": 4}).turns == 4
        assert EffectDef.model_validate({"type": "dot", "turns": -2}).turns == 0

    def test_unknown_stat_rejected(self):
        with pytest.raises(ValidationError):
            EffectDef(type="buff", stat="luck")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            EffectDef(type="teleport")


class TestSpellDef:
    def test_camel_case_fields(self):
        spell = SpellDef.model_validate({
            "id": "smash", "damageType": "Physical", "powerMult": "1.5",
            "canCrit": False, "target": "aoe", "cost": "-3",
        })
        assert spell.is_physical
        assert spell.power_mult == 1.5
        assert not spell.can_crit
        assert spell.is_aoe
        assert spell.cost == 0

    def test_unknown_damage_type_is_magical(self):
        assert SpellDef(id="x", damage_type="psychic").damage_type == "magical"

    def test_zero_power_mult_means_one(self):
        assert SpellDef(id="x", power_mult=0).power_mult == 1.0

    def test_display_name(self):
        assert SpellDef(id="zap").display_name == "zap"


class TestItemDef:
    def test_equipment_bonus(self):
        item = ItemDef.model_validate({
            "id": "ring", "kind": "equipment",
            "bonus": {"def": "2", "maxHP": 5, "stats": {"dex": 1}},
        })
        assert item.bonus.def_ == 2
        assert item.bonus.max_hp == 5
        assert item.bonus.stats == {"DEX": 1}

    def test_aoe_flag(self):
        assert ItemDef(id="bomb", aoe=True).is_aoe


class TestEnemyTemplate:
    def test_missing_numbers_are_none(self):
        template = EnemyTemplate(id="blob")
        assert template.atk is None
        assert template.max_hp is None

    def test_non_dict_mods_ignored(self):
        assert EnemyTemplate(id="blob", elementMods="fire").element_mods == {}

    def test_spells_cleaned(self):
        assert EnemyTemplate(id="blob", spells=["zap", "", None]).spells == ["zap"]


class TestPlayerBase:
    def test_defaults(self):
        base = PlayerBase()
        assert base.level == 1
        assert base.stats == {"STR": 3, "DEX": 3, "MAG": 3, "CON": 3}

    def test_spells_alias(self):
        assert PlayerBase.model_validate({"spells": ["heal"]}).spellbook == ["heal"]
