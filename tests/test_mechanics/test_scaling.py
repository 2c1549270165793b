"""Tests for src/skirmish/mechanics/scaling.py."""
from __future__ import annotations

import pytest

from skirmish.config import ScalingConfig
from skirmish.mechanics.scaling import (
    parse_scaled_id,
    scale_enemy_template,
    scale_exp_reward,
    scale_exponential,
    scale_linear,
)
from skirmish.models.content import EnemyTemplate


@pytest.fixture
def scaling() -> ScalingConfig:
    return ScalingConfig()


class TestParseScaledId:
    @pytest.mark.parametrize("enemy_id, expected", [
        ("goblin-lv5", ("goblin", 5)),
        ("goblin_lv12", ("goblin", 12)),
        ("dark-mage-LV3", ("dark-mage", 3)),
    ])
    def test_scaled_ids(self, enemy_id, expected):
        assert parse_scaled_id(enemy_id) == expected

    @pytest.mark.parametrize("enemy_id", ["goblin", "lv5", "goblin-lv", None, 42])
    def test_not_scaled(self, enemy_id):
        assert parse_scaled_id(enemy_id) is None


class TestScaleHelpers:
    def test_linear_level_one_is_floored_base(self):
        assert scale_linear(10.7, 1, 0.5) == 10

    def test_linear_growth(self):
        assert scale_linear(10, 3, 0.06) == 11

    def test_exponential_growth(self):
        assert scale_exponential(10, 3, 0.10) == 12

    def test_exponential_level_cap(self):
        assert scale_exponential(10, 100, 0.10, level_cap=20) == scale_exponential(10, 21, 0.10, level_cap=20)

    def test_never_negative(self):
        assert scale_linear(-5, 4, 0.1) == 0
        assert scale_exponential(-5, 4, 0.1) == 0


class TestScaleEnemyTemplate:
    def test_level_three_hp(self, scaling):
        scaled = scale_enemy_template(EnemyTemplate(max_hp=10, atk=10), 3, scaling)
        assert scaled.max_hp == 12
        assert scaled.atk == 11

    def test_level_one_unchanged(self, scaling):
        scaled = scale_enemy_template(EnemyTemplate(max_hp=10, atk=10), 1, scaling)
        assert scaled.max_hp == 10
        assert scaled.atk == 10

    def test_missing_fields_use_defaults(self, scaling):
        scaled = scale_enemy_template(EnemyTemplate(atk=6, def_=2), 1, scaling)
        assert scaled.max_hp == 10
        assert scaled.max_mp == 0
        assert scaled.m_atk == 6
        assert scaled.m_def == 2
        assert scaled.exp_reward == 0

    def test_template_untouched(self, scaling):
        template = EnemyTemplate(id="goblin", max_hp=10, atk=10)
        scale_enemy_template(template, 5, scaling)
        assert template.max_hp == 10
        assert template.scaled_level is None

    def test_records_level(self, scaling):
        assert scale_enemy_template(EnemyTemplate(), 4, scaling).scaled_level == 4

    def test_zero_reward_stays_zero(self, scaling):
        scaled = scale_enemy_template(EnemyTemplate(exp_reward=0, boss=True), 10, scaling)
        assert scaled.exp_reward == 0


class TestScaleExpReward:
    def test_linear(self, scaling):
        assert scale_exp_reward(100, 3, scaling) == 132

    def test_exponential(self):
        assert scale_exp_reward(100, 3, ScalingConfig(exp_mode="exponential")) == 134

    def test_boss_bonus(self, scaling):
        assert scale_exp_reward(100, 3, scaling, boss=True) == 198

    def test_dungeon_multiplier_applied_last(self):
        assert scale_exp_reward(100, 3, ScalingConfig(dungeon_exp_mult=2.0), boss=True) == 396

    def test_level_one_ignores_multipliers(self):
        assert scale_exp_reward(100, 1, ScalingConfig(dungeon_exp_mult=3.0), boss=True) == 100

    def test_negative_dungeon_multiplier_clamped(self):
        config = ScalingConfig(dungeon_exp_mult=-2)
        assert config.dungeon_exp_mult == 0
        assert scale_exp_reward(100, 3, config) == 0
