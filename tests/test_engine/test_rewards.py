"""Tests for src/skirmish/engine/rewards.py."""
from __future__ import annotations

import pytest

from skirmish.engine.builders import base_progress, build_enemy, build_player
from skirmish.engine.collaborators import InMemoryProgressStore, ProgressionService
from skirmish.engine.rewards import RewardDispatcher
from skirmish.models.battle import BattleState


class RecordingBus:
    def __init__(self):
        self.emitted = []

    def emit(self, name, payload):
        self.emitted.append((name, payload))

    def names(self):
        return [name for name, _ in self.emitted]


class BrokenProgression:
    def apply_exp_gain(self, amount):
        raise RuntimeError("save slot locked")

    def grant_items(self, items):
        raise RuntimeError("save slot locked")


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def store():
    return InMemoryProgressStore()


@pytest.fixture
def dispatcher(catalog, store, bus):
    progression = ProgressionService(store, defaults=base_progress(catalog.player_base))
    return RewardDispatcher(catalog, progression, bus)


def _state(catalog, config, enemy_id="goblin"):
    player = build_player(catalog.player_base, None, catalog)
    return BattleState(player=player, enemies=[build_enemy(enemy_id, catalog, config.scaling)])


class TestOnEnemyDeath:
    def test_grants_exp_and_drops(self, dispatcher, catalog, config, store, bus):
        state = _state(catalog, config)
        goblin = state.enemies[0]
        goblin.hp = 0

        assert dispatcher.on_enemy_death(state, goblin) is True
        assert state.log == [
            "Goblin falls!",
            "Gained 10 EXP.",
            "Goblin dropped 2 × Goblin Ear.",
        ]
        assert state.player.exp == 10
        assert state.player.inventory["goblin_ear"] == 2
        assert store.load()["inventory"]["goblin_ear"] == 2
        assert bus.names() == ["kill", "exp_gained", "collect"]

    def test_processed_once(self, dispatcher, catalog, config):
        state = _state(catalog, config)
        goblin = state.enemies[0]
        dispatcher.on_enemy_death(state, goblin)
        assert dispatcher.on_enemy_death(state, goblin) is False
        assert state.log.count("Goblin falls!") == 1
        assert state.player.exp == 10

    def test_no_exp_no_exp_line(self, dispatcher, catalog, config):
        state = _state(catalog, config, "dummy")
        dispatcher.on_enemy_death(state, state.enemies[0])
        assert state.log == ["Dummy falls!"]

    @pytest.mark.parametrize("enemy_id, base_id", [
        ("goblin", "goblin"),
        ("goblin-lv3", "goblin"),
        ("dummy", "dummy"),
    ])
    def test_kill_reports_base_id(self, dispatcher, catalog, config, bus, enemy_id, base_id):
        state = _state(catalog, config, enemy_id)
        dispatcher.on_enemy_death(state, state.enemies[0])
        assert bus.emitted[0] == ("kill", {"enemy_id": base_id, "qty": 1})

    def test_kill_reported_once(self, dispatcher, catalog, config, bus):
        state = _state(catalog, config)
        dispatcher.on_enemy_death(state, state.enemies[0])
        dispatcher.on_enemy_death(state, state.enemies[0])
        assert bus.names().count("kill") == 1


class TestGrantExp:
    def test_level_up_heals_and_announces(self, dispatcher, catalog, config, bus):
        state = _state(catalog, config)
        state.player.hp = 5
        dispatcher.grant_exp(state, 100)

        player = state.player
        assert player.level == 2
        assert player.unspent_points == 1
        assert player.max_hp == 48
        assert player.hp == 48
        assert "Level Up! You are now level 2." in state.log
        name, payload = bus.emitted[-1]
        assert name == "level_up"
        assert payload["level"] == 2
        assert payload["pending_choices"] == [{"level": 2, "options": ["firebolt", "multi-shot"]}]

    def test_no_level_up_keeps_hp(self, dispatcher, catalog, config):
        state = _state(catalog, config)
        state.player.hp = 5
        dispatcher.grant_exp(state, 30)
        assert state.player.hp == 5
        assert state.player.exp == 30

    def test_progression_failure_logged_not_raised(self, catalog, config, bus):
        dispatcher = RewardDispatcher(catalog, BrokenProgression(), bus)
        state = _state(catalog, config)
        goblin = state.enemies[0]
        dispatcher.on_enemy_death(state, goblin)
        assert state.player.exp == 0
        assert state.player.inventory["goblin_ear"] == 2
        assert "Gained 10 EXP." in state.log
