"""Typer CLI application."""
from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Optional

import typer

from skirmish.config import GameConfig, load_config
from skirmish.content.loader import Catalog, load_catalog

app = typer.Typer(
    name="skirmish",
    help="Turn-based RPG combat engine: duels, enemy listings and balance simulations",
    no_args_is_help=True,
)


class AppContext:
    def __init__(self, config: GameConfig, catalog: Catalog):
        self.config = config
        self.catalog = catalog


def _setup_logging(config: GameConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format=config.logging.format)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a config.toml"),
    content_dir: Optional[Path] = typer.Option(None, "--content", help="Directory with content tables"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Load configuration and content once for every command."""
    from skirmish.cli.battle_display import BattleDisplay

    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        BattleDisplay().show_error(str(e))
        raise typer.Exit(code=2)
    _setup_logging(config, verbose)
    catalog = load_catalog(content_dir or config.battle.content_dir)
    ctx.obj = AppContext(config, catalog)


def _require_enemy(app_ctx: AppContext, enemy_id: str) -> None:
    from skirmish.cli.battle_display import BattleDisplay
    from skirmish.mechanics.scaling import parse_scaled_id

    parsed = parse_scaled_id(enemy_id)
    base_id = parsed[0] if parsed else enemy_id
    if app_ctx.catalog.get_enemy(base_id) is None and app_ctx.catalog.get_enemy(enemy_id) is None:
        BattleDisplay().show_error(f"Unknown enemy: {enemy_id}")
        raise typer.Exit(code=1)


@app.command()
def enemies(
    ctx: typer.Context,
    level: Optional[int] = typer.Option(None, "--level", "-l", min=1, help="Preview stats scaled to this level"),
) -> None:
    """List the enemy catalog."""
    from skirmish.cli.battle_display import BattleDisplay
    from skirmish.mechanics.scaling import scale_enemy_template

    app_ctx: AppContext = ctx.obj
    rows = [app_ctx.catalog.enemies[k] for k in sorted(app_ctx.catalog.enemies)]
    if level:
        rows = [scale_enemy_template(t, level, app_ctx.config.scaling) for t in rows]
    BattleDisplay().show_enemies(rows, level=level)


@app.command()
def duel(
    ctx: typer.Context,
    enemy: Optional[list[str]] = typer.Argument(None, help="Enemy ids, e.g. goblin or goblin-lv5"),
    level: Optional[int] = typer.Option(None, "--level", "-l", min=1, help="Dungeon level for every enemy"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    policy: str = typer.Option("auto", "--policy", "-p", help="attack | auto"),
    max_turns: int = typer.Option(200, "--max-turns", help="Stop after this many actions"),
) -> None:
    """Auto-play one battle and print its log."""
    from skirmish.cli.battle_display import BattleDisplay
    from skirmish.engine.battle import BattleEngine
    from skirmish.engine.simulator import choose_player_action
    from skirmish.models.battle import Turn

    app_ctx: AppContext = ctx.obj
    enemy_ids = enemy or [app_ctx.config.battle.default_enemy]
    for enemy_id in enemy_ids:
        _require_enemy(app_ctx, enemy_id)
    if policy not in ("attack", "auto"):
        raise typer.BadParameter("policy must be 'attack' or 'auto'")

    # Keep the whole log so every line can be printed once.
    battle_config = app_ctx.config.battle.model_copy(update={"log_tail": max_turns * 20})
    config = app_ctx.config.model_copy(update={"battle": battle_config})

    display = BattleDisplay()
    engine = BattleEngine(app_ctx.catalog, config=config, rng=random.Random(seed))
    state = engine.start_battle(enemy_ids if len(enemy_ids) > 1 else enemy_ids[0], level=level)
    display.show_battle_start(state)

    shown = 0
    actions = 0
    while not state.over and actions < max_turns:
        if state.turn == Turn.PLAYER:
            display.show_status(state)
            state = choose_player_action(engine, state, policy)
        else:
            state = engine.enemy_act(state)
        actions += 1
        display.show_log(state.log[shown:])
        shown = len(state.log)

    display.show_result(state)


@app.command()
def simulate(
    ctx: typer.Context,
    enemy: str = typer.Argument("slime", help="Enemy id to fight"),
    battles: int = typer.Option(500, "--battles", "-n", min=1, help="Number of battles"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed"),
    level: Optional[int] = typer.Option(None, "--level", "-l", min=1, help="Enemy level"),
    policy: str = typer.Option("attack", "--policy", "-p", help="attack | auto"),
) -> None:
    """Run many battles against one enemy and report balance figures."""
    from skirmish.cli.battle_display import BattleDisplay
    from skirmish.engine.simulator import run_simulation

    app_ctx: AppContext = ctx.obj
    _require_enemy(app_ctx, enemy)
    if policy not in ("attack", "auto"):
        raise typer.BadParameter("policy must be 'attack' or 'auto'")

    summary = run_simulation(
        app_ctx.catalog, enemy, iterations=battles, config=app_ctx.config,
        seed=seed, level=level, policy=policy,
    )
    BattleDisplay().show_simulation(summary)


if __name__ == "__main__":
    app()
