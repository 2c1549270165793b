"""Rich rendering for battles, enemy listings and simulation results."""
from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from skirmish.engine.simulator import SimulationSummary
from skirmish.models.battle import BattleResult, BattleState
from skirmish.models.content import EnemyTemplate
from skirmish.models.entity import Entity

console = Console()

STATUS_COLORS = {"dot": "green", "stun": "yellow", "buff": "cyan", "debuff": "magenta"}


def hp_bar(current: int, maximum: int, width: int = 12) -> str:
    pct = max(0.0, current / maximum) if maximum > 0 else 0.0
    filled = int(pct * width)
    if pct > 0.5:
        color = "green"
    elif pct > 0.25:
        color = "yellow"
    else:
        color = "red"
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * (width - filled)}[/dim]"


def status_tags(entity: Entity) -> str:
    tags = []
    for status in entity.statuses:
        color = STATUS_COLORS.get(status.type.value, "white")
        tags.append(f"[{color}]{status.id}({status.turns_left})[/{color}]")
    return " ".join(tags)


class BattleDisplay:
    def __init__(self, console_: Console | None = None) -> None:
        self.console = console_ or console

    def show_battle_start(self, state: BattleState) -> None:
        names = ", ".join(e.name for e in state.enemies)
        boss = any(e.boss for e in state.enemies)
        label = "[bold magenta]BOSS FIGHT[/bold magenta]" if boss else "[bold red]BATTLE![/bold red]"
        self.console.print(Panel(
            f"{label}\n\n{state.player.name} faces: {names}",
            border_style="magenta" if boss else "red", box=box.HEAVY,
        ))

    def show_status(self, state: BattleState) -> None:
        table = Table(box=box.SIMPLE_HEAVY, border_style="red")
        table.add_column("Name", style="bold")
        table.add_column("HP")
        table.add_column("MP", justify="right")
        table.add_column("Statuses")
        p = state.player
        table.add_row(
            f"[green]{p.name}[/green] (Lv {p.level})",
            f"{hp_bar(p.hp, p.max_hp)} {p.hp}/{p.max_hp}",
            f"{p.mp}/{p.max_mp}",
            status_tags(p) or "-",
        )
        for e in state.enemies:
            table.add_row(
                f"[red]{e.name}[/red]",
                f"{hp_bar(e.hp, e.max_hp)} {e.hp}/{e.max_hp}",
                f"{e.mp}/{e.max_mp}",
                status_tags(e) or "-",
            )
        self.console.print(table)

    def show_log(self, lines: list[str]) -> None:
        for line in lines:
            self.console.print(f"  {line}", markup=False, highlight=False)

    def show_result(self, state: BattleState) -> None:
        if state.result == BattleResult.WIN:
            self.console.print(Panel("[bold green]Victory[/bold green]", border_style="green"))
        elif state.result == BattleResult.LOSS:
            self.console.print(Panel("[bold red]Defeat[/bold red]", border_style="red"))
        else:
            self.console.print(Panel("[yellow]The battle did not finish.[/yellow]", border_style="yellow"))

    def show_enemies(self, rows: list[EnemyTemplate], level: int | None = None) -> None:
        title = f"Enemies (level {level})" if level else "Enemies"
        table = Table(title=title, box=box.ROUNDED, border_style="cyan")
        table.add_column("Id", style="bold")
        table.add_column("Name")
        for col in ("HP", "MP", "ATK", "DEF", "MATK", "MDEF", "EXP"):
            table.add_column(col, justify="right")
        table.add_column("Element")

        def num(value: float | None) -> str:
            return "-" if value is None else str(int(value))

        for t in rows:
            name = f"[magenta]{t.name or t.id}[/magenta]" if t.boss else (t.name or t.id or "?")
            table.add_row(
                t.id or "?", name,
                num(t.max_hp), num(t.max_mp), num(t.atk), num(t.def_),
                num(t.m_atk), num(t.m_def), num(t.exp_reward),
                t.element or "-",
            )
        self.console.print(table)

    def show_simulation(self, summary: SimulationSummary) -> None:
        table = Table(title=f"Simulation vs {summary.enemy}", box=box.SIMPLE_HEAVY)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Iterations", str(summary.iterations))
        table.add_row("Wins", str(summary.wins))
        table.add_row("Losses", str(summary.losses))
        if summary.unfinished:
            table.add_row("Unfinished", str(summary.unfinished))
        table.add_row("Win rate", f"{summary.win_rate * 100:.2f}%")
        table.add_row("Avg turns", f"{summary.avg_turns:.2f}")
        table.add_row("Avg hits/battle", f"{summary.avg_hits:.2f}")
        table.add_row("Crit rate (observed)", f"{summary.crit_rate * 100:.2f}%")
        table.add_row("Avg dmg/hit", f"{summary.avg_damage_per_hit:.2f}")
        table.add_row("Avg dmg taken", f"{summary.avg_damage_taken:.2f}")
        self.console.print(table)

    def show_error(self, message: str) -> None:
        self.console.print(Text(message, style="bold red"))
