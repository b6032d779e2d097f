"""
valstats CLI - Command Line Interface for match statistics

Provides commands for:
- Summarizing a match telemetry file
- Adding and removing matches from the profile database
- Showing a player's aggregate profile
- Generating a default configuration file
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from valstats import __version__
from valstats.analysis.models import MatchSummary
from valstats.analysis.summarizer import summarize_match
from valstats.core.config import (
    configure_logging,
    generate_default_config,
    get_config,
    load_config,
    set_config,
)
from valstats.core.errors import ValstatsError
from valstats.core.telemetry import load_telemetry
from valstats.core.utils import format_percentage
from valstats.export import export_summary
from valstats.infra.database import DatabaseManager
from valstats.pipeline.orchestrator import MatchManager, OperationResult
from valstats.stats.sections import StatsSection

app = typer.Typer(
    name="valstats",
    help="Match statistics and player profiles for 5v5 tactical shooter matches",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]valstats[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (.yaml, .toml or .json)",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose output"),
) -> None:
    """valstats - match telemetry to player statistics"""
    config = load_config(config_file) if config_file else get_config()
    if verbose:
        config.logging.level = "DEBUG"
    set_config(config)
    configure_logging(config.logging)


def _open_manager(db_path: Optional[Path]) -> tuple[MatchManager, DatabaseManager]:
    config = get_config()
    db = DatabaseManager(db_path or config.storage.db_path)
    return MatchManager(db, config), db


def _print_result(result: OperationResult) -> None:
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    if result.success:
        console.print(f"[green]{result.message}[/green]")
    else:
        console.print(f"[red]Error:[/red] {result.message}")
        raise typer.Exit(1)


def _display_summary(summary: MatchSummary) -> None:
    info_table = Table(title="Match Information", show_header=False)
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")
    info_table.add_row("Match", summary.match_id)
    info_table.add_row("Map", summary.map)
    info_table.add_row("Rounds", str(len(summary.rounds)))
    for team in summary.teams:
        r = team.rounds
        result = "won" if team.won else "lost"
        info_table.add_row(
            str(team.team_id),
            f"{r.total} ({result}, {team.pick}) atk {r.attack} / def {r.defense} / ot {r.overtime}",
        )
    console.print(info_table)
    console.print()

    table = Table(title="Player Statistics")
    table.add_column("Player", style="cyan")
    table.add_column("Team")
    table.add_column("Agent")
    table.add_column("ACS", justify="right")
    table.add_column("K", justify="right")
    table.add_column("D", justify="right")
    table.add_column("A", justify="right")
    table.add_column("KAST", justify="right")
    table.add_column("ADR", justify="right")
    table.add_column("HS%", justify="right")
    table.add_column("FK/FD", justify="right")
    table.add_column("Trades", justify="right")

    for record in sorted(summary.records, key=lambda r: r.acs, reverse=True):
        table.add_row(
            record.name,
            str(record.team),
            record.agent,
            str(record.acs),
            str(record.kills),
            str(record.deaths),
            str(record.assists),
            f"{record.kast}%",
            str(record.adr),
            f"{record.hs_percentage}%",
            f"{record.first_bloods}/{record.first_deaths}",
            f"{record.trades}/{record.traded}",
        )

    console.print(table)
    console.print()


def _display_section(title: str, section: StatsSection) -> None:
    table = Table(title=title, show_header=False)
    table.add_column("Stat", style="cyan")
    table.add_column("Value", justify="right", style="green")
    games, rounds = section.games, section.rounds
    table.add_row("Games", f"{games.won}-{games.lost} ({format_percentage(games.pct)})")
    table.add_row("Rounds", f"{rounds.won}-{rounds.lost} ({format_percentage(rounds.pct)})")
    table.add_row("K / D / A", f"{section.total_kills} / {section.total_deaths} / {section.total_assists}")
    table.add_row("First bloods / deaths", f"{section.total_first_bloods} / {section.total_first_deaths}")
    table.add_row("Trades / traded", f"{section.total_trades} / {section.total_traded}")
    table.add_row("Avg ACS", f"{section.avg_acs:.1f}")
    table.add_row("Avg ADR", f"{section.avg_adr:.1f}")
    table.add_row("Avg KAST", format_percentage(section.avg_kast))
    table.add_row("Avg HS%", format_percentage(section.avg_hs_percentage))
    table.add_row("Avg damage delta", f"{section.avg_damage_delta:.1f}")
    console.print(table)

    if section.agents:
        agents = Table(title="Agents")
        agents.add_column("Agent", style="cyan")
        agents.add_column("Games", justify="right")
        agents.add_column("Win%", justify="right")
        agents.add_column("Avg ACS", justify="right")
        for name, agent in sorted(section.agents.items(), key=lambda x: x[1].games_played, reverse=True):
            agents.add_row(
                name, str(agent.games_played), format_percentage(agent.games.pct), f"{agent.avg_acs:.1f}"
            )
        console.print(agents)
    console.print()


@app.command()
def summarize(
    telemetry_path: Path = typer.Argument(
        ..., help="Match telemetry JSON file", exists=True, dir_okay=False, resolve_path=True
    ),
    team1_attacking: bool = typer.Option(
        True,
        "--team1-attacking/--team1-defending",
        help="Whether Team1 started the match on attack",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file (format detected from extension: .json, .csv)"
    ),
) -> None:
    """
    Summarize a match without storing it.
    """
    config = get_config()
    try:
        raw = load_telemetry(telemetry_path)
        summary = summarize_match(raw, team1_attacking, config.stats.regulation_rounds)
    except (ValstatsError, ValueError) as e:
        console.print(f"[red]Error summarizing match:[/red] {e}")
        raise typer.Exit(1)

    _display_summary(summary)

    if output:
        try:
            export_summary(
                summary,
                output,
                indent=config.export.json_indent,
                delimiter=config.export.csv_delimiter,
            )
        except ValueError as e:
            console.print(f"[red]Export failed:[/red] {e}")
            raise typer.Exit(1)
        console.print(f"[green]Results exported to:[/green] {output}")


@app.command()
def add(
    telemetry_path: Path = typer.Argument(
        ..., help="Match telemetry JSON file", exists=True, dir_okay=False, resolve_path=True
    ),
    season: Optional[str] = typer.Option(
        None, "--season", "-s", help="Season id (defaults to pipeline.current_season)"
    ),
    team1_attacking: bool = typer.Option(
        True,
        "--team1-attacking/--team1-defending",
        help="Whether Team1 started the match on attack",
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", help="Database file"),
) -> None:
    """
    Add a match and apply it to every player's profile.
    """
    season_id = season or get_config().pipeline.current_season
    if not season_id:
        console.print("[red]Error:[/red] no season given and pipeline.current_season is not set")
        raise typer.Exit(1)

    manager, db = _open_manager(db_path)
    try:
        result = manager.add_match(load_telemetry(telemetry_path), season_id, team1_attacking)
    except (ValstatsError, ValueError) as e:
        console.print(f"[red]Error adding match:[/red] {e}")
        raise typer.Exit(1)
    finally:
        db.close()
    _print_result(result)


@app.command()
def remove(
    match_id: str = typer.Argument(..., help="Id of a stored match"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="Database file"),
) -> None:
    """
    Remove a match and reverse it out of every player's profile.
    """
    manager, db = _open_manager(db_path)
    try:
        result = manager.remove_match(match_id)
    except ValstatsError as e:
        console.print(f"[red]Error removing match:[/red] {e}")
        raise typer.Exit(1)
    finally:
        db.close()
    _print_result(result)


@app.command()
def profile(
    puuid: str = typer.Argument(..., help="Player id"),
    season: Optional[str] = typer.Option(None, "--season", "-s", help="Show one season only"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="Database file"),
) -> None:
    """
    Show a player's aggregate statistics.
    """
    db = DatabaseManager(db_path or get_config().storage.db_path)
    try:
        player = db.get_player_profile(puuid)
    finally:
        db.close()

    if player is None:
        console.print(f"[red]Error:[/red] no profile for {puuid}")
        raise typer.Exit(1)

    console.print(f"\n[bold blue]{player.current_name}[/bold blue] ({player.puuid})\n")
    if season:
        section = player.season(season)
        if section is None:
            console.print(f"[yellow]No stats for season {season}[/yellow]")
            raise typer.Exit(1)
        _display_section(f"Season {season}", section)
    else:
        _display_section("Career", player.overall_stats)
        for season_id, section in sorted(player.season_stats.items()):
            _display_section(f"Season {season_id}", section)


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(..., help="Where to write the config (.yaml, .yml or .json)"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """
    Write a default configuration file.
    """
    if path.exists() and not force:
        console.print(f"[red]Error:[/red] {path} already exists (use --force to overwrite)")
        raise typer.Exit(1)
    try:
        generate_default_config(path)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Wrote default config to:[/green] {path}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
