"""BuildIt game CLI.

Scaffold games, apply improvement requests, and inspect the session
state that decides whether the next improvement resumes its agent
session or starts fresh.

Usage:
    uv run python -m buildit.environment.cli generate "Create a space race game"
    uv run python -m buildit.environment.cli improve game_1755120361896 "Add a timer"
    uv run python -m buildit.environment.cli session game_1755120361896
    uv run python -m buildit.environment.cli list
"""

import asyncio
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from buildit.agent.config import settings
from buildit.agent.models import ImproveResult, SessionInfo
from buildit.environment.generator import GameGenerationError, generate_game
from buildit.environment.improver import GameImprover
from buildit.lib.metadata import MetadataNotFoundError
from buildit.lib.registry import GameRegistry, RoomRegistrationError

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="buildit",
    help="Generate and improve multiplayer browser games",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()


@app.callback(invoke_without_command=True)
def callback(ctx: typer.Context) -> None:
    """Generate and improve multiplayer browser games."""
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)


def _require_api_key() -> None:
    if not settings.anthropic_api_key:
        typer.echo("Error: ANTHROPIC_API_KEY is not configured", err=True)
        raise typer.Exit(code=1)


def _load_registry() -> GameRegistry:
    registry = GameRegistry()
    count = registry.scan(settings.games_path)
    logger.debug("Registered %d game rooms from %s", count, settings.games_path)
    return registry


def _print_improve_result(result: ImproveResult) -> None:
    status = "[green]ok[/green]" if result.success else "[red]failed[/red]"
    console.print(f"{status} {result.message}")


def _print_session_info(info: SessionInfo) -> None:
    typer.echo(f"\nGame: {info.game_name} ({info.game_id})")
    typer.echo(f"Session held: {'yes' if info.has_session else 'no'}")
    typer.echo(f"Improvements: {info.improvement_count} total, "
               f"{info.session_improvement_count} in session")
    typer.echo(f"Context size: {info.context_size} tokens")
    typer.echo(f"Last cost: ${info.last_improvement_cost:.4f}")
    if info.last_improvement_at:
        typer.echo(f"Last improvement: {info.last_improvement_at.isoformat()}")
    typer.echo(f"Next request: {info.next_directive} ({info.next_reason})")
    if not info.can_improve:
        typer.echo("An improvement is currently running")


@app.command()
def generate(
    prompt: Annotated[str, typer.Argument(help="Description of the game to create")],
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
) -> None:
    """Scaffold a new game and let the agent build it."""
    _setup_logging(verbose)
    _require_api_key()

    registry = _load_registry()
    try:
        result = asyncio.run(generate_game(prompt, registry=registry))
    except (GameGenerationError, RoomRegistrationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"\nCreated: {result.game_name} ({result.game_id})")
    typer.echo(f"Room class: {result.room_class}")
    if result.session_id:
        typer.echo(f"Session: {result.session_id}")
    if result.cost_usd:
        typer.echo(f"Cost: ${result.cost_usd:.4f}")


@app.command()
def improve(
    game_id: Annotated[str, typer.Argument(help="Game to improve")],
    request: Annotated[str, typer.Argument(help="The improvement to make")],
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
) -> None:
    """Apply one improvement request to a game."""
    _setup_logging(verbose)
    _require_api_key()

    improver = GameImprover(_load_registry())
    result = asyncio.run(improver.improve(game_id, request))
    _print_improve_result(result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def session(
    game_id: Annotated[str, typer.Argument(help="Game to inspect")],
) -> None:
    """Show a game's session state and what the next request would do."""
    _setup_logging(False)

    improver = GameImprover(GameRegistry())
    try:
        info = improver.session_info(game_id)
    except (ValueError, MetadataNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    _print_session_info(info)


@app.command(name="list")
def list_games() -> None:
    """List playable games with their session state."""
    _setup_logging(False)

    games = GameImprover(GameRegistry()).list_games_with_sessions()
    if not games:
        typer.echo(f"No games in {settings.games_path}")
        return

    table = Table(title="Games")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Improvements", justify="right")
    table.add_column("Session")
    table.add_column("Created")
    for game in games:
        table.add_row(
            game.id,
            f"{game.icon} {game.name}",
            str(game.improvement_count),
            "active" if game.has_active_session else "-",
            game.created_at.strftime("%Y-%m-%d %H:%M") if game.created_at else "-",
        )
    console.print(table)


if __name__ == "__main__":
    app()
