"""
Cockpit CLI - Main application entry point.

Read-only inspection of a stored cockpit record: the tree with effective
statuses, duplicate-name lookup, per-domain summaries and linked groups.
"""

import logging
import sys

import typer
from rich.console import Console

from cockpit import __version__
from cockpit.cli import board
from cockpit.core.config.env import load_layered_env

app = typer.Typer(
    name="cockpit",
    help="Inspect cockpit status boards and their linked groups",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"cockpit version {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Cockpit - status board inspection.

    Examples:
        cockpit show board.json              # Tree with effective statuses
        cockpit find board.json "Pump 1"     # Same-named elements by group
        cockpit summary board.json           # Worst status per domain
        cockpit links board.json             # Linked groups and members
    """
    # Precedence: OS env > project .env.local > project .env > user .env
    setup_logging(debug)
    load_layered_env()
    ctx.obj = {"debug": debug}


app.command(name="show")(board.show)
app.command(name="find")(board.find)
app.command(name="summary")(board.summary)
app.command(name="links")(board.links)


def cli_main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    cli_main()
