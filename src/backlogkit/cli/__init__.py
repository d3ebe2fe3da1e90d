"""
backlogkit CLI - Main application entry point.

This module sets up the Typer CLI application with all commands.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console

from backlogkit import __version__
from backlogkit.cli import task

# Help panel names for command grouping
PANEL_READ = "Inspect Tasks"
PANEL_WRITE = "Change Tasks"
PANEL_ORDER = "Ordering and Identifiers"

# Create the main Typer app
app = typer.Typer(
    name="backlogkit",
    help="Read and edit Backlog.md task files",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"backlogkit {__version__}", highlight=False)
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    backlog_dir: Path = typer.Option(
        Path("backlog"),
        "--dir",
        help="Backlog directory (holds tasks/, drafts/ and config.yml)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    backlogkit - Backlog.md-compatible task files.

    Common Workflows:
        backlogkit list                          # Active tasks by ordinal
        backlogkit create "Fix login"            # New task
        backlogkit edit TASK-3 --status Done     # Change fields
        backlogkit check TASK-3 ac 1             # Toggle a checklist item
        backlogkit move TASK-3 active archived   # Archive
    """
    if debug:
        logging.basicConfig(level=logging.DEBUG)

    # Store options in context for commands
    ctx.obj = {"debug": debug, "backlog_dir": backlog_dir}


# =============================================================================
# Commands
# =============================================================================

app.command(name="list", rich_help_panel=PANEL_READ)(task.list_tasks)
app.command(name="show", rich_help_panel=PANEL_READ)(task.show)
app.command(name="create", rich_help_panel=PANEL_WRITE)(task.create)
app.command(name="edit", rich_help_panel=PANEL_WRITE)(task.edit)
app.command(name="check", rich_help_panel=PANEL_WRITE)(task.check)
app.command(name="move", rich_help_panel=PANEL_WRITE)(task.move)
app.command(name="delete", rich_help_panel=PANEL_WRITE)(task.delete)
app.command(name="reorder", rich_help_panel=PANEL_ORDER)(task.reorder)
app.command(name="repair-ordinals", rich_help_panel=PANEL_ORDER)(task.repair_ordinals)
app.command(name="next-id", rich_help_panel=PANEL_ORDER)(task.next_id)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
