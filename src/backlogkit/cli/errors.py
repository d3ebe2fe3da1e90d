"""
Standardized error handling and exit codes for the backlogkit CLI.

Every command reports library errors through report_backlog_error so the
message layout and exit code stay the same across the CLI.
"""

from enum import IntEnum

from rich.console import Console

from backlogkit.core.tasks.exceptions import (
    BacklogError,
    InvalidMoveError,
    TaskNotFoundError,
    WriteConflictError,
)

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for backlogkit CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, including write conflicts."""

    USER_ERROR = 2
    """Bad input or a task that does not exist (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Task not found: TASK-9",
        ...     solution="backlogkit list",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_invalid_option_error(value: str, valid_options: list[str]) -> None:
    """Print error for an option value outside the allowed set."""
    print_error(
        f"Invalid value: {value}",
        reason=f"Valid options: {', '.join(valid_options)}",
    )


def report_backlog_error(error: BacklogError) -> ExitCode:
    """
    Print a BacklogError and pick the exit code for it.

    Returns:
        The exit code the command should exit with
    """
    if isinstance(error, TaskNotFoundError):
        print_error(str(error), solution="backlogkit list --scope all")
        return ExitCode.USER_ERROR
    if isinstance(error, WriteConflictError):
        print_error(
            str(error),
            reason="The file changed on disk after it was read",
            solution="Re-run the command to apply it to the current file",
        )
        return ExitCode.GENERAL_ERROR
    if isinstance(error, InvalidMoveError):
        print_error(str(error))
        return ExitCode.USER_ERROR
    print_error(str(error))
    return ExitCode.GENERAL_ERROR
