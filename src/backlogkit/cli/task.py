"""
backlogkit CLI - task commands.

Thin commands over TaskWriter. Every command reads the backlog directory
from the global ``--dir`` option and turns BacklogError into a red
``Error:`` line and a non-zero exit code.
"""

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from backlogkit.cli.errors import ExitCode, print_invalid_option_error, report_backlog_error
from backlogkit.core.tasks.exceptions import BacklogError
from backlogkit.core.tasks.graph import RelationshipResolver
from backlogkit.core.tasks.models import ChecklistKind, TaskPatch, TaskRecord, TaskScope
from backlogkit.core.tasks.ordinals import sort_records
from backlogkit.core.tasks.writer import TaskWriter

console = Console()

_SORT_FIELDS = ["ordinal", "title", "id", "priority", "status", "created", "updated"]
_GROUP_ALIASES = {
    "ac": ChecklistKind.ACCEPTANCE_CRITERIA,
    "acceptance": ChecklistKind.ACCEPTANCE_CRITERIA,
    "acceptance_criteria": ChecklistKind.ACCEPTANCE_CRITERIA,
    "dod": ChecklistKind.DEFINITION_OF_DONE,
    "definition_of_done": ChecklistKind.DEFINITION_OF_DONE,
}


def _writer(ctx: typer.Context) -> TaskWriter:
    obj = ctx.obj or {}
    return TaskWriter.local(Path(obj.get("backlog_dir", "backlog")))


def _fail(error: BacklogError) -> typer.Exit:
    return typer.Exit(report_backlog_error(error))


def _print_json(data: Any) -> None:
    console.print(
        json.dumps(data, indent=2), markup=False, highlight=False, emoji=False, soft_wrap=True
    )


def _parse_scope(value: str) -> TaskScope:
    try:
        return TaskScope(value.lower())
    except ValueError:
        print_invalid_option_error(value, [s.value for s in TaskScope])
        raise typer.Exit(ExitCode.USER_ERROR)


def _parse_scopes(value: str) -> list[TaskScope]:
    """Parse a --scope value that may also be ``all``."""
    if value.lower() == "all":
        return list(TaskScope)
    try:
        return [TaskScope(value.lower())]
    except ValueError:
        print_invalid_option_error(value, [s.value for s in TaskScope] + ["all"])
        raise typer.Exit(ExitCode.USER_ERROR)


def _status_style(writer: TaskWriter, status: str) -> str:
    if writer.config.is_terminal(status):
        return "green"
    if status.casefold() == writer.config.first_status.casefold():
        return "white"
    return "yellow"


def _print_task(task: TaskRecord, writer: TaskWriter, context: list[TaskRecord]) -> None:
    resolver = RelationshipResolver(context, writer.config.resolved_terminal_statuses)
    links = resolver.resolve(task)

    console.print(f"[bold cyan]{task.id}[/bold cyan] {task.title}", highlight=False)
    console.print(f"[dim]Status:[/dim] {task.status}", highlight=False)
    if task.priority:
        console.print(f"[dim]Priority:[/dim] {task.priority}", highlight=False)
    if task.assignees:
        console.print(f"[dim]Assignees:[/dim] {', '.join(task.assignees)}", highlight=False)
    if task.labels:
        console.print(f"[dim]Labels:[/dim] {', '.join(task.labels)}", highlight=False)
    if task.milestone:
        console.print(f"[dim]Milestone:[/dim] {task.milestone}", highlight=False)
    if task.created:
        console.print(f"[dim]Created:[/dim] {task.created}", highlight=False)
    if task.updated:
        console.print(f"[dim]Updated:[/dim] {task.updated}", highlight=False)
    if task.file_path:
        console.print(f"[dim]File:[/dim] {task.file_path}", highlight=False)

    if links.parent or links.parent_missing:
        suffix = " (missing)" if links.parent_missing else ""
        console.print(f"[dim]Parent:[/dim] {task.parent_id}{suffix}", highlight=False)
    if links.children:
        console.print(f"[dim]Subtasks:[/dim] {', '.join(links.children)}", highlight=False)
    if links.blocked_by:
        parts = []
        for ref in links.blocked_by:
            if ref.missing:
                parts.append(f"{ref.id} (missing)")
            else:
                parts.append(f"{ref.id} ({ref.status})")
        label = "[red]Blocked by:[/red]" if links.is_blocked else "[dim]Depends on:[/dim]"
        console.print(f"{label} {', '.join(parts)}", highlight=False)
    if links.blocks:
        console.print(f"[dim]Blocks:[/dim] {', '.join(links.blocks)}", highlight=False)

    if task.description:
        console.print()
        console.print(task.description, markup=False, highlight=False)

    for title, items in (
        ("Acceptance Criteria", task.acceptance_criteria),
        ("Definition of Done", task.definition_of_done),
    ):
        if not items:
            continue
        console.print()
        console.print(f"[bold]{title}[/bold]")
        for item in items:
            mark = "[green]✓[/green]" if item.checked else "[dim]○[/dim]"
            number = f"#{item.number} " if item.number is not None else ""
            console.print(f"  {mark} {number}{item.text}", highlight=False)


def list_tasks(
    ctx: typer.Context,
    status: str | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Filter by status (case-insensitive)",
    ),
    scope: str = typer.Option(
        "active",
        "--scope",
        help="Scope to list: active, draft, completed, archived or all",
    ),
    sort: str = typer.Option(
        "ordinal",
        "--sort",
        help=f"Sort field: {', '.join(_SORT_FIELDS)}",
    ),
    reverse: bool = typer.Option(False, "--reverse", "-r", help="Reverse the sort"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    List tasks in a scope.

    Examples:
        backlogkit list
        backlogkit list --status "In Progress"
        backlogkit list --scope archived --sort id
        backlogkit list --scope all
    """
    if sort not in _SORT_FIELDS:
        print_invalid_option_error(sort, _SORT_FIELDS)
        raise typer.Exit(ExitCode.USER_ERROR)

    writer = _writer(ctx)
    scopes = _parse_scopes(scope)
    tasks = [t for s in scopes for t in writer.list_tasks(s)]
    if status:
        tasks = [t for t in tasks if t.status.casefold() == status.casefold()]

    tasks = sort_records(
        tasks,
        sort,  # type: ignore[arg-type]
        reverse=reverse,
        statuses=writer.config.statuses,
        priorities=writer.config.priorities,
    )

    if json_output:
        _print_json([t.model_dump(mode="json") for t in tasks])
        return

    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Status", width=12)
    table.add_column("Priority", width=8)
    table.add_column("Title", overflow="fold")
    if len(scopes) > 1:
        table.add_column("Scope", style="dim")

    for task in tasks:
        color = _status_style(writer, task.status)
        row = [
            task.id,
            f"[{color}]{task.status}[/{color}]",
            task.priority or "",
            task.title,
        ]
        if len(scopes) > 1:
            row.append(task.scope.value)
        table.add_row(*row)

    console.print(table)
    console.print(f"\n[dim]Total: {len(tasks)} tasks[/dim]")


def show(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID to display (e.g., TASK-12)"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Display a task with its relationships.

    Examples:
        backlogkit show TASK-12
        backlogkit show task-12 --json
    """
    writer = _writer(ctx)
    try:
        task = writer.get(task_id)
    except BacklogError as e:
        raise _fail(e)

    context = [t for scope in TaskScope for t in writer.list_tasks(scope)]

    if json_output:
        resolver = RelationshipResolver(context, writer.config.resolved_terminal_statuses)
        data = task.model_dump(mode="json")
        data["relationships"] = resolver.resolve(task).model_dump(mode="json")
        _print_json(data)
        return

    _print_task(task, writer, context)


def create(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Task title"),
    status: str | None = typer.Option(None, "--status", "-s", help="Initial status"),
    priority: str | None = typer.Option(None, "--priority", "-p", help="Priority name"),
    labels: list[str] | None = typer.Option(
        None,
        "--label",
        "-l",
        help="Task labels (can be repeated)",
    ),
    assignees: list[str] | None = typer.Option(
        None,
        "--assignee",
        "-a",
        help="Assignees (can be repeated)",
    ),
    parent: str | None = typer.Option(
        None,
        "--parent",
        help="Parent task ID; the new task gets a sub-identifier",
    ),
    depends_on: list[str] | None = typer.Option(
        None,
        "--depends-on",
        help="Task IDs this task depends on (can be repeated)",
    ),
    description: str | None = typer.Option(
        None,
        "--description",
        "-d",
        help="Task description",
    ),
    draft: bool = typer.Option(False, "--draft", help="Create in drafts/"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Create a new task.

    Examples:
        backlogkit create "Fix login bug" --priority high
        backlogkit create "Write tests" --parent TASK-12 --label testing
        backlogkit create "Deploy" --depends-on TASK-3 --depends-on TASK-4
    """
    writer = _writer(ctx)
    patch = TaskPatch(
        title=title,
        status=status,
        priority=priority,
        labels=labels or [],
        assignees=assignees or [],
        parent_id=parent,
        dependencies=depends_on or [],
        description=description,
    )
    try:
        task = writer.create(patch, TaskScope.DRAFT if draft else TaskScope.ACTIVE)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(ExitCode.USER_ERROR)
    except BacklogError as e:
        raise _fail(e)

    if json_output:
        _print_json(task.model_dump(mode="json"))
    else:
        console.print(f"[green]Created:[/green] {task.id}", highlight=False)
        if task.parent_id:
            console.print(f"  Parent: {task.parent_id}", highlight=False)


def edit(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID to update"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    status: str | None = typer.Option(None, "--status", "-s", help="New status"),
    priority: str | None = typer.Option(None, "--priority", "-p", help="New priority"),
    milestone: str | None = typer.Option(None, "--milestone", help="New milestone"),
    labels: list[str] | None = typer.Option(
        None,
        "--label",
        "-l",
        help="Replace labels (can be repeated)",
    ),
    assignees: list[str] | None = typer.Option(
        None,
        "--assignee",
        "-a",
        help="Replace assignees (can be repeated)",
    ),
    description: str | None = typer.Option(
        None,
        "--description",
        "-d",
        help="Replace the description",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Update fields of a task. Options left out are not touched.

    Examples:
        backlogkit edit TASK-12 --status "In Progress"
        backlogkit edit TASK-12 --label backend --label api
    """
    fields: dict[str, Any] = {
        "title": title,
        "status": status,
        "priority": priority,
        "milestone": milestone,
        "labels": labels,
        "assignees": assignees,
        "description": description,
    }
    changes = {k: v for k, v in fields.items() if v}
    if not changes:
        console.print("[yellow]Nothing to update[/yellow]")
        raise typer.Exit(ExitCode.USER_ERROR)

    writer = _writer(ctx)
    try:
        task = writer.update(task_id, TaskPatch(**changes))
    except BacklogError as e:
        raise _fail(e)

    if json_output:
        _print_json(task.model_dump(mode="json"))
    else:
        console.print(f"[green]Updated:[/green] {task.id}", highlight=False)


def check(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    group: str = typer.Argument(..., help="Checklist group: ac or dod"),
    number: int = typer.Argument(..., help="Item number (the #N marker)"),
) -> None:
    """
    Toggle one checklist item.

    Examples:
        backlogkit check TASK-12 ac 2
        backlogkit check TASK-12 dod 1
    """
    kind = _GROUP_ALIASES.get(group.lower())
    if kind is None:
        print_invalid_option_error(group, sorted(_GROUP_ALIASES))
        raise typer.Exit(ExitCode.USER_ERROR)

    writer = _writer(ctx)
    try:
        task = writer.toggle_checklist_item(task_id, kind, number)
    except BacklogError as e:
        raise _fail(e)

    item = next(i for i in task.checklist(kind) if i.number == number)
    state = "checked" if item.checked else "unchecked"
    console.print(f"[green]{task.id}[/green] #{number} {state}: {item.text}", highlight=False)


def move(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID to move"),
    from_scope: str = typer.Argument(..., help="Current scope"),
    to_scope: str = typer.Argument(..., help="Target scope"),
) -> None:
    """
    Move a task file between scopes without changing it.

    Examples:
        backlogkit move TASK-12 active archived
        backlogkit move TASK-3 draft active
    """
    source, target = _parse_scope(from_scope), _parse_scope(to_scope)
    writer = _writer(ctx)
    try:
        task = writer.move(task_id, source, target)
    except BacklogError as e:
        raise _fail(e)
    console.print(f"[green]Moved:[/green] {task.id} → {target.value}", highlight=False)


def delete(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm permanent deletion"),
) -> None:
    """
    Permanently delete a task file.

    Examples:
        backlogkit delete TASK-12 --yes
    """
    if not yes:
        console.print("[yellow]Deletion is permanent; pass --yes to confirm[/yellow]")
        raise typer.Exit(ExitCode.USER_ERROR)

    writer = _writer(ctx)
    try:
        path = writer.delete(task_id)
    except BacklogError as e:
        raise _fail(e)
    console.print(f"[green]Deleted:[/green] {path}", highlight=False)


def reorder(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID to move within its status column"),
    index: int = typer.Argument(..., min=0, help="New position (0 = top)"),
) -> None:
    """
    Move a task to a new position within its status column.

    Examples:
        backlogkit reorder TASK-12 0
    """
    writer = _writer(ctx)
    try:
        updates = writer.reorder(task_id, index)
    except BacklogError as e:
        raise _fail(e)
    for update in updates:
        console.print(f"{update.task_id}: ordinal {update.ordinal:g}", highlight=False)


def repair_ordinals(
    ctx: typer.Context,
    status: str = typer.Argument(..., help="Status column to repair"),
    sequential: bool = typer.Option(
        False,
        "--sequential",
        help="Renumber every task evenly instead of fixing only conflicts",
    ),
) -> None:
    """
    Fix duplicate or missing ordinals in one status column.

    Examples:
        backlogkit repair-ordinals "To Do"
        backlogkit repair-ordinals Done --sequential
    """
    writer = _writer(ctx)
    try:
        updates = writer.repair_ordinals(status, sequential)
    except BacklogError as e:
        raise _fail(e)
    if not updates:
        console.print("[dim]No ordinal conflicts[/dim]")
        return
    for update in updates:
        console.print(f"{update.task_id}: ordinal {update.ordinal:g}", highlight=False)


def next_id(
    ctx: typer.Context,
    parent: str | None = typer.Option(None, "--parent", help="Allocate a sub-identifier"),
) -> None:
    """
    Print the identifier the next created task would get.

    Examples:
        backlogkit next-id
        backlogkit next-id --parent TASK-12
    """
    writer = _writer(ctx)
    console.print(writer.next_id(parent), highlight=False)
