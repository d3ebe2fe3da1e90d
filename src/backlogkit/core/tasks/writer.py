"""
Read-verify-write operations on task files.

``TaskWriter`` is the write-side entry point of the engine. Every mutation
re-reads the file, applies a field-level patch to its text, and writes it
back only if the file still matches the fingerprint captured when the
edit started. A mismatch raises WriteConflictError; the caller reloads and
retries.

Example:
    writer = TaskWriter.local(Path("backlog"))
    task = writer.create(TaskPatch(title="Fix login"))
    session = writer.begin_edit(task.id)
    writer.update(task.id, TaskPatch(status="In Progress"), session=session)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from backlogkit.core.config.loader import load_config
from backlogkit.core.config.models import BacklogConfig
from backlogkit.core.ids.generator import next_id, next_subtask_id
from backlogkit.core.ids.parser import id_from_filename, split_id

from .dates import now_stamp
from .exceptions import (
    ChecklistItemNotFoundError,
    InvalidMoveError,
    TaskNotFoundError,
    WriteConflictError,
)
from .models import ChecklistKind, TaskPatch, TaskRecord, TaskScope
from .ordinals import OrdinalUpdate, drop_ordinals, resolve_conflicts, sort_by_ordinal
from .parser import match_priority, match_status, parse_task
from .sections import SPECS_BY_FIELD, toggle_checklist_item
from .serializer import apply_patch, serialize_task
from .store import FileStore, LocalFileStore

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9\s-]")


def sanitize_title(title: str) -> str:
    """
    Reduce a title to a filename-safe slug.

    Example:
        >>> sanitize_title("Fix: bug #123 (urgent!)")
        'Fix-bug-123-urgent'
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("", title)
    return re.sub(r"\s+", "-", cleaned.strip()).strip("-")


def task_filename(task_id: str, title: str) -> str:
    """Filename for a new task: ``task-12 - Fix-login.md``."""
    slug = sanitize_title(title)
    if not slug:
        return f"{task_id.lower()}.md"
    return f"{task_id.lower()} - {slug}.md"


def same_id(a: str, b: str) -> bool:
    """Compare identifiers ignoring case and zero padding."""
    left, right = split_id(a), split_id(b)
    if left is not None and right is not None:
        return left == right
    return a.strip().upper() == b.strip().upper()


def unique_labels(records: Iterable[TaskRecord], config: BacklogConfig | None = None) -> list[str]:
    """Configured labels plus every label used by a record, sorted."""
    labels = set(config.labels if config else [])
    for record in records:
        labels.update(record.labels)
    return sorted(labels)


def unique_assignees(records: Iterable[TaskRecord]) -> list[str]:
    """Every assignee used by a record, sorted."""
    assignees: set[str] = set()
    for record in records:
        assignees.update(record.assignees)
    return sorted(assignees)


@dataclass(frozen=True)
class EditSession:
    """Path and fingerprint captured when an edit started."""

    task_id: str
    path: Path
    scope: TaskScope
    fingerprint: str


class TaskWriter:
    """
    Task file operations over a FileStore.

    Holds no record state of its own: every call re-derives records from
    the files, which remain the source of truth.
    """

    def __init__(
        self,
        store: FileStore,
        config: BacklogConfig | None = None,
        origin: str = "local",
    ):
        """
        Initialize writer.

        Args:
            store: Storage backend
            config: Project configuration (defaults to BacklogConfig())
            origin: Origin stamped on loaded records
        """
        self.store = store
        self.config = config or BacklogConfig()
        self.origin = origin

    @classmethod
    def local(cls, backlog_dir: Path, config: BacklogConfig | None = None) -> TaskWriter:
        """Writer over a local backlog directory, loading its config when none is given."""
        backlog_dir = Path(backlog_dir)
        if config is None:
            config = load_config(backlog_dir)
        return cls(LocalFileStore(backlog_dir), config)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _load(self, path: Path, scope: TaskScope) -> TaskRecord | None:
        snapshot = self.store.read(path)
        return parse_task(
            snapshot.text,
            snapshot.path,
            config=self.config,
            scope=scope,
            origin=self.origin,
            last_modified=snapshot.last_modified,
            fingerprint=snapshot.fingerprint,
        )

    def list_tasks(self, scope: TaskScope = TaskScope.ACTIVE) -> list[TaskRecord]:
        """
        Load every task in a scope.

        Unreadable files and files without a title are skipped with a warning.
        """
        records: list[TaskRecord] = []
        for path in self.store.list(scope):
            try:
                record = self._load(path, scope)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable task file %s: %s", path, e)
                continue
            if record is None:
                logger.warning("Skipping task file without a title: %s", path)
                continue
            records.append(record)
        return records

    def all_ids(self) -> list[str]:
        """Identifiers in every scope, for collision-free allocation."""
        ids: set[str] = set()
        for scope in TaskScope:
            for path in self.store.list(scope):
                if task_id := id_from_filename(path.name):
                    ids.add(task_id)
            ids.update(r.id for r in self.list_tasks(scope))
        return sorted(ids)

    def _locate(self, task_id: str, scope: TaskScope | None = None) -> tuple[Path, TaskScope]:
        scopes = [scope] if scope is not None else list(TaskScope)

        # Filename first, it needs no parsing
        for candidate_scope in scopes:
            for path in self.store.list(candidate_scope):
                from_name = id_from_filename(path.name)
                if from_name is not None and same_id(from_name, task_id):
                    return path, candidate_scope

        # Files whose metadata id disagrees with the filename
        for candidate_scope in scopes:
            for record in self.list_tasks(candidate_scope):
                if same_id(record.id, task_id) and record.file_path:
                    return Path(record.file_path), candidate_scope

        raise TaskNotFoundError(task_id, scope.value if scope is not None else None)

    def get(self, task_id: str, scope: TaskScope | None = None) -> TaskRecord:
        """
        Load one task by id.

        Raises:
            TaskNotFoundError: If no file matches
        """
        path, found_scope = self._locate(task_id, scope)
        record = self._load(path, found_scope)
        if record is None:
            raise TaskNotFoundError(task_id, found_scope.value)
        return record

    def begin_edit(self, task_id: str, scope: TaskScope | None = None) -> EditSession:
        """Capture the fingerprint of a task file before a longer edit."""
        path, found_scope = self._locate(task_id, scope)
        snapshot = self.store.read(path)
        return EditSession(
            task_id=task_id,
            path=path,
            scope=found_scope,
            fingerprint=snapshot.fingerprint,
        )

    def next_id(self, parent_id: str | None = None) -> str:
        """Identifier the next created task would get."""
        existing = self.all_ids()
        if parent_id:
            return next_subtask_id(parent_id, existing)
        return next_id(existing, self.config.id_prefix, self.config.zero_padded_ids)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def create(
        self,
        partial: TaskPatch | dict[str, Any],
        scope: TaskScope = TaskScope.ACTIVE,
    ) -> TaskRecord:
        """
        Create a new task file.

        The id is allocated from every scope. Status defaults to the
        configured default (or first) status. A ``parent_id`` makes the new
        task a subtask and must name an existing task.

        Raises:
            ValueError: If no title is given
            TaskNotFoundError: If ``parent_id`` does not exist
        """
        if isinstance(partial, dict):
            partial = TaskPatch(**partial)
        fields = partial.changes()

        title = (fields.pop("title", None) or "").strip()
        if not title:
            raise ValueError("A task needs a title")

        parent_id = fields.pop("parent_id", None)
        if parent_id:
            parent = self.get(parent_id)
            parent_id = parent.id
            task_id = next_subtask_id(parent.id, self.all_ids())
        else:
            task_id = self.next_id()

        status = fields.pop("status", None)
        status = match_status(status, self.config.statuses) if status else self.config.first_status
        priority = fields.pop("priority", None)
        if priority:
            priority = match_priority(priority, self.config.priorities)

        record = TaskRecord(
            id=task_id,
            title=title,
            status=status,
            priority=priority,
            parent_id=parent_id,
            created=fields.pop("created", None) or now_stamp(),
            **{k: v for k, v in fields.items() if v is not None},
        )

        path = self.store.scope_dir(scope) / task_filename(task_id, title)
        self.store.write(path, serialize_task(record), expected=None)
        logger.debug("Created %s at %s", task_id, path)

        created = self._load(path, scope)
        if created is None:
            raise TaskNotFoundError(task_id, scope.value)
        return created

    def _rewrite(
        self,
        task_id: str,
        changes: dict[str, Any],
        session: EditSession | None,
        transform_body: Callable[[str], str] | None = None,
    ) -> TaskRecord:
        if session is not None:
            path, scope = session.path, session.scope
        else:
            path, scope = self._locate(task_id)

        try:
            snapshot = self.store.read(path)
        except FileNotFoundError:
            if session is not None:
                raise WriteConflictError(path, session.fingerprint, None) from None
            raise TaskNotFoundError(task_id) from None

        expected = session.fingerprint if session is not None else snapshot.fingerprint
        new_text = apply_patch(snapshot.text, changes, str(path), transform_body)
        self.store.write(path, new_text, expected)

        record = self._load(path, scope)
        if record is None:
            raise TaskNotFoundError(task_id, scope.value)
        return record

    def update(
        self,
        task_id: str,
        patch: TaskPatch | dict[str, Any],
        *,
        session: EditSession | None = None,
        touch: bool = True,
    ) -> TaskRecord:
        """
        Apply a field-level patch to a task file.

        Fields set on the patch replace the stored value; omitted fields are
        untouched.

        Args:
            task_id: Task to update
            patch: Fields to change
            session: Fingerprint captured earlier with ``begin_edit``; without
                one the fingerprint is captured at the start of this call
            touch: Stamp ``updated_date`` with the current time

        Raises:
            TaskNotFoundError: If no file matches
            WriteConflictError: If the file changed since the fingerprint
                was captured
        """
        if isinstance(patch, dict):
            patch = TaskPatch(**patch)
        changes = patch.changes()

        if changes.get("status"):
            changes["status"] = match_status(changes["status"], self.config.statuses)
        if changes.get("priority"):
            changes["priority"] = match_priority(changes["priority"], self.config.priorities)
        if touch:
            changes["updated"] = now_stamp()

        return self._rewrite(task_id, changes, session)

    def toggle_checklist_item(
        self,
        task_id: str,
        kind: ChecklistKind,
        number: int,
        *,
        session: EditSession | None = None,
        touch: bool = True,
    ) -> TaskRecord:
        """
        Flip the checked state of checklist item ``#number`` in one group.

        With duplicate numbers the first item in the group is flipped.
        Items in the other group are never affected.

        Raises:
            ChecklistItemNotFoundError: If the group has no such item
        """
        spec = SPECS_BY_FIELD[ChecklistKind(kind).value]

        def _toggle(body: str) -> str:
            new_body, found = toggle_checklist_item(body, spec, number)
            if not found:
                raise ChecklistItemNotFoundError(task_id, spec.field, number)
            return new_body

        changes = {"updated": now_stamp()} if touch else {}
        return self._rewrite(task_id, changes, session, _toggle)

    def set_ordinal(
        self,
        task_id: str,
        ordinal: float | None,
        *,
        session: EditSession | None = None,
    ) -> TaskRecord:
        """Write a new ordinal without touching ``updated_date``."""
        return self._rewrite(task_id, {"ordinal": ordinal}, session)

    def _apply_ordinals(
        self,
        updates: list[OrdinalUpdate],
        records: list[TaskRecord],
    ) -> list[OrdinalUpdate]:
        by_id = {r.id.upper(): r for r in records}
        for update in updates:
            record = by_id.get(update.task_id.upper())
            session = None
            if record is not None and record.file_path and record.fingerprint:
                session = EditSession(
                    task_id=record.id,
                    path=Path(record.file_path),
                    scope=record.scope,
                    fingerprint=record.fingerprint,
                )
            self.set_ordinal(update.task_id, update.ordinal, session=session)
        return updates

    def reorder(
        self,
        task_id: str,
        target_index: int,
        siblings: list[TaskRecord] | None = None,
    ) -> list[OrdinalUpdate]:
        """
        Drop a task at ``target_index`` among its status siblings.

        Args:
            task_id: Task being moved
            target_index: Position in display order (0 = top)
            siblings: Column in display order; defaults to the active tasks
                sharing the moved task's status, sorted by ordinal

        Returns:
            The ordinal updates that were written
        """
        moving = self.get(task_id)
        if siblings is None:
            siblings = sort_by_ordinal(
                r for r in self.list_tasks(moving.scope)
                if r.status.casefold() == moving.status.casefold()
            )
        updates = drop_ordinals(moving.id, target_index, siblings)
        return self._apply_ordinals(updates, [*siblings, moving])

    def repair_ordinals(
        self,
        status: str,
        force_sequential: bool = False,
        scope: TaskScope = TaskScope.ACTIVE,
    ) -> list[OrdinalUpdate]:
        """Fix duplicate or missing ordinals in one status column."""
        column = sort_by_ordinal(
            r for r in self.list_tasks(scope) if r.status.casefold() == status.casefold()
        )
        updates = resolve_conflicts(column, force_sequential)
        return self._apply_ordinals(updates, column)

    def move(self, task_id: str, from_scope: TaskScope, to_scope: TaskScope) -> TaskRecord:
        """
        Relocate a task file between scopes without changing its content.

        Raises:
            TaskNotFoundError: If the task is not in ``from_scope``
            InvalidMoveError: If the scopes are equal or the target exists
        """
        if from_scope == to_scope:
            raise InvalidMoveError(f"{task_id} is already in {to_scope.value}")
        path, _ = self._locate(task_id, from_scope)
        target = self.store.scope_dir(to_scope) / path.name
        self.store.move(path, target)
        logger.debug("Moved %s from %s to %s", task_id, from_scope.value, to_scope.value)

        record = self._load(target, to_scope)
        if record is None:
            raise TaskNotFoundError(task_id, to_scope.value)
        return record

    def delete(self, task_id: str, scope: TaskScope | None = None) -> Path:
        """
        Permanently remove a task file.

        Returns:
            Path of the removed file

        Raises:
            TaskNotFoundError: If no file matches
        """
        path, found_scope = self._locate(task_id, scope)
        try:
            self.store.delete(path)
        except FileNotFoundError:
            raise TaskNotFoundError(task_id, found_scope.value) from None
        logger.debug("Deleted %s (%s)", task_id, path)
        return path
