"""
Exceptions raised by the task file engine.

Read-side problems (malformed metadata, unparseable dates) are recovered
inside the parser and never reach callers. Write-side problems always
surface as one of the typed errors below so the caller can decide whether
to retry, reload, or give up.
"""

from __future__ import annotations

from pathlib import PurePosixPath


class BacklogError(Exception):
    """Base exception for backlogkit errors."""

    pass


class TaskNotFoundError(BacklogError):
    """Raised when no task file matches an identifier."""

    def __init__(self, task_id: str, scope: str | None = None):
        self.task_id = task_id
        self.scope = scope
        where = f" in {scope}" if scope else ""
        super().__init__(f"Task not found{where}: {task_id}")


class WriteConflictError(BacklogError):
    """
    Raised when a file changed on disk since it was read.

    The caller must reload the record and retry; the engine never
    overwrites an externally modified file on its own.
    """

    def __init__(
        self,
        path: str | PurePosixPath,
        expected: str | None,
        actual: str | None,
    ):
        self.path = str(path)
        self.expected = expected
        self.actual = actual
        if expected is None:
            message = f"File already exists: {self.path}"
        elif actual is None:
            message = f"File was removed since it was read: {self.path}"
        else:
            message = f"File was modified since it was read: {self.path}"
        super().__init__(message)


class MalformedMetadataError(BacklogError):
    """Raised when a metadata block cannot be decoded. Recovered on read, raised on write."""

    pass


class InvalidMoveError(BacklogError):
    """Raised when a move would be a no-op or would clobber another file."""

    pass


class ChecklistItemNotFoundError(TaskNotFoundError):
    """Raised when a checklist group has no item with the requested number."""

    def __init__(self, task_id: str, group: str, number: int):
        BacklogError.__init__(self, f"No checklist item #{number} in {group} of {task_id}")
        self.task_id = task_id
        self.scope = None
        self.group = group
        self.number = number
