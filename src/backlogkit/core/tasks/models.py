"""
Task record models for backlogkit.

A task file is the source of truth; these models are what a read of the
file derives. ``TaskRecord`` carries the content fields that round-trip
through the serializer plus a handful of load-time attributes (scope,
path, origin, fingerprint) that describe where the record came from and
are never written back.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskScope(str, Enum):
    """Storage scope a task file lives in."""

    ACTIVE = "active"
    DRAFT = "draft"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class ChecklistKind(str, Enum):
    """The two checklist groups a task body can carry."""

    ACCEPTANCE_CRITERIA = "acceptance_criteria"
    DEFINITION_OF_DONE = "definition_of_done"


class ChecklistItem(BaseModel):
    """
    A single checklist line.

    ``number`` is the ``#N`` marker from the stable item syntax. Legacy
    items written without a marker keep ``number=None``; callers that
    need identity for them must use text and position.
    """

    number: int | None = Field(default=None, ge=0)
    text: str
    checked: bool = False


# Attributes filled in at load time; excluded from content comparisons
LOAD_TIME_FIELDS = frozenset(
    {"scope", "file_path", "origin", "last_modified", "fingerprint"}
)

# Metadata key -> TaskRecord attribute, in the order keys are written
METADATA_FIELDS: dict[str, str] = {
    "id": "id",
    "title": "title",
    "status": "status",
    "priority": "priority",
    "milestone": "milestone",
    "labels": "labels",
    "assignee": "assignees",
    "reporter": "reporter",
    "created_date": "created",
    "updated_date": "updated",
    "dependencies": "dependencies",
    "references": "references",
    "documentation": "documentation",
    "parent_task_id": "parent_id",
    "subtasks": "subtasks",
    "type": "type",
    "ordinal": "ordinal",
}

BODY_FIELDS = frozenset(
    {
        "description",
        "plan",
        "implementation_notes",
        "final_summary",
        "acceptance_criteria",
        "definition_of_done",
    }
)


class TaskRecord(BaseModel):
    """
    A task parsed from a Markdown file with a YAML metadata block.

    Example:
        >>> task = TaskRecord(id="TASK-7", title="Ship it", status="In Progress")
        >>> task.id
        'TASK-7'
        >>> task.dependencies
        []
    """

    # Metadata block
    id: str = Field(..., description="Unique identifier (e.g., 'TASK-7' or 'TASK-7.1')")
    title: str = Field(..., description="Task title")
    status: str = Field(default="To Do", description="One of the configured statuses")
    priority: str | None = Field(default=None, description="One of the configured priorities")
    labels: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list, description="Display order matters")
    reporter: str | None = None
    milestone: str | None = None
    dependencies: list[str] = Field(
        default_factory=list,
        description="Identifiers this task waits on; may reference missing records",
    )
    references: list[str] = Field(default_factory=list)
    documentation: list[str] = Field(default_factory=list)
    parent_id: str | None = Field(default=None, description="Back-reference to the parent task")
    subtasks: list[str] = Field(
        default_factory=list,
        description="Explicitly declared child identifiers",
    )
    type: str | None = None
    ordinal: float | None = Field(default=None, description="Manual order within a status")
    created: str | None = Field(default=None, description="YYYY-MM-DD or YYYY-MM-DD HH:mm")
    updated: str | None = Field(default=None, description="YYYY-MM-DD or YYYY-MM-DD HH:mm")
    extra: dict[str, Any] = Field(
        default_factory=dict,
        description="Unrecognized metadata keys, written back after the known ones",
    )

    # Body
    description: str | None = None
    plan: str | None = None
    implementation_notes: str | None = None
    final_summary: str | None = None
    acceptance_criteria: list[ChecklistItem] = Field(default_factory=list)
    definition_of_done: list[ChecklistItem] = Field(default_factory=list)

    # Load-time attributes
    scope: TaskScope = TaskScope.ACTIVE
    file_path: str | None = None
    origin: str = Field(default="local", description="'local' or the branch it was read from")
    last_modified: datetime | None = None
    fingerprint: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    def checklist(self, kind: ChecklistKind) -> list[ChecklistItem]:
        """Return the checklist group for ``kind``."""
        if kind == ChecklistKind.ACCEPTANCE_CRITERIA:
            return self.acceptance_criteria
        return self.definition_of_done

    def content(self) -> dict[str, Any]:
        """Fields that round-trip through the file, for equality checks."""
        return self.model_dump(exclude=set(LOAD_TIME_FIELDS))

    @property
    def is_subtask(self) -> bool:
        """True for dotted identifiers such as ``TASK-7.1``."""
        return "." in self.id


class TaskPatch(BaseModel):
    """
    Field-level patch for ``TaskWriter.update``.

    Only fields explicitly set on the patch are applied; set a field to
    ``None`` to clear it.

    Example:
        >>> patch = TaskPatch(status="Done")
        >>> patch.changes()
        {'status': 'Done'}
    """

    title: str | None = None
    status: str | None = None
    priority: str | None = None
    labels: list[str] | None = None
    assignees: list[str] | None = None
    reporter: str | None = None
    milestone: str | None = None
    dependencies: list[str] | None = None
    references: list[str] | None = None
    documentation: list[str] | None = None
    parent_id: str | None = None
    subtasks: list[str] | None = None
    type: str | None = None
    ordinal: float | None = None
    created: str | None = None
    description: str | None = None
    plan: str | None = None
    implementation_notes: str | None = None
    final_summary: str | None = None
    acceptance_criteria: list[ChecklistItem] | None = None
    definition_of_done: list[ChecklistItem] | None = None

    def changes(self) -> dict[str, Any]:
        """Explicitly set fields, as a plain dict."""
        return self.model_dump(exclude_unset=True)


class Document(BaseModel):
    """A free-form document stored under ``docs/``."""

    id: str
    title: str
    type: str | None = None
    created: str | None = None
    updated: str | None = None
    tags: list[str] = Field(default_factory=list)
    content: str = ""
    file_path: str | None = None


class Decision(BaseModel):
    """An architecture decision record stored under ``decisions/``."""

    id: str
    title: str
    date: str | None = None
    status: str | None = None
    context: str | None = None
    decision: str | None = None
    consequences: str | None = None
    alternatives: str | None = None
    file_path: str | None = None
