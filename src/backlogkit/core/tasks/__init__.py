"""
Task file engine.

This module provides the task record models, the parser and serializer
for Markdown task files, the read-verify-write writer, and the ordinal
and relationship resolvers that run over loaded records.
"""

from .exceptions import (
    BacklogError,
    ChecklistItemNotFoundError,
    InvalidMoveError,
    MalformedMetadataError,
    TaskNotFoundError,
    WriteConflictError,
)
from .graph import BlockerRef, Relationships, RelationshipResolver, resolve_relationships
from .merge import merge_task_sets
from .models import (
    ChecklistItem,
    ChecklistKind,
    Decision,
    Document,
    TaskPatch,
    TaskRecord,
    TaskScope,
)
from .ordinals import (
    ORDINAL_STEP,
    OrdinalUpdate,
    compare_by_ordinal,
    drop_ordinals,
    resolve_conflicts,
    sort_by_ordinal,
    sort_records,
)
from .parser import parse_decision, parse_document, parse_task
from .serializer import apply_patch, serialize_task
from .store import FileSnapshot, FileStore, LocalFileStore
from .writer import EditSession, TaskWriter, unique_assignees, unique_labels

__all__ = [
    # Models
    "ChecklistItem",
    "ChecklistKind",
    "Decision",
    "Document",
    "TaskPatch",
    "TaskRecord",
    "TaskScope",
    # Errors
    "BacklogError",
    "ChecklistItemNotFoundError",
    "InvalidMoveError",
    "MalformedMetadataError",
    "TaskNotFoundError",
    "WriteConflictError",
    # Parsing and serialization
    "apply_patch",
    "parse_decision",
    "parse_document",
    "parse_task",
    "serialize_task",
    # Storage and writing
    "EditSession",
    "FileSnapshot",
    "FileStore",
    "LocalFileStore",
    "TaskWriter",
    "unique_assignees",
    "unique_labels",
    # Ordering
    "ORDINAL_STEP",
    "OrdinalUpdate",
    "compare_by_ordinal",
    "drop_ordinals",
    "resolve_conflicts",
    "sort_by_ordinal",
    "sort_records",
    # Relationships
    "BlockerRef",
    "Relationships",
    "RelationshipResolver",
    "merge_task_sets",
    "resolve_relationships",
]
