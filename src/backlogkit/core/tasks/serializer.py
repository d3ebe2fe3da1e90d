"""
Render task records back into file text.

Two entry points:

- ``serialize_task`` renders a whole record (used for new files).
- ``apply_patch`` rewrites an existing file text at the field level: only
  the metadata keys and body sections named in the patch change, keys the
  engine does not know about are carried through, and the file's line
  ending is preserved.

Metadata keys are always written in the fixed order of
``METADATA_FIELDS`` followed by unknown keys, and sequences are always
written inline (``labels: [a, b]``).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .frontmatter import detect_line_ending, join_frontmatter, split_frontmatter
from .models import BODY_FIELDS, METADATA_FIELDS, ChecklistItem, TaskRecord
from .sections import (
    SPECS_BY_FIELD,
    WRITE_ORDER,
    render_checklist,
    render_section,
    replace_section,
)

_KEY_FOR_FIELD = {attr: key for key, attr in METADATA_FIELDS.items()}

# Keys written even when empty, matching what Backlog.md itself emits
_ALWAYS_WRITTEN = ("assignee", "labels", "dependencies")
_LIST_KEYS = frozenset(
    {"labels", "assignee", "dependencies", "references", "documentation", "subtasks"}
)


def encode_ordinal(value: Any) -> int | float | None:
    """Write integral ordinals without a trailing ``.0``."""
    if value is None or value == "":
        return None
    number = float(value)
    return int(number) if number.is_integer() else number


def _encode(key: str, value: Any) -> Any:
    if key == "ordinal":
        try:
            return encode_ordinal(value)
        except (TypeError, ValueError):
            return value
    if key in _LIST_KEYS:
        return list(value or [])
    return value


def _is_unset(key: str, value: Any) -> bool:
    if key in _ALWAYS_WRITTEN:
        return False
    return value is None or value == "" or value == []


def order_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """
    Arrange a metadata map in canonical order.

    Known keys come first in the fixed order; unknown keys follow in their
    existing order. Empty optional keys are dropped.
    """
    ordered: dict[str, Any] = {}
    for key in METADATA_FIELDS:
        if key not in metadata and key not in _ALWAYS_WRITTEN:
            continue
        value = _encode(key, metadata.get(key))
        if _is_unset(key, value):
            continue
        ordered[key] = value
    for key, value in metadata.items():
        if key not in ordered and key not in METADATA_FIELDS:
            ordered[key] = value
    return ordered


def record_metadata(record: TaskRecord) -> dict[str, Any]:
    """Metadata map for a record, in canonical order."""
    raw = {key: getattr(record, attr) for key, attr in METADATA_FIELDS.items()}
    raw.update({k: v for k, v in record.extra.items() if k not in METADATA_FIELDS})
    return order_metadata(raw)


def _section_content(field: str, value: Any) -> str:
    if value is None:
        return ""
    if SPECS_BY_FIELD[field].checklist:
        items = [v if isinstance(v, ChecklistItem) else ChecklistItem(**v) for v in value]
        return render_checklist(items)
    return str(value).strip("\n")


def render_body(record: TaskRecord) -> str:
    """Render every non-empty body section in canonical order."""
    blocks: list[str] = []
    for field in WRITE_ORDER:
        content = _section_content(field, getattr(record, field))
        if content:
            blocks.append("\n".join(render_section(SPECS_BY_FIELD[field], content)))
    return "\n\n".join(blocks)


def serialize_task(record: TaskRecord, line_ending: str = "\n") -> str:
    """
    Render a full task file.

    Example:
        >>> text = serialize_task(TaskRecord(id="TASK-1", title="Hello"))
        >>> text.splitlines()[:3]
        ['---', 'id: TASK-1', 'title: Hello']
    """
    return join_frontmatter(record_metadata(record), render_body(record), line_ending)


def apply_patch(
    text: str,
    changes: dict[str, Any],
    source: str | None = None,
    transform_body: Callable[[str], str] | None = None,
) -> str:
    """
    Apply field-level changes to existing file text.

    Args:
        text: Current file text
        changes: TaskRecord attribute name -> new value; None clears a field
        source: Optional path, used only in log messages
        transform_body: Optional rewrite of the body, applied before the
            section changes

    Returns:
        New file text with the original line ending

    Raises:
        MalformedMetadataError: If the existing metadata block cannot be
            decoded; rewriting it would lose data
    """
    line_ending = detect_line_ending(text)
    metadata, body = split_frontmatter(text, source, strict=True)
    if transform_body is not None:
        body = transform_body(body)

    for attr, value in changes.items():
        if attr in BODY_FIELDS:
            continue
        key = _KEY_FOR_FIELD.get(attr)
        if key is None:
            continue
        if value is None and key not in _LIST_KEYS:
            metadata.pop(key, None)
        else:
            metadata[key] = value

    for attr in WRITE_ORDER:
        if attr in changes:
            content = _section_content(attr, changes[attr])
            body = replace_section(body, SPECS_BY_FIELD[attr], content)

    return join_frontmatter(order_metadata(metadata), body, line_ending)
