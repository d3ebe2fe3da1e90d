"""
Parse task, document and decision files into typed records.

Parsing never raises on bad content: malformed metadata degrades to an
empty map, unparseable dates keep their original text, and a file with no
recoverable title yields None so listings can skip it.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import PurePath
from typing import Any

from backlogkit.core.config.models import BacklogConfig
from backlogkit.core.ids.parser import id_from_filename

from .dates import normalize_date
from .frontmatter import as_string_list, split_frontmatter
from .models import METADATA_FIELDS, Decision, Document, TaskRecord, TaskScope
from .sections import ParsedBody, classify, parse_checklist, scan_body

logger = logging.getLogger(__name__)

_STATUS_GLYPHS = re.compile(r"^[○◒●◑]\s*")

_LIST_FIELDS = frozenset(
    {"labels", "assignees", "dependencies", "references", "documentation", "subtasks"}
)
_DATE_FIELDS = frozenset({"created", "updated"})


def match_status(value: Any, statuses: list[str] | None = None) -> str:
    """
    Match a raw status against the configured names, ignoring case.

    Leading status glyphs (``○ To Do``) are stripped. A value that matches
    no configured status is kept as written.
    """
    text = _STATUS_GLYPHS.sub("", str(value).strip())
    for name in statuses or []:
        if name.casefold() == text.casefold():
            return name
    return text


def match_priority(value: Any, priorities: list[str] | None = None) -> str | None:
    """Match a raw priority against the configured names, ignoring case."""
    text = str(value).strip()
    if not text:
        return None
    for name in priorities or []:
        if name.casefold() == text.casefold():
            return name
    return text


def parse_ordinal(value: Any, source: str | None = None) -> float | None:
    """Decode an ordinal scalar, or None when absent or not a number."""
    if value is None or value == "":
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        logger.warning("Ignoring non-numeric ordinal %r in %s", value, source or "<text>")
        return None


def _scalar(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        value = ", ".join(str(v) for v in value)
    text = str(value).strip()
    return text or None


def metadata_to_fields(
    metadata: dict[str, Any],
    config: BacklogConfig | None = None,
    source: str | None = None,
) -> dict[str, Any]:
    """
    Convert a canonical metadata map into TaskRecord keyword arguments.

    Keys with no TaskRecord attribute are collected under ``extra``.
    """
    fields: dict[str, Any] = {}
    extra: dict[str, Any] = {}

    for key, value in metadata.items():
        attr = METADATA_FIELDS.get(key)
        if attr is None:
            extra[key] = value
            continue
        if attr in _LIST_FIELDS:
            fields[attr] = as_string_list(value)
        elif attr in _DATE_FIELDS:
            fields[attr] = normalize_date(value) or None
        elif attr == "ordinal":
            fields[attr] = parse_ordinal(value, source)
        elif attr == "status":
            if text := _scalar(value):
                fields[attr] = match_status(text, config.statuses if config else None)
        elif attr == "priority":
            text = _scalar(value)
            fields[attr] = (
                match_priority(text, config.priorities if config else None) if text else None
            )
        else:
            fields[attr] = _scalar(value)

    fields["extra"] = extra
    return fields


def body_to_fields(parsed: ParsedBody) -> dict[str, Any]:
    """Map extracted body sections onto TaskRecord attributes. First section wins."""
    fields: dict[str, Any] = {}
    for span in parsed.spans:
        spec = classify(span)
        if spec is None or spec.field in fields:
            continue
        content = parsed.content(span)
        if spec.checklist:
            fields[spec.field] = parse_checklist(content)
        else:
            fields[spec.field] = content or None
    return fields


def parse_task(
    text: str,
    file_path: str | PurePath | None = None,
    *,
    config: BacklogConfig | None = None,
    scope: TaskScope = TaskScope.ACTIVE,
    origin: str = "local",
    last_modified: datetime | None = None,
    fingerprint: str | None = None,
) -> TaskRecord | None:
    """
    Parse a task file into a TaskRecord.

    The identifier comes from the metadata ``id`` (upper-cased), else from
    the filename. The title comes from the metadata, else from the first
    ``# `` heading of the body.

    Args:
        text: Raw file text
        file_path: Path the text was read from; used for id fallback and logs
        config: Project configuration for status/priority matching
        scope: Storage scope the file was read from
        origin: ``local`` or the branch the file was read from
        last_modified: File modification time
        fingerprint: Content fingerprint captured with the read

    Returns:
        The parsed record, or None when no title (or no id) can be recovered
    """
    source = str(file_path) if file_path is not None else None
    metadata, body = split_frontmatter(text, source)
    fields = metadata_to_fields(metadata, config, source)
    parsed = scan_body(body)
    fields.update(body_to_fields(parsed))

    task_id = fields.get("id")
    if task_id:
        task_id = task_id.upper()
    elif file_path is not None:
        name = PurePath(file_path).name
        task_id = id_from_filename(name) or PurePath(name).stem
    if not task_id:
        logger.debug("No identifier in %s, skipping", source or "<text>")
        return None
    fields["id"] = task_id

    if not fields.get("title"):
        if parsed.title:
            fields["title"] = parsed.title
        else:
            logger.debug("No title in %s, skipping", source or "<text>")
            return None

    if "status" not in fields and config is not None:
        fields["status"] = config.first_status

    return TaskRecord(
        **fields,
        scope=scope,
        file_path=source,
        origin=origin,
        last_modified=last_modified,
        fingerprint=fingerprint,
    )


def parse_document(text: str, file_path: str | PurePath | None = None) -> Document | None:
    """
    Parse a free-form document (``docs/doc-1 - Title.md``).

    The body is kept whole as ``content``.
    """
    source = str(file_path) if file_path is not None else None
    metadata, body = split_frontmatter(text, source)
    parsed = scan_body(body)

    doc_id = _scalar(metadata.get("id"))
    if not doc_id and file_path is not None:
        name = PurePath(file_path).name
        doc_id = id_from_filename(name) or PurePath(name).stem
    title = _scalar(metadata.get("title")) or parsed.title
    if not doc_id or not title:
        return None

    return Document(
        id=doc_id,
        title=title,
        type=_scalar(metadata.get("type")),
        created=normalize_date(metadata.get("created_date")) or None,
        updated=normalize_date(metadata.get("updated_date")) or None,
        tags=as_string_list(metadata.get("tags")),
        content=body.strip("\n"),
        file_path=source,
    )


def parse_decision(text: str, file_path: str | PurePath | None = None) -> Decision | None:
    """
    Parse an architecture decision record.

    Recognized ``##`` sections: Context, Decision, Consequences,
    Alternatives. Heading matching ignores case.
    """
    source = str(file_path) if file_path is not None else None
    metadata, body = split_frontmatter(text, source)
    parsed = scan_body(body)
    sections = parsed.named()

    decision_id = _scalar(metadata.get("id"))
    if not decision_id and file_path is not None:
        name = PurePath(file_path).name
        decision_id = id_from_filename(name) or PurePath(name).stem
    title = _scalar(metadata.get("title")) or parsed.title
    if not decision_id or not title:
        return None

    return Decision(
        id=decision_id,
        title=title,
        date=normalize_date(metadata.get("date")) or None,
        status=_scalar(metadata.get("status")),
        context=sections.get("context") or None,
        decision=sections.get("decision") or None,
        consequences=sections.get("consequences") or None,
        alternatives=sections.get("alternatives") or None,
        file_path=source,
    )
