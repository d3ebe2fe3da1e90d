"""
Metadata block handling for task files.

Uses python-frontmatter for splitting and joining the ``---`` delimited
YAML block, with a custom handler that:

- decodes plain scalars verbatim (``$15,000``, ``1.10`` and ``2025-06-08``
  all stay strings; only ``null``/empty become None),
- quotes bare ``@handle`` values that YAML would otherwise reject,
- emits sequences in the compact inline form ``[a, b]``.

Decoded keys of known fields are folded onto canonical snake_case names so
the rest of the engine never sees ``createdDate`` vs ``created_date``.
Unknown keys keep their spelling.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import frontmatter
import yaml
from frontmatter.default_handlers import YAMLHandler

from .exceptions import MalformedMetadataError
from .models import METADATA_FIELDS

logger = logging.getLogger(__name__)

_NULL_TAG = "tag:yaml.org,2002:null"


class _VerbatimLoader(yaml.SafeLoader):
    """SafeLoader that resolves no implicit types except null."""


_VerbatimLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag == _NULL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class _MetadataDumper(yaml.SafeDumper):
    """SafeDumper that writes every sequence inline."""


def _represent_inline_list(dumper: yaml.SafeDumper, data: list[Any]) -> yaml.Node:
    return dumper.represent_sequence("tag:yaml.org,2002:seq", data, flow_style=True)


_MetadataDumper.add_representer(list, _represent_inline_list)


# key: @value
_SCALAR_HANDLE = re.compile(r"^(\s*[^\s:#-][^:]*:[ \t]+)(@[^\s].*?)\s*$")
# - @value
_BLOCK_HANDLE = re.compile(r"^(\s*-[ \t]+)(@[^\s].*?)\s*$")
# key: [@a, "@b"]
_INLINE_SEQUENCE = re.compile(r"^(\s*[^\s:#-][^:]*:[ \t]*)\[(.*)\]\s*$")


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def quote_handles(block: str) -> str:
    """Quote bare ``@name`` scalars so the block is valid YAML."""
    lines = []
    for line in block.split("\n"):
        if match := _SCALAR_HANDLE.match(line):
            line = match.group(1) + _quote(match.group(2))
        elif match := _BLOCK_HANDLE.match(line):
            line = match.group(1) + _quote(match.group(2))
        elif (match := _INLINE_SEQUENCE.match(line)) and "@" in match.group(2):
            items = []
            for item in match.group(2).split(","):
                stripped = item.strip()
                items.append(_quote(stripped) if stripped.startswith("@") else stripped)
            line = f"{match.group(1)}[{', '.join(items)}]"
        lines.append(line)
    return "\n".join(lines)


class BacklogYAMLHandler(YAMLHandler):
    """
    python-frontmatter handler tuned for Backlog.md task files.

    ``load`` raises MalformedMetadataError instead of a raw YAML error so
    the parser can recover with a single except clause.
    """

    def load(self, fm: str, **kwargs: Any) -> dict[str, Any]:
        try:
            data = yaml.load(quote_handles(fm), Loader=_VerbatimLoader)  # noqa: S506
        except yaml.YAMLError as e:
            raise MalformedMetadataError(str(e)) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise MalformedMetadataError(
                f"Metadata block is a {type(data).__name__}, expected a mapping"
            )
        return {str(key): value for key, value in data.items()}

    def export(self, metadata: dict[str, Any], **kwargs: Any) -> str:
        return yaml.dump(
            metadata,
            Dumper=_MetadataDumper,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
            width=float("inf"),
        ).strip()


# Logical field -> accepted spellings. The first spelling is canonical.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "assignee": ("assignee", "assignees"),
    "created_date": ("created_date", "created", "created_at"),
    "updated_date": ("updated_date", "updated", "updated_at"),
    "parent_task_id": ("parent_task_id", "parent", "parent_id"),
    "dependencies": ("dependencies", "depends_on"),
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

_ALIAS_LOOKUP = {
    spelling: canonical
    for canonical, spellings in FIELD_ALIASES.items()
    for spelling in spellings
}


def canonical_key(key: str) -> str:
    """
    Map a metadata key to its canonical snake_case name.

    Only spellings of known fields are folded; any other key is returned
    exactly as written so it survives a rewrite.

    Examples:
        >>> canonical_key("createdDate")
        'created_date'
        >>> canonical_key("parentTaskId")
        'parent_task_id'
        >>> canonical_key("assignees")
        'assignee'
        >>> canonical_key("onStatusChange")
        'onStatusChange'
    """
    snake = _CAMEL_BOUNDARY.sub(r"_\1", key).lower()
    if snake in _ALIAS_LOOKUP:
        return _ALIAS_LOOKUP[snake]
    if snake in METADATA_FIELDS:
        return snake
    return key


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def canonicalize(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Fold alias spellings of the same field into one canonical key.

    Walks keys in document order. An empty value never replaces a
    non-empty one; between two non-empty values the later one wins.
    """
    result: dict[str, Any] = {}
    for key, value in raw.items():
        canonical = canonical_key(key)
        if canonical not in result:
            result[canonical] = value
            continue
        current = result[canonical]
        if _is_empty(value):
            continue
        if not _is_empty(current) and current != value:
            logger.debug(
                "Conflicting values for %s (%r vs %r), keeping the later one",
                canonical,
                current,
                value,
            )
        result[canonical] = value
    return result


def detect_line_ending(text: str) -> str:
    """Return ``\\r\\n`` if the text uses CRLF line endings, else ``\\n``."""
    return "\r\n" if "\r\n" in text else "\n"


def split_frontmatter(
    text: str,
    source: str | None = None,
    strict: bool = False,
) -> tuple[dict[str, Any], str]:
    """
    Split a document into its canonical metadata map and body.

    Never raises on bad input unless ``strict``: a missing, unterminated
    or undecodable metadata block yields an empty map and the whole text
    as body.

    Args:
        text: Raw file text (any line ending)
        source: Optional path, used only in log messages
        strict: Raise MalformedMetadataError instead of recovering

    Returns:
        Tuple of (canonical metadata, body text with LF line endings)
    """
    normalized = text.replace("\r\n", "\n").lstrip("\ufeff")
    handler = BacklogYAMLHandler()

    if not handler.detect(normalized.lstrip()):
        return {}, normalized

    try:
        metadata, body = frontmatter.parse(normalized, handler=handler)
    except MalformedMetadataError as e:
        if strict:
            raise
        logger.warning("Malformed metadata in %s, treating as body: %s", source or "<text>", e)
        return {}, normalized

    return canonicalize(metadata), body


def join_frontmatter(metadata: dict[str, Any], body: str, line_ending: str = "\n") -> str:
    """
    Render a metadata map and body into file text.

    The result always ends with a single newline and uses ``line_ending``
    throughout.
    """
    post = frontmatter.Post(body.strip("\n"), handler=BacklogYAMLHandler())
    post.metadata = dict(metadata)
    text = frontmatter.dumps(post) + "\n"
    if line_ending != "\n":
        text = text.replace("\n", line_ending)
    return text


def as_string_list(value: Any) -> list[str]:
    """Normalize a scalar-or-sequence metadata value into a list of strings."""
    if _is_empty(value):
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    text = str(value).strip()
    return [text] if text else []
