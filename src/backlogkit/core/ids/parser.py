"""
Identifier parser for task identification.

Task identifiers are ``<PREFIX>-<n>`` with optional dotted sub-identifier
suffixes: ``TASK-7``, ``TASK-7.1``, ``TASK-7.1.2``. Numeric components may
be zero-padded (``TASK-007``). Prefix matching is case-insensitive.

Public API:
    - split_id: Decompose an identifier into prefix and numeric parts
    - numeric_key: Sort key comparing identifiers numerically
    - get_parent_id: Strip the last dotted component
    - id_from_filename: Derive an identifier from a task filename
    - format_task_id: Display helper (full / number / hidden)
"""

import re
from typing import Literal

# Display modes for format_task_id
IdDisplayMode = Literal["full", "number", "hidden"]

_ID_REGEX = re.compile(r"^([A-Za-z][A-Za-z0-9_]*)-(\d+(?:\.\d+)*)$")
# "task-12 - Title.md", "task-12.1 - Title.md", "TASK-12.md"
_FILENAME_REGEX = re.compile(r"^([A-Za-z][A-Za-z0-9_]*-\d+(?:\.\d+)*)(?:\s+-\s+.*)?(?:\.md)?$")


def split_id(id_str: str) -> tuple[str, tuple[int, ...]] | None:
    """
    Decompose an identifier into its upper-cased prefix and numeric parts.

    Args:
        id_str: The identifier to decompose

    Returns:
        Tuple of (prefix, numbers), or None if the string is not an identifier

    Examples:
        >>> split_id("task-7.2")
        ('TASK', (7, 2))
        >>> split_id("TASK-007")
        ('TASK', (7,))
        >>> split_id("not an id") is None
        True
    """
    match = _ID_REGEX.match(id_str.strip())
    if not match:
        return None
    prefix, numbers = match.groups()
    return prefix.upper(), tuple(int(part) for part in numbers.split("."))


def numeric_key(id_str: str) -> tuple[int, tuple[int, ...], str]:
    """
    Sort key that orders identifiers numerically.

    ``TASK-2`` sorts before ``TASK-10`` and ``TASK-7`` before ``TASK-7.1``.
    Strings that are not identifiers sort after all identifiers, by text.
    """
    parts = split_id(id_str)
    if parts is None:
        return (1, (), id_str.upper())
    prefix, numbers = parts
    return (0, numbers, prefix)


def get_parent_id(id_str: str) -> str | None:
    """
    Extract the parent identifier from a dotted sub-identifier.

    Examples:
        >>> get_parent_id("TASK-7.1")
        'TASK-7'
        >>> get_parent_id("TASK-7") is None
        True
    """
    text = id_str.strip()
    if split_id(text) is None or "." not in text:
        return None
    return text.rsplit(".", 1)[0]


def id_from_filename(filename: str) -> str | None:
    """
    Derive an upper-cased identifier from a task filename.

    Examples:
        >>> id_from_filename("task-12 - Fix login.md")
        'TASK-12'
        >>> id_from_filename("notes.md") is None
        True
    """
    match = _FILENAME_REGEX.match(filename.strip())
    if not match:
        return None
    return match.group(1).upper()


def format_task_id(id_str: str, mode: IdDisplayMode = "full") -> str:
    """
    Format an identifier for display.

    Args:
        id_str: The identifier
        mode: ``full`` keeps it as is, ``number`` drops the prefix,
            ``hidden`` returns an empty string

    Examples:
        >>> format_task_id("TASK-12.1", "number")
        '12.1'
        >>> format_task_id("TASK-12", "hidden")
        ''
    """
    if mode == "hidden":
        return ""
    if mode == "number" and "-" in id_str:
        return id_str.split("-", 1)[1]
    return id_str
