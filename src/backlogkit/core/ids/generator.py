"""
Identifier allocation.

Both functions are pure: they take a snapshot of the identifiers that
already exist and return the next one. There is no counter state to keep
in sync; gaps left by deleted records are never backfilled.

Example:
    >>> next_id(["TASK-3", "TASK-7"], prefix="TASK")
    'TASK-8'
    >>> next_subtask_id("TASK-7", ["TASK-7", "TASK-7.1"])
    'TASK-7.2'
"""

from __future__ import annotations

from collections.abc import Iterable

from backlogkit.core.ids.parser import split_id

# Width used when zero padding is enabled but no existing id shows a width
DEFAULT_PAD_WIDTH = 3


def next_id(
    existing: Iterable[str],
    prefix: str = "TASK",
    zero_padded: bool | int = False,
) -> str:
    """
    Return the identifier after the highest existing one.

    Only top-level identifiers whose prefix matches (case-insensitive)
    are considered; sub-identifiers such as ``TASK-7.1`` are ignored.

    Args:
        existing: All identifiers visible in the scope being allocated for
        prefix: Identifier prefix (e.g., "TASK")
        zero_padded: False for no padding, True to keep the widest existing
            width, or an explicit integer width

    Returns:
        The new identifier, e.g. ``TASK-8`` or ``TASK-008``
    """
    wanted = prefix.strip().rstrip("-").upper()
    highest = 0
    width = 0

    for id_str in existing:
        parts = split_id(id_str)
        if parts is None:
            continue
        id_prefix, numbers = parts
        if id_prefix != wanted or len(numbers) != 1:
            continue
        highest = max(highest, numbers[0])
        digits = id_str.strip().rsplit("-", 1)[1]
        width = max(width, len(digits))

    number = highest + 1
    if zero_padded is False:
        return f"{wanted}-{number}"
    if zero_padded is True:
        pad = width or DEFAULT_PAD_WIDTH
    else:
        pad = int(zero_padded)
    return f"{wanted}-{number:0{pad}d}"


def next_subtask_id(parent_id: str, existing: Iterable[str]) -> str:
    """
    Return the next child identifier of ``parent_id``.

    Only direct children (``parent.N``) count; grandchildren such as
    ``TASK-7.1.1`` do not affect the number picked for ``TASK-7``.

    Args:
        parent_id: The parent identifier
        existing: All identifiers visible in the scope

    Returns:
        ``parent_id.(max N + 1)``, starting at ``.1``
    """
    parent = parent_id.strip().upper()
    prefix = f"{parent}."
    highest = 0

    for id_str in existing:
        candidate = id_str.strip().upper()
        if not candidate.startswith(prefix):
            continue
        suffix = candidate[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    return f"{parent}.{highest + 1}"
