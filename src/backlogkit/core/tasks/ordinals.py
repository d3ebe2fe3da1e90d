"""
Manual ordering of tasks within a status column.

Ordinals are gap-based: siblings are spaced ``ORDINAL_STEP`` apart so a
drop between two cards only needs the midpoint, and a move costs one file
write. Ordinals are only comparable within one status.

Cards without an ordinal sort after every card that has one. A drop that
lands below such cards gives them ordinals too, otherwise they would jump
to the end on the next reload.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from backlogkit.core.ids.parser import numeric_key

ORDINAL_STEP = 1000.0

# Below this spacing a midpoint is no longer distinguishable in practice
_MIN_GAP = 1e-6

SortField = Literal["ordinal", "title", "id", "priority", "status", "created", "updated"]


class Ordered(Protocol):
    id: str
    title: str
    ordinal: float | None


@dataclass(frozen=True)
class OrdinalUpdate:
    """A new ordinal for one task."""

    task_id: str
    ordinal: float


def _slots(siblings: Iterable[Any]) -> list[tuple[str, float | None]]:
    """Accept records or ``(id, ordinal)`` pairs."""
    slots = []
    for sibling in siblings:
        if isinstance(sibling, tuple):
            slots.append((sibling[0], sibling[1]))
        else:
            slots.append((sibling.id, sibling.ordinal))
    return slots


def resolve_conflicts(
    siblings: Sequence[Any],
    force_sequential: bool = False,
) -> list[OrdinalUpdate]:
    """
    Repair duplicate, decreasing or missing ordinals.

    Walks the siblings in display order. Any ordinal that is missing or
    not strictly greater than its predecessor becomes ``predecessor +
    ORDINAL_STEP``. With ``force_sequential`` every sibling is renumbered
    ``ORDINAL_STEP, 2 * ORDINAL_STEP, ...`` regardless of its old value.

    Args:
        siblings: Records or ``(id, ordinal)`` pairs in display order
        force_sequential: Renumber everything evenly

    Returns:
        Updates for the siblings whose ordinal changed

    Example:
        >>> [u.ordinal for u in resolve_conflicts([("A", 1000), ("B", 1000), ("C", 1000)])]
        [2000.0, 3000.0]
    """
    updates: list[OrdinalUpdate] = []
    previous: float | None = None

    for index, (task_id, ordinal) in enumerate(_slots(siblings)):
        if force_sequential:
            new = (index + 1) * ORDINAL_STEP
        elif ordinal is None or (previous is not None and ordinal <= previous):
            new = (previous if previous is not None else 0.0) + ORDINAL_STEP
        else:
            new = float(ordinal)

        if ordinal is None or float(ordinal) != new:
            updates.append(OrdinalUpdate(task_id, new))
        previous = new

    return updates


def drop_ordinals(
    moving_id: str,
    target_index: int,
    siblings: Sequence[Any],
) -> list[OrdinalUpdate]:
    """
    Compute ordinals for dropping a task at ``target_index`` in a column.

    The moved task gets a value between its new neighbours. Siblings above
    the drop position that have no ordinal are numbered as well. Siblings
    that already have one never change, unless the gap between the
    neighbours is exhausted, in which case the whole column is renumbered.

    Args:
        moving_id: The task being dropped
        target_index: Position in ``siblings`` where it is dropped (0 = top).
            If the task is already in ``siblings`` the index refers to the
            list before removing it.
        siblings: Records or ``(id, ordinal)`` pairs in display order

    Returns:
        Updates to apply; the moved task is always included

    Example:
        >>> drop_ordinals("D", 1, [("A", 1000), ("B", 2000), ("C", 3000)])
        [OrdinalUpdate(task_id='D', ordinal=1500.0)]
    """
    slots = _slots(siblings)
    original_index = next((i for i, (tid, _) in enumerate(slots) if tid == moving_id), None)
    others = [slot for slot in slots if slot[0] != moving_id]

    index = target_index
    if original_index is not None and original_index < target_index:
        index -= 1
    index = max(0, min(index, len(others)))

    new_order: list[tuple[str, float | None]] = list(others)
    new_order.insert(index, (moving_id, None))

    needing = [
        i for i in range(index + 1) if new_order[i][1] is None or new_order[i][0] == moving_id
    ]
    first = needing[0]

    ceiling: float | None = None
    for _, ordinal in new_order[index + 1 :]:
        if ordinal is not None:
            ceiling = float(ordinal)
            break

    base = 0.0
    if first > 0 and new_order[first - 1][1] is not None:
        base = float(new_order[first - 1][1])  # type: ignore[arg-type]
    elif first == 0 and ceiling is not None and ceiling <= 0:
        base = ceiling - ORDINAL_STEP * (len(needing) + 1)

    step = ORDINAL_STEP
    if ceiling is not None:
        step = min(ORDINAL_STEP, (ceiling - base) / (len(needing) + 1))

    if step <= _MIN_GAP:
        return resolve_conflicts(new_order, force_sequential=True)

    return [
        OrdinalUpdate(new_order[i][0], base + step * (n + 1)) for n, i in enumerate(needing)
    ]


def _has_ordinal(record: Ordered) -> bool:
    return record.ordinal is not None


def compare_by_ordinal(a: Ordered, b: Ordered) -> int:
    """
    Comparator: ordinal ascending, tasks without one last.

    Two tasks without an ordinal compare equal, so a stable sort keeps
    them in encounter order.
    """
    if _has_ordinal(a) and not _has_ordinal(b):
        return -1
    if not _has_ordinal(a) and _has_ordinal(b):
        return 1
    if _has_ordinal(a) and _has_ordinal(b):
        diff = a.ordinal - b.ordinal  # type: ignore[operator]
        return (diff > 0) - (diff < 0)
    return 0


def ordinal_key(record: Ordered) -> tuple[bool, float]:
    """Sort key equivalent to ``compare_by_ordinal``."""
    return (record.ordinal is None, record.ordinal if record.ordinal is not None else 0.0)


def sort_by_ordinal(records: Iterable[Ordered]) -> list[Ordered]:
    return sorted(records, key=ordinal_key)


def _rank(value: str | None, order: Sequence[str]) -> int:
    if value is None:
        return len(order) + 1
    wanted = value.casefold()
    for index, name in enumerate(order):
        if name.casefold() == wanted:
            return index
    return len(order)


def sort_records(
    records: Iterable[Any],
    by: SortField = "ordinal",
    *,
    reverse: bool = False,
    statuses: Sequence[str] = (),
    priorities: Sequence[str] = (),
) -> list[Any]:
    """
    Sort records by one field with a deterministic tie-break.

    Ties on the primary field fall through to case-insensitive title, then
    numeric identifier (``TASK-2`` before ``TASK-10``). Sorting by
    ordinal keeps encounter order for tasks without one instead.

    Args:
        records: Records to sort
        by: Primary sort field
        reverse: Reverse the primary field only
        statuses: Status order used when ``by="status"``
        priorities: Priority order, highest first, used when ``by="priority"``
    """
    items = list(records)
    if by == "ordinal":
        return sorted(items, key=ordinal_key, reverse=reverse)

    primary: dict[str, Any] = {
        "title": lambda r: r.title.casefold(),
        "id": lambda r: numeric_key(r.id),
        "priority": lambda r: _rank(r.priority, priorities),
        "status": lambda r: _rank(r.status, statuses),
        "created": lambda r: (r.created is None, r.created or ""),
        "updated": lambda r: (r.updated is None, r.updated or ""),
    }
    if by not in primary:
        raise ValueError(f"Unknown sort field: {by}")

    # Stable sorts: tie-breaks first, then the primary field
    items.sort(key=lambda r: (r.title.casefold(), numeric_key(r.id)))
    items.sort(key=primary[by], reverse=reverse)
    return items
