"""
Merge task sets from several origins (e.g. branches) into one view.

When the same identifier appears in more than one set, one record is
kept according to a resolution strategy:

- ``most_recent``: the record with the latest ``last_modified``.
- ``most_progressed``: the record whose status is furthest along the
  configured status order.

Ties keep the record from the earliest set, so the local set should be
passed first.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Literal

from .models import TaskRecord

ResolutionStrategy = Literal["most_recent", "most_progressed"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _timestamp(record: TaskRecord) -> datetime:
    value = record.last_modified
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _progress(record: TaskRecord, statuses: Sequence[str]) -> int:
    wanted = record.status.casefold()
    for index, name in enumerate(statuses):
        if name.casefold() == wanted:
            return index
    return -1


def pick_record(
    candidates: Sequence[TaskRecord],
    strategy: ResolutionStrategy = "most_recent",
    statuses: Sequence[str] = ("To Do", "In Progress", "Done"),
) -> TaskRecord:
    """
    Choose one record among copies of the same task.

    Raises:
        ValueError: If ``candidates`` is empty or the strategy is unknown
    """
    if strategy not in ("most_recent", "most_progressed"):
        raise ValueError(f"Unknown resolution strategy: {strategy}")
    if not candidates:
        raise ValueError("No records to choose from")

    best = candidates[0]
    for record in candidates[1:]:
        if strategy == "most_recent":
            if _timestamp(record) > _timestamp(best):
                best = record
        elif _progress(record, statuses) > _progress(best, statuses):
            best = record
    return best


def merge_task_sets(
    sets: Iterable[Iterable[TaskRecord]],
    strategy: ResolutionStrategy = "most_recent",
    statuses: Sequence[str] = ("To Do", "In Progress", "Done"),
) -> list[TaskRecord]:
    """
    Merge several record sets, keeping one record per identifier.

    Args:
        sets: Record sets in priority order (local first)
        strategy: How to choose between copies of the same id
        statuses: Ordered status names for ``most_progressed``

    Returns:
        One record per id, in first-seen order
    """
    groups: dict[str, list[TaskRecord]] = {}
    for records in sets:
        for record in records:
            groups.setdefault(record.id.upper(), []).append(record)
    return [pick_record(group, strategy, statuses) for group in groups.values()]
