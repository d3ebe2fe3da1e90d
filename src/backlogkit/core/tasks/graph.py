"""
Relationship resolution over a set of task records.

Provides a pure query object built from a snapshot of records (the
"context set"). The same object answers for local records and for a
read-only set loaded from another branch; which records were passed in is
the only thing that decides what resolves.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from pydantic import BaseModel, Field

from .exceptions import TaskNotFoundError
from .models import TaskRecord

DEFAULT_TERMINAL_STATUSES = ("Done", "Archived")


def _key(task_id: str) -> str:
    return task_id.strip().upper()


class BlockerRef(BaseModel):
    """One dependency of the focal task, as seen in the context set."""

    id: str
    missing: bool = Field(description="No record with this id exists in the context set")
    status: str | None = None
    resolved: bool = Field(default=False, description="Dependency is in a terminal status")


class Relationships(BaseModel):
    """Everything the resolver knows about one task."""

    task_id: str
    blocked_by: list[BlockerRef] = Field(default_factory=list)
    is_blocked: bool = False
    blocks: list[str] = Field(default_factory=list)
    parent: str | None = None
    parent_missing: bool = False
    children: list[str] = Field(default_factory=list)


class RelationshipResolver:
    """Immutable relationship index built from a snapshot of records.

    The index models two kinds of dependency edges:

    * **forward edge** (``dependencies``): task A depends on task B, so A is
      blocked until B reaches a terminal status.
    * **reverse edge** (``blocks``): B blocks A.

    Parent links are back-references stored on the child; the resolver
    inverts them into a children map.

    Example::

        resolver = RelationshipResolver(writer.list_tasks(), ["Done"])
        resolver.resolve("TASK-7").is_blocked
    """

    __slots__ = ("_index", "_order", "_forward", "_reverse", "_children", "_terminal")

    def __init__(
        self,
        records: Iterable[TaskRecord],
        terminal_statuses: Iterable[str] = DEFAULT_TERMINAL_STATUSES,
    ) -> None:
        # Several records may share an id when the set spans origins
        self._index: dict[str, list[TaskRecord]] = {}
        self._order: list[str] = []
        self._terminal = frozenset(s.strip().casefold() for s in terminal_statuses)

        # forward[A] = [B, C] means A depends on B and C
        self._forward: dict[str, list[str]] = {}
        # reverse[B] = [A] means B blocks A
        self._reverse: dict[str, list[str]] = {}
        self._children: dict[str, list[str]] = {}

        for record in records:
            key = _key(record.id)
            if key not in self._index:
                self._index[key] = []
                self._order.append(key)
            self._index[key].append(record)

            deps = self._forward.setdefault(key, [])
            for dep in record.dependencies:
                dep_key = _key(dep)
                if dep_key not in deps:
                    deps.append(dep_key)
                blocked = self._reverse.setdefault(dep_key, [])
                if key not in blocked:
                    blocked.append(key)

            if record.parent_id:
                siblings = self._children.setdefault(_key(record.parent_id), [])
                if key not in siblings:
                    siblings.append(key)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, task_id: str, origin: str | None = None) -> TaskRecord | None:
        """Look up a record by id, preferring one from ``origin``."""
        candidates = self._index.get(_key(task_id))
        if not candidates:
            return None
        if origin is not None:
            for record in candidates:
                if record.origin == origin:
                    return record
        return candidates[0]

    def __contains__(self, task_id: object) -> bool:
        return isinstance(task_id, str) and _key(task_id) in self._index

    def is_terminal(self, status: str | None) -> bool:
        return bool(status) and status.strip().casefold() in self._terminal  # type: ignore[union-attr]

    # ------------------------------------------------------------------
    # Core queries
    # ------------------------------------------------------------------

    def blocked_by(self, task: TaskRecord) -> list[BlockerRef]:
        """One entry per dependency, in declaration order."""
        refs: list[BlockerRef] = []
        seen: set[str] = set()
        for dep in task.dependencies:
            if _key(dep) in seen:
                continue
            seen.add(_key(dep))
            record = self.find(dep, task.origin)
            if record is None:
                refs.append(BlockerRef(id=dep, missing=True))
            else:
                refs.append(
                    BlockerRef(
                        id=record.id,
                        missing=False,
                        status=record.status,
                        resolved=self.is_terminal(record.status),
                    )
                )
        return refs

    def is_blocked(self, task: TaskRecord) -> bool:
        """True if any dependency is missing or not yet in a terminal status."""
        return any(ref.missing or not ref.resolved for ref in self.blocked_by(task))

    def blocks(self, task_id: str) -> list[str]:
        """Ids of records that list *task_id* as a dependency."""
        return [self._display_id(k) for k in self._reverse.get(_key(task_id), [])]

    def parent(self, task: TaskRecord) -> TaskRecord | None:
        """The parent record, looked up in the focal record's own origin first."""
        if not task.parent_id:
            return None
        return self.find(task.parent_id, task.origin)

    def children(self, task: TaskRecord) -> list[str]:
        """Back-referencing children merged with declared subtasks, de-duplicated."""
        result: list[str] = []
        seen: set[str] = set()
        for key in self._children.get(_key(task.id), []):
            seen.add(key)
            result.append(self._display_id(key))
        for subtask in task.subtasks:
            if _key(subtask) not in seen:
                seen.add(_key(subtask))
                result.append(self._display_id(_key(subtask), subtask))
        return result

    def resolve(self, task: TaskRecord | str) -> Relationships:
        """
        Compute every relationship of one task.

        Args:
            task: The focal record, or its id looked up in the context set

        Raises:
            TaskNotFoundError: If an id is given and is not in the context set
        """
        if isinstance(task, str):
            found = self.find(task)
            if found is None:
                raise TaskNotFoundError(task)
            task = found

        blocked_by = self.blocked_by(task)
        parent = self.parent(task)
        return Relationships(
            task_id=task.id,
            blocked_by=blocked_by,
            is_blocked=any(ref.missing or not ref.resolved for ref in blocked_by),
            blocks=self.blocks(task.id),
            parent=parent.id if parent is not None else None,
            parent_missing=bool(task.parent_id) and parent is None,
            children=self.children(task),
        )

    def transitive_blocks(self, task_id: str) -> set[str]:
        """BFS through reverse edges: every record waiting on *task_id*, directly or not."""
        visited: set[str] = set()
        queue: deque[str] = deque([_key(task_id)])

        while queue:
            current = queue.popleft()
            for neighbour in self._reverse.get(current, []):
                if neighbour not in visited:
                    visited.add(neighbour)
                    queue.append(neighbour)

        visited.discard(_key(task_id))
        return {self._display_id(k) for k in visited}

    def has_cycle(self) -> bool:
        """Detect dependency cycles using three-color DFS (white / gray / black)."""
        WHITE, GRAY, BLACK = 0, 1, 2  # noqa: N806
        color: dict[str, int] = {key: WHITE for key in self._order}

        def _visit(node: str) -> bool:
            color[node] = GRAY
            for dep in self._forward.get(node, []):
                if dep not in color:
                    continue  # missing dependency, no outgoing edges
                if color[dep] == GRAY:
                    return True
                if color[dep] == WHITE and _visit(dep):
                    return True
            color[node] = BLACK
            return False

        for key in self._order:
            if color[key] == WHITE:
                if _visit(key):
                    return True
        return False

    def _display_id(self, key: str, fallback: str | None = None) -> str:
        candidates = self._index.get(key)
        if candidates:
            return candidates[0].id
        return fallback or key


def resolve_relationships(
    task: TaskRecord | str,
    records: Iterable[TaskRecord],
    terminal_statuses: Iterable[str] = DEFAULT_TERMINAL_STATUSES,
) -> Relationships:
    """Stateless convenience wrapper around ``RelationshipResolver.resolve``."""
    return RelationshipResolver(records, terminal_statuses).resolve(task)
