"""Tests for LocalFileStore: scope layout, fingerprints and guarded writes."""

import pytest

from backlogkit.core.tasks.exceptions import InvalidMoveError, WriteConflictError
from backlogkit.core.tasks.models import TaskScope
from backlogkit.core.tasks.store import LocalFileStore, fingerprint


@pytest.fixture
def store(backlog_dir) -> LocalFileStore:
    return LocalFileStore(backlog_dir)


class TestLayout:
    def test_scope_dirs(self, store, backlog_dir):
        assert store.scope_dir(TaskScope.ACTIVE) == backlog_dir / "tasks"
        assert store.scope_dir(TaskScope.DRAFT) == backlog_dir / "drafts"
        assert store.scope_dir(TaskScope.COMPLETED) == backlog_dir / "completed"
        assert store.scope_dir(TaskScope.ARCHIVED) == backlog_dir / "archive" / "tasks"

    def test_list_sorted_markdown_only(self, store, backlog_dir):
        for name in ("task-2 - B.md", "task-1 - A.md", "notes.txt"):
            (backlog_dir / "tasks" / name).write_text("x")
        assert [p.name for p in store.list(TaskScope.ACTIVE)] == ["task-1 - A.md", "task-2 - B.md"]


class TestReadWrite:
    def test_read_keeps_line_endings(self, store, backlog_dir):
        path = backlog_dir / "tasks" / "task-1.md"
        path.write_bytes(b"a\r\nb\r\n")

        snapshot = store.read(path)

        assert snapshot.text == "a\r\nb\r\n"
        assert snapshot.fingerprint == fingerprint(b"a\r\nb\r\n")
        assert snapshot.last_modified.tzinfo is not None

    def test_write_with_matching_fingerprint(self, store, backlog_dir):
        path = backlog_dir / "tasks" / "task-1.md"
        first = store.write(path, "one", expected=None)
        second = store.write(path, "two", expected=first)

        assert path.read_text() == "two"
        assert second == fingerprint(b"two")

    def test_stale_fingerprint(self, store, backlog_dir):
        path = backlog_dir / "tasks" / "task-1.md"
        stale = store.write(path, "one", expected=None)
        store.write(path, "two", expected=stale)

        with pytest.raises(WriteConflictError, match="modified since it was read"):
            store.write(path, "three", expected=stale)
        assert path.read_text() == "two"

    def test_no_temp_files_left(self, store, backlog_dir):
        store.write(backlog_dir / "tasks" / "task-1.md", "one", expected=None)
        assert [p.name for p in (backlog_dir / "tasks").iterdir()] == ["task-1.md"]


class TestMove:
    def test_move_creates_target_dir(self, store, backlog_dir):
        source = backlog_dir / "tasks" / "task-1.md"
        source.write_text("body")
        target = store.scope_dir(TaskScope.ARCHIVED) / "task-1.md"

        store.move(source, target)

        assert not source.exists()
        assert target.read_text() == "body"

    def test_move_onto_existing(self, store, backlog_dir):
        source = backlog_dir / "tasks" / "task-1.md"
        target = backlog_dir / "drafts" / "task-1.md"
        source.write_text("a")
        target.write_text("b")

        with pytest.raises(InvalidMoveError):
            store.move(source, target)
        assert target.read_text() == "b"
