"""
File store for task files.

The engine talks to storage through the small ``FileStore`` protocol so
the same writer works against a local checkout or any other backing.
``LocalFileStore`` maps storage scopes onto directories under the backlog
root::

    backlog/
        tasks/          active
        drafts/         draft
        completed/      completed
        archive/tasks/  archived

Every read returns a fingerprint (SHA-256 of the file bytes). Writes take
the fingerprint the caller read and refuse to overwrite when the file on
disk no longer matches it.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from .exceptions import InvalidMoveError, WriteConflictError
from .models import TaskScope

SCOPE_DIRS: dict[TaskScope, tuple[str, ...]] = {
    TaskScope.ACTIVE: ("tasks",),
    TaskScope.DRAFT: ("drafts",),
    TaskScope.COMPLETED: ("completed",),
    TaskScope.ARCHIVED: ("archive", "tasks"),
}


def fingerprint(data: bytes) -> str:
    """SHA-256 hex digest of file content."""
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class FileSnapshot:
    """Text of a file plus the fingerprint and mtime captured with it."""

    path: Path
    text: str
    fingerprint: str
    last_modified: datetime


class FileStore(Protocol):
    """Storage operations the task writer needs."""

    def scope_dir(self, scope: TaskScope) -> Path: ...

    def list(self, scope: TaskScope) -> list[Path]: ...

    def exists(self, path: Path) -> bool: ...

    def read(self, path: Path) -> FileSnapshot: ...

    def write(self, path: Path, text: str, expected: str | None) -> str: ...

    def delete(self, path: Path) -> None: ...

    def move(self, source: Path, target: Path) -> Path: ...


class LocalFileStore:
    """
    FileStore backed by a local backlog directory.

    Example:
        store = LocalFileStore(Path("backlog"))
        snapshot = store.read(store.list(TaskScope.ACTIVE)[0])
        store.write(snapshot.path, new_text, expected=snapshot.fingerprint)
    """

    def __init__(self, backlog_dir: Path):
        """
        Initialize store with a backlog directory.

        Args:
            backlog_dir: Root directory holding tasks/, drafts/ and friends
        """
        self.backlog_dir = Path(backlog_dir)
        self._lock = threading.Lock()

    def scope_dir(self, scope: TaskScope) -> Path:
        return self.backlog_dir.joinpath(*SCOPE_DIRS[scope])

    def list(self, scope: TaskScope) -> list[Path]:
        """List task files in a scope, sorted by filename."""
        directory = self.scope_dir(scope)
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.glob("*.md") if p.is_file())

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def read(self, path: Path) -> FileSnapshot:
        """
        Read a file as bytes and decode it as UTF-8.

        Line endings are left as written so the serializer can preserve them.

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not UTF-8
        """
        path = Path(path)
        data = path.read_bytes()
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return FileSnapshot(
            path=path,
            text=data.decode("utf-8"),
            fingerprint=fingerprint(data),
            last_modified=mtime,
        )

    def _current_fingerprint(self, path: Path) -> str | None:
        try:
            return fingerprint(path.read_bytes())
        except FileNotFoundError:
            return None

    def write(self, path: Path, text: str, expected: str | None) -> str:
        """
        Write a file if it still matches the fingerprint the caller read.

        Args:
            path: Target file
            text: New content
            expected: Fingerprint captured at read time, or None when the
                file must not exist yet

        Returns:
            Fingerprint of the written content

        Raises:
            WriteConflictError: If the file on disk no longer matches ``expected``
        """
        path = Path(path)
        data = text.encode("utf-8")

        with self._lock:
            actual = self._current_fingerprint(path)
            if actual != expected:
                raise WriteConflictError(path, expected, actual)

            path.parent.mkdir(parents=True, exist_ok=True)

            # Write to temporary file first
            fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".task_", suffix=".md.tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                # Atomic rename (replaces existing file)
                os.replace(temp_path, path)
            except Exception:
                # Clean up temp file on error
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise

        return fingerprint(data)

    def delete(self, path: Path) -> None:
        with self._lock:
            Path(path).unlink()

    def move(self, source: Path, target: Path) -> Path:
        """
        Move a file without touching its content.

        Raises:
            InvalidMoveError: If the target already exists
            FileNotFoundError: If the source is missing
        """
        source, target = Path(source), Path(target)
        with self._lock:
            if target.exists():
                raise InvalidMoveError(f"Target already exists: {target}")
            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(source, target)
        return target
