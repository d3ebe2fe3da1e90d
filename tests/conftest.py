"""
Pytest configuration and shared fixtures.

Provides a temporary backlog directory, a writer over it, and helpers for
writing raw task files the way other tools leave them on disk.
"""

from pathlib import Path

import pytest

from backlogkit.core.config import clear_cache
from backlogkit.core.config.models import BacklogConfig
from backlogkit.core.tasks.writer import TaskWriter

# ==============================================================================
# Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Drop cached configs and BACKLOG_* overrides between tests."""
    for name in ("BACKLOG_ID_PREFIX", "BACKLOG_ZERO_PADDED_IDS", "BACKLOG_STATUSES"):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def backlog_dir(tmp_path) -> Path:
    """
    Provide a temporary backlog directory.

    Creates:
    - backlog/tasks/
    - backlog/drafts/
    """
    root = tmp_path / "backlog"
    (root / "tasks").mkdir(parents=True)
    (root / "drafts").mkdir()
    return root


@pytest.fixture
def config() -> BacklogConfig:
    return BacklogConfig()


@pytest.fixture
def writer(backlog_dir, config) -> TaskWriter:
    return TaskWriter.local(backlog_dir, config)


@pytest.fixture
def write_task_file(backlog_dir):
    """Write raw text to ``tasks/<name>`` and return the path."""

    def _write(name: str, text: str, subdir: str = "tasks") -> Path:
        path = backlog_dir / subdir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write


# ==============================================================================
# Sample Data Fixtures
# ==============================================================================


@pytest.fixture
def sample_task_text() -> str:
    """A task file as written by Backlog.md, with markers and checklists."""
    return (
        "---\n"
        "id: task-7\n"
        "title: Ship the importer\n"
        "status: In Progress\n"
        "assignee: [@alice]\n"
        "created_date: '2025-06-08 10:00'\n"
        "labels: [backend, api]\n"
        "dependencies: [task-5]\n"
        "budget: $15,000\n"
        "---\n"
        "\n"
        "## Description\n"
        "\n"
        "<!-- SECTION:DESCRIPTION:BEGIN -->\n"
        "Import legacy records.\n"
        "<!-- SECTION:DESCRIPTION:END -->\n"
        "\n"
        "## Acceptance Criteria\n"
        "<!-- AC:BEGIN -->\n"
        "- [ ] #1 Reads CSV\n"
        "- [x] #2 Reports errors\n"
        "<!-- AC:END -->\n"
        "\n"
        "## Definition of Done\n"
        "<!-- DOD:BEGIN -->\n"
        "- [ ] #1 Tests pass\n"
        "<!-- DOD:END -->\n"
    )

