"""
Tests for the task CLI commands.

Every command runs against a temporary backlog directory passed with
``--dir``.
"""

import json

import pytest
from typer.testing import CliRunner

from backlogkit.cli import app
from backlogkit.cli.errors import ExitCode

runner = CliRunner()


@pytest.fixture
def invoke(backlog_dir):
    """Run the CLI against the temporary backlog directory."""

    def _invoke(*args: str):
        return runner.invoke(app, ["--dir", str(backlog_dir), *args])

    return _invoke


class TestCreateCommand:
    def test_create(self, invoke, backlog_dir):
        result = invoke("create", "Fix login", "--priority", "high")

        assert result.exit_code == 0
        assert "Created: TASK-1" in result.output
        assert (backlog_dir / "tasks" / "task-1 - Fix-login.md").exists()

    def test_create_json(self, invoke):
        result = invoke(
            "create",
            "Write tests",
            "--label",
            "testing",
            "--label",
            "ci",
            "--depends-on",
            "TASK-9",
            "--json",
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["id"] == "TASK-1"
        assert data["labels"] == ["testing", "ci"]
        assert data["dependencies"] == ["TASK-9"]

    def test_create_subtask(self, invoke):
        invoke("create", "Parent")
        result = invoke("create", "Child", "--parent", "TASK-1")

        assert result.exit_code == 0
        assert "Created: TASK-1.1" in result.output

    def test_create_with_missing_parent(self, invoke):
        result = invoke("create", "Child", "--parent", "TASK-404")

        assert result.exit_code == ExitCode.USER_ERROR
        assert "Task not found" in result.output

    def test_create_draft(self, invoke, backlog_dir):
        result = invoke("create", "Idea", "--draft")

        assert result.exit_code == 0
        assert (backlog_dir / "drafts" / "task-1 - Idea.md").exists()


class TestListCommand:
    def test_empty(self, invoke):
        result = invoke("list")
        assert result.exit_code == 0
        assert "No tasks found" in result.output

    def test_list_json_and_filter(self, invoke):
        invoke("create", "First")
        invoke("create", "Second", "--status", "In Progress")

        result = invoke("list", "--status", "in progress", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [t["id"] for t in data] == ["TASK-2"]

    def test_list_table(self, invoke):
        invoke("create", "Visible task")
        result = invoke("list")
        assert result.exit_code == 0
        assert "TASK-1" in result.output
        assert "Total: 1 tasks" in result.output

    def test_all_scopes(self, invoke):
        invoke("create", "Active one")
        invoke("create", "Draft one", "--draft")

        result = invoke("list", "--scope", "all", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert sorted((t["id"], t["scope"]) for t in data) == [
            ("TASK-1", "active"),
            ("TASK-2", "draft"),
        ]

    def test_invalid_scope(self, invoke):
        result = invoke("list", "--scope", "attic")
        assert result.exit_code == ExitCode.USER_ERROR

    def test_invalid_sort(self, invoke):
        result = invoke("list", "--sort", "colour")
        assert result.exit_code == ExitCode.USER_ERROR


class TestShowCommand:
    def test_show_relationships_json(self, invoke):
        invoke("create", "Dependency")
        invoke("create", "Focal", "--depends-on", "TASK-1", "--depends-on", "TASK-9")

        result = invoke("show", "task-2", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        rel = data["relationships"]
        assert rel["is_blocked"] is True
        assert [(b["id"], b["missing"]) for b in rel["blocked_by"]] == [
            ("TASK-1", False),
            ("TASK-9", True),
        ]

    def test_show_text(self, invoke):
        invoke("create", "Readable", "--description", "Some details")
        result = invoke("show", "TASK-1")
        assert result.exit_code == 0
        assert "Readable" in result.output
        assert "Some details" in result.output

    def test_show_missing(self, invoke):
        result = invoke("show", "TASK-404")
        assert result.exit_code == ExitCode.USER_ERROR
        assert "Task not found" in result.output
        assert "backlogkit list --scope all" in result.output


class TestEditCommands:
    def test_edit(self, invoke):
        invoke("create", "Editable")
        result = invoke("edit", "TASK-1", "--status", "done", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output)["status"] == "Done"

    def test_edit_nothing(self, invoke):
        invoke("create", "Editable")
        result = invoke("edit", "TASK-1")
        assert result.exit_code == ExitCode.USER_ERROR

    def test_check(self, invoke, backlog_dir):
        (backlog_dir / "tasks" / "task-1 - Checks.md").write_text(
            "---\nid: task-1\ntitle: Checks\n---\n\n"
            "## Acceptance Criteria\n<!-- AC:BEGIN -->\n- [ ] #1 First\n<!-- AC:END -->\n"
        )

        result = invoke("check", "TASK-1", "ac", "1")

        assert result.exit_code == 0
        assert "#1 checked" in result.output
        assert "- [x] #1 First" in (backlog_dir / "tasks" / "task-1 - Checks.md").read_text()

    def test_check_missing_item(self, invoke):
        invoke("create", "No checklist")
        result = invoke("check", "TASK-1", "dod", "3")
        assert result.exit_code == ExitCode.USER_ERROR

    def test_check_bad_group(self, invoke):
        invoke("create", "No checklist")
        result = invoke("check", "TASK-1", "todo", "1")
        assert result.exit_code == ExitCode.USER_ERROR


class TestMoveDeleteCommands:
    def test_move(self, invoke, backlog_dir):
        invoke("create", "Archive me")
        result = invoke("move", "TASK-1", "active", "archived")

        assert result.exit_code == 0
        assert (backlog_dir / "archive" / "tasks" / "task-1 - Archive-me.md").exists()

    def test_move_same_scope(self, invoke):
        invoke("create", "Stay")
        result = invoke("move", "TASK-1", "active", "active")
        assert result.exit_code == ExitCode.USER_ERROR

    def test_delete_requires_yes(self, invoke, backlog_dir):
        invoke("create", "Keep")
        result = invoke("delete", "TASK-1")

        assert result.exit_code == ExitCode.USER_ERROR
        assert (backlog_dir / "tasks" / "task-1 - Keep.md").exists()

    def test_delete(self, invoke, backlog_dir):
        invoke("create", "Remove")
        result = invoke("delete", "TASK-1", "--yes")

        assert result.exit_code == 0
        assert not (backlog_dir / "tasks" / "task-1 - Remove.md").exists()


class TestOrderingCommands:
    def test_next_id(self, invoke):
        invoke("create", "One")
        assert invoke("next-id").output.strip() == "TASK-2"
        assert invoke("next-id", "--parent", "TASK-1").output.strip() == "TASK-1.1"

    def test_repair_then_reorder(self, invoke):
        for title in ("A", "B", "C"):
            invoke("create", title)

        result = invoke("repair-ordinals", "To Do")
        assert result.exit_code == 0
        assert "TASK-3: ordinal 3000" in result.output

        result = invoke("reorder", "TASK-3", "0")
        assert result.exit_code == 0
        assert "TASK-3: ordinal 500" in result.output

    def test_repair_nothing(self, invoke):
        result = invoke("repair-ordinals", "Done")
        assert result.exit_code == 0
        assert "No ordinal conflicts" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "backlogkit" in result.output
