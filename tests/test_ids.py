"""Tests for identifier parsing and allocation."""

import pytest

from backlogkit.core.ids import (
    format_task_id,
    get_parent_id,
    id_from_filename,
    next_id,
    next_subtask_id,
    numeric_key,
    split_id,
)


class TestSplitId:
    def test_simple(self):
        assert split_id("TASK-7") == ("TASK", (7,))

    def test_case_and_padding(self):
        assert split_id("task-007") == ("TASK", (7,))

    def test_dotted(self):
        assert split_id("TASK-7.1.2") == ("TASK", (7, 1, 2))

    @pytest.mark.parametrize("text", ["TASK", "7", "TASK-", "TASK-1.", "hello world"])
    def test_not_an_id(self, text):
        assert split_id(text) is None


def test_numeric_key_orders_numerically():
    ids = ["TASK-10", "TASK-2", "TASK-7.1", "TASK-7", "notes"]
    assert sorted(ids, key=numeric_key) == ["TASK-2", "TASK-7", "TASK-7.1", "TASK-10", "notes"]


def test_get_parent_id():
    assert get_parent_id("TASK-7.1") == "TASK-7"
    assert get_parent_id("TASK-7.1.3") == "TASK-7.1"
    assert get_parent_id("TASK-7") is None


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("task-12 - Fix login.md", "TASK-12"),
        ("task-12.1 - Sub task.md", "TASK-12.1"),
        ("TASK-3.md", "TASK-3"),
        ("readme.md", None),
    ],
)
def test_id_from_filename(filename, expected):
    assert id_from_filename(filename) == expected


def test_format_task_id():
    assert format_task_id("TASK-12.1") == "TASK-12.1"
    assert format_task_id("TASK-12.1", "number") == "12.1"
    assert format_task_id("TASK-12.1", "hidden") == ""


class TestNextId:
    def test_after_highest(self):
        assert next_id(["TASK-3", "TASK-7"]) == "TASK-8"

    def test_empty(self):
        assert next_id([]) == "TASK-1"

    def test_gaps_not_backfilled(self):
        assert next_id(["TASK-1", "TASK-9"]) == "TASK-10"

    def test_ignores_subtasks_and_other_prefixes(self):
        assert next_id(["TASK-3", "TASK-40.1", "BUG-99"]) == "TASK-4"

    def test_prefix_case_insensitive(self):
        assert next_id(["task-5"], prefix="task") == "TASK-6"

    def test_custom_prefix(self):
        assert next_id(["BUG-2"], prefix="BUG-") == "BUG-3"

    def test_zero_padding_keeps_width(self):
        assert next_id(["TASK-007", "TASK-012"], zero_padded=True) == "TASK-013"

    def test_zero_padding_default_width(self):
        assert next_id([], zero_padded=True) == "TASK-001"

    def test_zero_padding_fixed_width(self):
        assert next_id(["TASK-9"], zero_padded=4) == "TASK-0010"


class TestNextSubtaskId:
    def test_first_child(self):
        assert next_subtask_id("TASK-7", ["TASK-7"]) == "TASK-7.1"

    def test_after_highest_child(self):
        assert next_subtask_id("TASK-7", ["TASK-7", "TASK-7.1", "TASK-7.3"]) == "TASK-7.4"

    def test_grandchildren_ignored(self):
        assert next_subtask_id("TASK-7", ["TASK-7.1", "TASK-7.1.5"]) == "TASK-7.2"

    def test_case_insensitive(self):
        assert next_subtask_id("task-7", ["TASK-7.1"]) == "TASK-7.2"

    def test_other_parents_ignored(self):
        assert next_subtask_id("TASK-7", ["TASK-70.1", "TASK-17.2"]) == "TASK-7.1"
