"""
Identifier utilities for task identification.

Public API:
    Parser functions:
        - split_id: Decompose an identifier into prefix and numeric parts
        - numeric_key: Sort key comparing identifiers numerically
        - get_parent_id: Strip the last dotted component
        - id_from_filename: Derive an identifier from a task filename
        - format_task_id: Display helper (full / number / hidden)

    Generator functions:
        - next_id: Next top-level identifier after the highest existing one
        - next_subtask_id: Next child identifier of a parent

Example:
    >>> from backlogkit.core.ids import next_id, split_id
    >>> next_id(["TASK-3", "TASK-7"])
    'TASK-8'
    >>> split_id("TASK-7.1")
    ('TASK', (7, 1))
"""

from backlogkit.core.ids.generator import next_id, next_subtask_id
from backlogkit.core.ids.parser import (
    format_task_id,
    get_parent_id,
    id_from_filename,
    numeric_key,
    split_id,
)

__all__ = [
    # Parser functions
    "format_task_id",
    "get_parent_id",
    "id_from_filename",
    "numeric_key",
    "split_id",
    # Generator functions
    "next_id",
    "next_subtask_id",
]
