"""
Configuration data models for backlogkit.

These models define the structure of ``backlog/config.yml``, with
validation and type safety via Pydantic. Keys may be written in either
snake_case or camelCase; both spellings fold onto the field names below.
"""

import re
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

# Alternate spellings accepted for a field, after camelCase folding
_KEY_ALIASES = {
    "task_prefix": "id_prefix",
}


def fold_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase and legacy key spellings onto field names."""
    folded: dict[str, Any] = {}
    for key, value in data.items():
        snake = _CAMEL_BOUNDARY.sub(r"_\1", str(key)).lower()
        folded[_KEY_ALIASES.get(snake, snake)] = value
    return folded


class Milestone(BaseModel):
    """A milestone declared in the config file."""

    id: str
    name: str
    description: Optional[str] = None


class BacklogConfig(BaseModel):
    """
    Project-level backlog configuration.

    Loaded from defaults, the project config file, and env vars.

    Example:
        >>> config = BacklogConfig(statuses=["Todo", "Doing", "Done"])
        >>> config.first_status
        'Todo'
        >>> config.is_terminal("done")
        True
    """

    project_name: Optional[str] = Field(default=None, description="Display name of the project")
    id_prefix: str = Field(
        default="TASK",
        min_length=1,
        description="Prefix for task identifiers (e.g., 'TASK' -> TASK-12)",
    )
    zero_padded_ids: Union[bool, int] = Field(
        default=False,
        description="Zero-pad numeric ids: True keeps the existing width, an int fixes it",
    )
    statuses: list[str] = Field(
        default_factory=lambda: ["To Do", "In Progress", "Done"],
        min_length=1,
        description="Ordered status names; also the board columns",
    )
    terminal_statuses: Optional[list[str]] = Field(
        default=None,
        description="Statuses that count as resolved for blocking (default: last status + Archived)",
    )
    priorities: list[str] = Field(
        default_factory=lambda: ["high", "medium", "low"],
        description="Ordered priority names, highest first",
    )
    default_status: Optional[str] = Field(
        default=None,
        description="Status for new tasks (default: first status)",
    )
    labels: list[str] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    check_active_branches: bool = Field(
        default=False,
        description="Merge tasks from recently active branches",
    )
    active_branch_days: int = Field(
        default=30,
        ge=1,
        description="How recent a branch must be to count as active",
    )
    task_resolution_strategy: Literal["most_recent", "most_progressed"] = Field(
        default="most_recent",
        description="How to pick one record when several branches carry the same id",
    )

    model_config = ConfigDict(
        extra="allow",  # Upstream config carries many UI-only keys
        validate_assignment=True,
    )

    @model_validator(mode="before")
    @classmethod
    def fold_key_spellings(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return fold_keys(data)

    @field_validator("milestones", mode="before")
    @classmethod
    def validate_milestones(cls, v: Any) -> Any:
        """Accept bare milestone names alongside full mappings."""
        if not isinstance(v, list):
            return v
        result = []
        for item in v:
            if isinstance(item, str):
                result.append({"id": item, "name": item})
            else:
                result.append(item)
        return result

    @field_validator("id_prefix")
    @classmethod
    def validate_id_prefix(cls, v: str) -> str:
        return v.strip().rstrip("-")

    @property
    def first_status(self) -> str:
        return self.default_status or self.statuses[0]

    @property
    def resolved_terminal_statuses(self) -> list[str]:
        if self.terminal_statuses is not None:
            return self.terminal_statuses
        return [self.statuses[-1], "Archived"]

    def is_terminal(self, status: Optional[str]) -> bool:
        """Case-insensitive membership test against the terminal statuses."""
        if not status:
            return False
        wanted = status.strip().casefold()
        return any(s.casefold() == wanted for s in self.resolved_terminal_statuses)
