"""
backlogkit - Backlog.md-compatible task file engine

Parses, serializes and edits Markdown task files with YAML metadata, and
resolves identifiers, manual ordering and task relationships over them.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from backlogkit.core.config.models import BacklogConfig
from backlogkit.core.tasks.models import TaskPatch, TaskRecord, TaskScope

__all__ = ["BacklogConfig", "TaskPatch", "TaskRecord", "TaskScope", "__version__"]
