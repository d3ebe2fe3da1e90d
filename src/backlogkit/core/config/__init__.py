"""
Configuration models and loading.

This module provides the Pydantic model for backlog configuration with
layered merging: defaults < config.yml < env vars.
"""

from .loader import clear_cache, get_config_path, load_config
from .models import BacklogConfig, Milestone

__all__ = [
    # Models
    "BacklogConfig",
    "Milestone",
    # Loader functions
    "clear_cache",
    "get_config_path",
    "load_config",
]
