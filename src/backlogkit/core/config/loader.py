"""
Configuration loading with layered merging.

Implements the configuration precedence chain:
    defaults < project config file < env vars

The project config file is ``<backlog_dir>/config.yml`` (``config.yaml``
is accepted too), the file Backlog.md itself writes.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from .models import BacklogConfig, fold_keys

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per process
_config_cache: dict[Path, BacklogConfig] = {}


def get_config_path(backlog_dir: Path | None = None) -> Path:
    """
    Get path to the project configuration file.

    Args:
        backlog_dir: Backlog directory (defaults to ./backlog)

    Returns:
        Path to config.yml, or config.yaml when only that one exists
    """
    if backlog_dir is None:
        backlog_dir = Path.cwd() / "backlog"
    yml_path = backlog_dir / "config.yml"
    yaml_path = backlog_dir / "config.yaml"
    if not yml_path.exists() and yaml_path.exists():
        return yaml_path
    return yml_path


def load_yaml_file(path: Path) -> dict[str, Any] | None:
    """
    Load a YAML mapping, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to YAML file

    Returns:
        Parsed YAML as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as e:
        # Config system should be resilient
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None

    if isinstance(data, dict):
        return data
    if data is not None:
        logger.warning("Config at %s is not a mapping, ignoring", path)
    return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        BACKLOG_ID_PREFIX - overrides id_prefix
        BACKLOG_ZERO_PADDED_IDS - "true"/"false" or an integer width
        BACKLOG_STATUSES - comma-separated status names

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if prefix := os.environ.get("BACKLOG_ID_PREFIX"):
        result["id_prefix"] = prefix

    if padded := os.environ.get("BACKLOG_ZERO_PADDED_IDS"):
        if padded.isdigit():
            result["zero_padded_ids"] = int(padded)
        else:
            result["zero_padded_ids"] = padded.lower() not in ("false", "0", "no", "")

    if statuses := os.environ.get("BACKLOG_STATUSES"):
        names = [s.strip() for s in statuses.split(",") if s.strip()]
        if names:
            result["statuses"] = names
        else:
            logger.warning("Invalid BACKLOG_STATUSES value %r, ignoring", statuses)

    return result


def load_config(backlog_dir: Path | None = None, use_cache: bool = True) -> BacklogConfig:
    """
    Load configuration with layered merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (BACKLOG_*)
        2. Project config (backlog/config.yml)
        3. Model defaults

    Args:
        backlog_dir: Backlog directory (defaults to ./backlog)
        use_cache: If True, return cached config from a previous load

    Returns:
        Validated BacklogConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation

    Example:
        >>> config = load_config()
        >>> config.id_prefix
        'TASK'
    """
    config_path = get_config_path(backlog_dir)
    cache_key = config_path.resolve()

    if use_cache and cache_key in _config_cache:
        return _config_cache[cache_key]

    merged: dict[str, Any] = {}
    if project_config := load_yaml_file(config_path):
        # Fold spellings before env overrides so BACKLOG_* wins over idPrefix
        merged = fold_keys(project_config)

    merged = apply_env_overrides(merged)
    config = BacklogConfig(**merged)

    _config_cache[cache_key] = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    _config_cache.clear()
