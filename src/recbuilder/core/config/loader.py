"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import RecbuilderConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: RecbuilderConfig | None = None

_FALSE_VALUES = ("false", "0", "no", "")


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/recbuilder/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "recbuilder" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .recbuilder.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".recbuilder.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`; nested
    dicts are merged, not replaced.

    Example:
        >>> deep_merge({"emit": {"annotate": True}}, {"emit": {"builder_suffix": "B"}})
        {'emit': {'annotate': True, 'builder_suffix': 'B'}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient: warn and fall back
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _is_true(value: str) -> bool:
    return value.strip().lower() not in _FALSE_VALUES


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        RECBUILDER_BUILDER_SUFFIX - overrides emit.builder_suffix
        RECBUILDER_RECORD_PROTOCOL - overrides emit.record_protocol
        RECBUILDER_ANNOTATE - overrides emit.annotate

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()
    emit = dict(result.get("emit") or {})

    if suffix := os.environ.get("RECBUILDER_BUILDER_SUFFIX"):
        emit["builder_suffix"] = suffix.strip()

    if (protocol := os.environ.get("RECBUILDER_RECORD_PROTOCOL")) is not None:
        emit["record_protocol"] = _is_true(protocol)

    if (annotate := os.environ.get("RECBUILDER_ANNOTATE")) is not None:
        emit["annotate"] = _is_true(annotate)

    if emit:
        result["emit"] = emit
    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "types": {
            "optional_aliases": ["Optional"],
            "union_aliases": ["Union"],
            "typing_modules": ["typing", "typing_extensions", "t"],
        },
        "extract": {"decorators": ["builder"]},
        "emit": {"builder_suffix": "Builder", "record_protocol": True, "annotate": True},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> RecbuilderConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (RECBUILDER_*)
        2. Project config (.recbuilder.json)
        3. User config (~/.config/recbuilder/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .recbuilder.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated RecbuilderConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation

    Example:
        >>> config = load_config()
        >>> config.emit.builder_suffix
        'Builder'
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    # Project config wins over user config
    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = RecbuilderConfig(**merged)
    _config_cache = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
