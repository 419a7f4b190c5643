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

from .models import CockpitConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: CockpitConfig | None = None


def get_xdg_config_home() -> Path:
    """Base directory for per-user config: ``$XDG_CONFIG_HOME`` or ``~/.config``."""
    return Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")


def get_user_config_path() -> Path:
    """Settings shared by every board a user edits."""
    return get_xdg_config_home() / "cockpit" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Board-specific settings, read from ``.cockpit.json`` in *cwd* (default: cwd)."""
    return (cwd or Path.cwd()) / ".cockpit.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Layer *override* on top of *base* without mutating either.

    Sections such as ``status`` or ``links`` merge key by key, so a project
    file that only sets ``links.sync_name`` keeps the user's ``status``
    settings. Anything that is not a section (lists included) is replaced.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = deep_merge(current, value)
        merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any] | None:
    """Read one config layer, or None when the file is missing or not a JSON object."""
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to parse config at {path}: {e}")
        return None


def _env_flag(value: str) -> bool:
    return value.lower() not in ("false", "0", "")


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        COCKPIT_SEVERITY_PRESET - overrides status.severity_preset
        COCKPIT_SYNC_NAME - overrides links.sync_name
        COCKPIT_DEFAULT_STATUS - overrides editor.default_status

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if preset := os.environ.get("COCKPIT_SEVERITY_PRESET"):
        status = dict(result.get("status", {}))
        status["severity_preset"] = preset
        result["status"] = status

    if sync_name := os.environ.get("COCKPIT_SYNC_NAME"):
        links = dict(result.get("links", {}))
        links["sync_name"] = _env_flag(sync_name)
        result["links"] = links

    if default_status := os.environ.get("COCKPIT_DEFAULT_STATUS"):
        editor = dict(result.get("editor", {}))
        editor["default_status"] = default_status
        result["editor"] = editor

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "status": {"severity_preset": "default", "default_status": "ok"},
        "links": {"sync_name": False},
        "editor": {"default_status": "ok", "strip_names": True},
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> CockpitConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (COCKPIT_*)
        2. Project config (.cockpit.json)
        3. User config (~/.config/cockpit/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .cockpit.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated CockpitConfig instance

    Raises:
        pydantic.ValidationError: If the merged config fails validation

    Example:
        >>> config = load_config()
        >>> config.status.severity_preset
        'default'
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    user_config_path = get_user_config_path()
    if user_config := load_json_file(user_config_path):
        merged = deep_merge(merged, user_config)

    project_config_path = get_project_config_path(project_dir)
    if project_config := load_json_file(project_config_path):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = CockpitConfig(**merged)
    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
