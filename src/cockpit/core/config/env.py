"""Environment loading helpers.

COCKPIT_* overrides (see :func:`cockpit.core.config.loader.apply_env_overrides`)
can live in .env files as well as in the shell:

  os.environ (pre-existing) > project .env > user ~/.config/cockpit/.env

Only keys with the ``COCKPIT_`` prefix are imported, so a project .env written
for some other tool cannot leak unrelated settings into the process.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

ENV_PREFIX = "COCKPIT_"


def _cockpit_values(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    return {
        str(k): str(v)
        for k, v in dotenv_values(path).items()
        if k is not None and v is not None and str(k).startswith(ENV_PREFIX)
    }


def default_env_paths(project_dir: Path | None = None) -> list[Path]:
    """Return env files lowest priority first: user file, then project files."""
    if project_dir is None:
        project_dir = Path.cwd()
    xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
    return [
        xdg_home / "cockpit" / ".env",
        project_dir / ".env",
        project_dir / ".env.local",
    ]


def load_layered_env(
    project_dir: Path | None = None,
    env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """Import COCKPIT_* variables from .env files into ``os.environ``.

    Later files override earlier ones, but nothing overrides a variable that
    was already set before this call.

    Args:
        project_dir: base directory for project env files (defaults to cwd)
        env_paths: explicit files, lowest priority first

    Returns:
        The variables that were set by this call
    """
    if env_paths is None:
        env_paths = default_env_paths(project_dir)

    preexisting = set(os.environ)
    applied: dict[str, str] = {}
    for path in env_paths:
        for key, value in _cockpit_values(Path(path)).items():
            if key in preexisting:
                continue
            applied[key] = value

    os.environ.update(applied)
    if applied:
        logger.debug(f"Loaded {sorted(applied)} from .env files")
    return applied
