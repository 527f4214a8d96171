"""Layered .env support for CVAPI_* settings.

Applications may keep the CVAPI_* overrides in .env files instead of the
shell. Layers, lowest to highest:

- User environment file (~/.config/cvapi/.env)
- Project environment files (.env, then .env.local)
- Process environment

The files are only read; os.environ is never modified. load_settings uses
the result when called with ``env_files=True``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

ENV_PREFIX = "CVAPI_"


def read_env_file(path: Path) -> dict[str, str]:
    """Return the CVAPI_* assignments of one .env file ({} if missing)."""
    if not path.is_file():
        return {}
    return {
        key: value
        for key, value in dotenv_values(path).items()
        if key.startswith(ENV_PREFIX) and value is not None
    }


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Collect CVAPI_* variables from .env files and the process environment.

    Args:
        project_dir: base directory for project env paths (defaults to cwd)
        user_env_paths: explicit user env file paths
        project_env_paths: explicit project env file paths
        environ: process environment to layer on top (defaults to os.environ)

    Returns:
        Merged CVAPI_* variables; process values win over file values
    """
    if project_dir is None:
        project_dir = Path.cwd()

    if user_env_paths is None:
        xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
        user_env_paths = [xdg_home / "cvapi" / ".env"]

    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    layered: dict[str, str] = {}
    for path in [*user_env_paths, *project_env_paths]:
        values = read_env_file(Path(path))
        if values:
            logger.debug("Read %s from %s", ", ".join(sorted(values)), path)
        layered.update(values)

    if environ is None:
        environ = os.environ
    layered.update({k: v for k, v in environ.items() if k.startswith(ENV_PREFIX)})
    return layered
