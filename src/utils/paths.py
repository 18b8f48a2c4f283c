"""Locating the project root and the YAML config file."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional


ROOT_MARKERS = ("pyproject.toml", "config.yaml", ".git")
ROOT_ENV_VAR = "DIFFERENTIAL_ANALYSIS_ROOT"
CONFIG_ENV_VAR = "DIFFERENTIAL_ANALYSIS_CONFIG"


def _ancestors(paths: Iterable[Path]) -> Iterable[Path]:
    seen = set()
    for path in paths:
        for p in (path, *path.parents):
            if p not in seen:
                seen.add(p)
                yield p


def find_project_root(start: Optional[Path] = None) -> Path:
    """First directory holding one of ROOT_MARKERS.

    ``DIFFERENTIAL_ANALYSIS_ROOT`` wins when it points at an existing
    directory; otherwise the search walks up from ``start``, the working
    directory and this package, falling back to the working directory.
    """
    override = os.getenv(ROOT_ENV_VAR)
    if override and Path(override).expanduser().is_dir():
        return Path(override).expanduser().resolve()

    origins = [Path(start).resolve()] if start is not None else []
    origins += [Path.cwd(), Path(__file__).resolve().parent]
    for directory in _ancestors(origins):
        if any((directory / marker).exists() for marker in ROOT_MARKERS):
            return directory
    return Path.cwd()


def resolve_config_path(config_path: str = "config.yaml") -> Path:
    """Resolve the YAML config file location.

    Order: DIFFERENTIAL_ANALYSIS_CONFIG, the given path as-is, then the same
    file name under the project root.
    """
    env_cfg = os.getenv(CONFIG_ENV_VAR)
    cfg_path = Path(env_cfg).expanduser() if env_cfg else Path(config_path).expanduser()
    if cfg_path.exists():
        return cfg_path
    candidate = find_project_root() / cfg_path.name
    if candidate.exists():
        return candidate
    return cfg_path
