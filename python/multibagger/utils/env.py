"""Environment helpers."""

from __future__ import annotations

import os
from pathlib import Path

DATA_DIR_ENV: str = "MULTIBAGGER_DATA_DIR"
DEFAULT_DIR_NAME: str = ".multibagger"


def get_system_env_dir() -> Path:
    """Return the base directory for local data, honouring the env override."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / DEFAULT_DIR_NAME


def ensure_system_env_dir() -> Path:
    """Return the base data directory, creating it when missing."""
    base_dir = get_system_env_dir()
    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir
