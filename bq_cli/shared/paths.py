"""Resolve where the ``bigquery`` settings file lives."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

DEFAULT_CONFIG_DIR = "~/.bqcli"
DEFAULT_CONFIG_FILE = "config.yaml"

CONFIG_DIR_ENV = "BQCLI_CONFIG_DIR"
CONFIG_FILE_ENV = "BQCLI_CONFIG_PATH"


def resolve_path(path_str: str | Path) -> Path:
    """Expand ``~`` and environment variables in a user-supplied path."""
    return Path(os.path.expandvars(str(path_str))).expanduser()


def default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Return the settings file: ``BQCLI_CONFIG_PATH``, else ``config.yaml`` in the config dir."""
    env = os.environ if env is None else env
    override = env.get(CONFIG_FILE_ENV)
    if override:
        return resolve_path(override)
    return resolve_path(env.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR)) / DEFAULT_CONFIG_FILE
