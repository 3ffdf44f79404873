"""Locate refnet.toml and the project root for one invocation.

An explicit ``--config`` wins, then ``REFNET_CONFIG``, then a walk up
from the start directory. The directory holding the file is the project
root; the store database path resolves against it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILENAME = "refnet.toml"
CONFIG_ENV_VAR = "REFNET_CONFIG"


@dataclass(frozen=True, slots=True)
class ConfigLocation:
    """The config file in effect (if any) and the root it implies."""

    path: Path | None
    root: Path


def find_config(start: Path | None = None) -> Path | None:
    """``$REFNET_CONFIG`` if it names a file, else the nearest refnet.toml above *start*."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidate = Path(env_path)
        return candidate if candidate.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def locate_config(
    config_path: str | Path | None = None,
    root: Path | None = None,
) -> ConfigLocation:
    """Resolve the config file and project root.

    An explicit *root* is kept as given and only seeds the walk-up;
    otherwise the root is the config file's directory, or the cwd when
    there is no config file.
    """
    path = Path(config_path) if config_path else find_config(root)
    if root is None:
        root = path.parent if path is not None else Path.cwd()
    return ConfigLocation(path=path, root=root)
