# modhost/core/storage/paths.py
from __future__ import annotations
from pathlib import Path
import os


def modhost_home() -> Path:
    """Default home directory, overridable with MODHOST_HOME"""
    override = os.environ.get("MODHOST_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".modhost"


def store_root(home: Path | None = None) -> Path:
    return (home or modhost_home()) / "store"


def registry_db_path(home: Path | None = None) -> Path:
    """Registry database file (one per home)"""
    return store_root(home) / "registry.sqlite"


def modules_root(home: Path | None = None) -> Path:
    """Live modules directory"""
    return (home or modhost_home()) / "Modules"


def scratch_root(home: Path | None = None) -> Path:
    """Scratch root for per-install extraction workspaces"""
    return (home or modhost_home()) / "storage" / "app" / "temp"


def statuses_file(home: Path | None = None) -> Path:
    return (home or modhost_home()) / "modules_statuses.json"

