import json
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

from modhost.core.config import ModHostConfig
from modhost.core.modules.activator import InMemoryActivator
from modhost.core.modules.manager import ModuleManager

CONTROLLERS = "app/Http/Controllers"
VIEWS = "resources/views"


def blog_manifest(**overrides) -> dict:
    manifest = {"name": "Blog", "alias": "blog", "description": "x"}
    manifest.update(overrides)
    return manifest


def build_module_zip(
    zip_path: Path,
    manifest: Optional[dict] = None,
    *,
    wrap: Optional[str] = None,
    dirs: Iterable[str] = (CONTROLLERS, VIEWS),
    files: Optional[Dict[str, str]] = None,
    raw_manifest: Optional[str] = None,
) -> Path:
    """Write a module archive; `wrap` nests everything in one top-level folder."""
    prefix = f"{wrap}/" if wrap else ""
    with zipfile.ZipFile(zip_path, "w") as zf:
        if raw_manifest is not None:
            zf.writestr(f"{prefix}module.json", raw_manifest)
        elif manifest is not None:
            zf.writestr(f"{prefix}module.json", json.dumps(manifest))
        for directory in dirs:
            zf.writestr(zipfile.ZipInfo(f"{prefix}{directory}/"), "")
        for name, content in (files or {}).items():
            zf.writestr(f"{prefix}{name}", content)
    return zip_path


@pytest.fixture
def config(tmp_path: Path) -> ModHostConfig:
    return ModHostConfig(home_dir=tmp_path / "home")


@pytest.fixture
def activator() -> InMemoryActivator:
    return InMemoryActivator()


@pytest.fixture
def manager(config: ModHostConfig, activator: InMemoryActivator) -> ModuleManager:
    return ModuleManager(config=config, activator=activator)


@pytest.fixture
def blog_zip(tmp_path: Path) -> Path:
    return build_module_zip(
        tmp_path / "blog.zip",
        blog_manifest(),
        files={f"{CONTROLLERS}/BlogController.php": "<?php // blog\n"},
    )


def scratch_entries(config: ModHostConfig) -> list:
    if not config.scratch_dir.exists():
        return []
    return list(config.scratch_dir.iterdir())
