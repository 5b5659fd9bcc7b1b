from pathlib import Path

import pytest
from pydantic import ValidationError

from modhost.core.config import ModHostConfig, validate_config


def test_paths_derive_from_home(tmp_path: Path) -> None:
    config = ModHostConfig(home_dir=tmp_path)

    assert config.modules_dir == tmp_path / "Modules"
    assert config.scratch_dir == tmp_path / "storage" / "app" / "temp"
    assert config.db_path == tmp_path / "store" / "registry.sqlite"
    assert config.max_upload_size == 50 * 1024 * 1024
    assert config.is_core_module("Admin")
    assert not config.is_core_module("Blog")


def test_environment_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("MODHOST_HOME_DIR", str(tmp_path))
    monkeypatch.setenv("MODHOST_MAX_UPLOAD_SIZE", "1024")
    monkeypatch.setenv("MODHOST_ALLOWED_ARCHIVE_EXTENSION", "ZIP")
    monkeypatch.setenv("MODHOST_LOG_LEVEL", "debug")

    config = ModHostConfig()

    assert config.home_dir == tmp_path
    assert config.max_upload_size == 1024
    assert config.allowed_archive_extension == ".zip"
    assert config.log_level == "DEBUG"


def test_invalid_log_level(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        ModHostConfig(home_dir=tmp_path, log_level="LOUD")


def test_validate_config(tmp_path: Path) -> None:
    ok, errors = validate_config(ModHostConfig(home_dir=tmp_path))
    assert ok and errors == []

    bad = ModHostConfig(
        home_dir=tmp_path,
        max_upload_size=0,
        scratch_dir=tmp_path / "Modules",
        required_directories=["../outside"],
    )
    ok, errors = validate_config(bad)

    assert not ok
    assert "max_upload_size must be positive" in errors
    assert "modules_dir and scratch_dir must differ" in errors
    assert "required directory must be relative: ../outside" in errors
