import json
from pathlib import Path

import pytest

from modhost.core.modules.activator import FileActivator
from modhost.core.modules.exceptions import ActivationError


def test_file_activator_writes_json_map(tmp_path: Path) -> None:
    statuses = tmp_path / "modules_statuses.json"
    activator = FileActivator(statuses)

    activator.activate("Blog")
    activator.deactivate("Shop")

    assert json.loads(statuses.read_text()) == {"Blog": True, "Shop": False}
    assert activator.is_active("Blog") is True
    assert activator.is_active("Shop") is False
    assert activator.is_active("Unknown") is False
    assert [p.name for p in tmp_path.iterdir()] == ["modules_statuses.json"]


def test_forget_drops_entry(tmp_path: Path) -> None:
    activator = FileActivator(tmp_path / "statuses.json")
    activator.activate("Blog")

    activator.forget("Blog")
    activator.forget("Blog")

    assert activator.read_statuses() == {}


def test_missing_file_reads_empty(tmp_path: Path) -> None:
    assert FileActivator(tmp_path / "none.json").read_statuses() == {}


def test_corrupt_file_raises(tmp_path: Path) -> None:
    statuses = tmp_path / "statuses.json"
    statuses.write_text("[1, 2]")

    with pytest.raises(ActivationError):
        FileActivator(statuses).activate("Blog")
