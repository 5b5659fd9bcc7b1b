import threading
from pathlib import Path

import pytest

from modhost.core.modules.activator import InMemoryActivator
from modhost.core.modules.exceptions import ActivationError, ModuleErrorCode, RegistryError
from modhost.core.modules.manager import ModuleManager


class FailingActivator(InMemoryActivator):
    """Host that refuses every status change"""

    def activate(self, name: str) -> None:
        raise ActivationError(f"host refused to enable {name}")

    def deactivate(self, name: str) -> None:
        raise ActivationError(f"host refused to disable {name}")


@pytest.fixture
def installed(manager, blog_zip: Path):
    result = manager.install_file(blog_zip)
    assert result.success, result.message
    return result.module


def _make_core(manager, name: str = "Admin", enabled: bool = True):
    module_dir = manager.config.modules_dir / name
    (module_dir / "app" / "Http" / "Controllers").mkdir(parents=True)
    (module_dir / "module.json").write_text(
        f'{{"name": "{name}", "alias": "{name.lower()}", "description": "core"}}'
    )
    if enabled:
        manager.activator.activate(name)
    manager.sync()
    return manager.get(name)


def test_scenario_d_enable_then_disable(manager, activator: InMemoryActivator, installed) -> None:
    result = manager.enable(installed)

    assert result.success
    assert result.message == "Module enabled successfully."
    assert result.module.is_enabled is True
    assert activator.is_active("Blog") is True
    assert [m.name for m in manager.list_modules(enabled_only=True)] == ["Blog"]

    result = manager.disable("Blog")

    assert result.success
    assert result.message == "Module disabled successfully."
    assert manager.get("Blog").is_enabled is False
    assert activator.is_active("Blog") is False


def test_enable_is_idempotent(manager, installed) -> None:
    assert manager.enable("Blog").success
    assert manager.enable("Blog").success
    assert manager.get("Blog").is_enabled is True


def test_core_module_cannot_be_disabled(manager) -> None:
    core = _make_core(manager)
    assert core.is_core is True
    assert core.is_enabled is True

    result = manager.disable(core)

    assert not result.success
    assert result.error_code == ModuleErrorCode.INVALID_STATE
    assert result.message == "Core modules cannot be disabled."
    assert manager.get("Admin").is_enabled is True
    assert manager.activator.is_active("Admin") is True


def test_core_module_cannot_be_uninstalled(manager) -> None:
    core = _make_core(manager, enabled=False)

    result = manager.uninstall(core)

    assert not result.success
    assert result.error_code == ModuleErrorCode.INVALID_STATE
    assert result.message == "Core modules cannot be uninstalled."
    assert Path(core.path).is_dir()
    assert manager.get("Admin") is not None


def test_enabled_module_cannot_be_uninstalled(manager, installed) -> None:
    manager.enable("Blog")

    result = manager.uninstall("Blog")

    assert not result.success
    assert result.error_code == ModuleErrorCode.INVALID_STATE
    assert result.message == "Module must be disabled before uninstalling."
    assert Path(installed.path).is_dir()
    assert manager.get("Blog").is_enabled is True


def test_uninstall_removes_files_and_entry(manager, activator: InMemoryActivator, installed) -> None:
    manager.enable("Blog")
    manager.disable("Blog")

    result = manager.uninstall("Blog")

    assert result.success
    assert result.message == "Module uninstalled successfully."
    assert not Path(installed.path).exists()
    assert manager.get("Blog") is None
    assert "Blog" not in activator.statuses()


def test_unknown_module_operations_report_not_found(manager) -> None:
    for result in (manager.enable("Ghost"), manager.disable("Ghost"), manager.uninstall("Ghost")):
        assert not result.success
        assert result.error_code == ModuleErrorCode.NOT_FOUND
        assert result.message == "Module not found: Ghost"


def test_activation_failure_leaves_registry_unchanged(config, blog_zip: Path) -> None:
    manager = ModuleManager(config=config, activator=FailingActivator())
    assert manager.install_file(blog_zip).success

    result = manager.enable("Blog")

    assert not result.success
    assert result.error_code == ModuleErrorCode.ACTIVATION_FAILED
    assert manager.get("Blog").is_enabled is False


def test_unexpected_host_error_is_wrapped(manager, installed, monkeypatch) -> None:
    def boom(name):
        raise RuntimeError("provider crashed")

    monkeypatch.setattr(manager.activator, "activate", boom)

    result = manager.enable("Blog")

    assert result.error_code == ModuleErrorCode.ACTIVATION_FAILED
    assert "provider crashed" in result.message
    assert manager.get("Blog").is_enabled is False


def test_registry_failure_reverts_host_state(manager, activator: InMemoryActivator, installed, monkeypatch) -> None:
    def fail(name, enabled):
        raise RegistryError("database is locked")

    monkeypatch.setattr(manager.registry, "set_enabled", fail)

    result = manager.enable("Blog")

    assert result.error_code == ModuleErrorCode.REGISTRY_ERROR
    assert activator.is_active("Blog") is False


def test_uninstall_refuses_paths_outside_modules_dir(manager, tmp_path: Path) -> None:
    outside = tmp_path / "elsewhere" / "Rogue"
    outside.mkdir(parents=True)
    manager.registry.upsert({"name": "Rogue", "alias": "rogue", "path": str(outside)})

    result = manager.uninstall("Rogue")

    assert not result.success
    assert result.error_code == ModuleErrorCode.FILESYSTEM_ERROR
    assert outside.is_dir()
    assert manager.get("Rogue") is not None


def test_uninstall_refuses_the_modules_root(manager, installed) -> None:
    manager.registry.upsert({"name": "Root", "alias": "root", "path": str(manager.config.modules_dir)})

    result = manager.uninstall("Root")

    assert not result.success
    assert result.error_code == ModuleErrorCode.FILESYSTEM_ERROR
    assert Path(installed.path).is_dir()
    assert manager.get("Root") is not None


def test_full_round_trip(manager, blog_zip: Path) -> None:
    assert manager.install_file(blog_zip).success
    assert manager.enable("Blog").success
    assert manager.disable("Blog").success
    assert manager.uninstall("Blog").success
    assert manager.list_modules() == []
    # the name is free again
    assert manager.install_file(blog_zip).success


@pytest.mark.parametrize("operation", ["enable", "disable", "uninstall", "sync"])
def test_operations_wait_for_the_module_lock(manager, installed, operation: str) -> None:
    done = threading.Event()

    def run() -> None:
        if operation == "sync":
            manager.sync()
        else:
            getattr(manager, operation)("Blog")
        done.set()

    worker = threading.Thread(target=run)
    with manager.locks.hold("Blog"):
        worker.start()
        assert not done.wait(0.2)

    worker.join(timeout=5)
    assert done.is_set()
