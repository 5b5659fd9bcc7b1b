"""Enable / disable / uninstall of registered modules"""

import logging
from pathlib import Path
from typing import Optional, Union

from modhost.core.modules.activator import ModuleActivator
from modhost.core.modules.exceptions import (
    ActivationError,
    FilesystemError,
    ModuleError,
    ModuleErrorCode,
    StateError,
)
from modhost.core.modules.installer import Installer
from modhost.core.modules.locks import NameLocks
from modhost.core.modules.models import InstalledModule, OperationResult
from modhost.core.modules.registry import ModuleRegistry

logger = logging.getLogger(__name__)

ModuleRef = Union[InstalledModule, str]


def _name_of(module: ModuleRef) -> str:
    return module.name if isinstance(module, InstalledModule) else module


def _failure(error: ModuleError) -> OperationResult:
    return OperationResult(
        success=False,
        message=error.message,
        error_code=error.error_code,
        hint=error.hint,
    )


def _unexpected(action: str, error: Exception) -> OperationResult:
    logger.error(f"Unexpected error while trying to {action}: {error}", exc_info=True)
    return OperationResult(
        success=False,
        message=f"Failed to {action}.",
        error_code=ModuleErrorCode.UNKNOWN,
        hint="Check server logs for details",
    )


class ActivationController:
    """Flips a registry entry between enabled and disabled via the host activator"""

    def __init__(
        self,
        registry: ModuleRegistry,
        activator: ModuleActivator,
        locks: Optional[NameLocks] = None
    ):
        self.registry = registry
        self.activator = activator
        self.locks = locks or NameLocks()

    def _call_host(self, name: str, enabled: bool) -> None:
        try:
            if enabled:
                self.activator.activate(name)
            else:
                self.activator.deactivate(name)
        except ActivationError:
            raise
        except Exception as e:
            raise ActivationError(
                f"Host failed to {'enable' if enabled else 'disable'} module '{name}': {e}"
            )

    def _compensate(self, name: str, enabled: bool) -> None:
        """Best-effort revert of the host state after a failed registry write"""
        try:
            self._call_host(name, not enabled)
        except ActivationError as e:
            logger.error(f"Host and registry disagree on {name}: {e}")

    def set_enabled(self, module: ModuleRef, enabled: bool) -> InstalledModule:
        """
        Apply an enabled state to a module

        The host mechanism is called first; the registry is written only after it
        returns.

        Raises:
            UnknownModuleError: If the module is not registered
            StateError: If disabling a core module
            ActivationError: If the host mechanism fails (registry untouched)
            RegistryError: If the registry write fails
        """
        name = _name_of(module)
        with self.locks.hold(name):
            entry = self.registry.require(name)

            if not enabled and not entry.can_be_disabled():
                raise StateError("Core modules cannot be disabled.")

            self._call_host(name, enabled)

            try:
                return self.registry.set_enabled(name, enabled)
            except ModuleError:
                self._compensate(name, enabled)
                raise

    def enable(self, module: ModuleRef) -> OperationResult:
        """Enable a module, reporting success instead of raising"""
        name = _name_of(module)
        try:
            entry = self.set_enabled(name, True)
        except ModuleError as e:
            logger.warning(f"Enable failed for {name}: {e.message}")
            return _failure(e)
        except Exception as e:
            return _unexpected("enable module", e)

        logger.info(f"Module enabled: {name}")
        return OperationResult(success=True, message="Module enabled successfully.", module=entry)

    def disable(self, module: ModuleRef) -> OperationResult:
        """Disable a module, reporting success instead of raising"""
        name = _name_of(module)
        try:
            entry = self.set_enabled(name, False)
        except ModuleError as e:
            logger.warning(f"Disable failed for {name}: {e.message}")
            return _failure(e)
        except Exception as e:
            return _unexpected("disable module", e)

        logger.info(f"Module disabled: {name}")
        return OperationResult(success=True, message="Module disabled successfully.", module=entry)


class Uninstaller:
    """Removes a disabled, non-core module from disk and from the registry"""

    def __init__(
        self,
        registry: ModuleRegistry,
        modules_dir: Path,
        activator: Optional[ModuleActivator] = None,
        locks: Optional[NameLocks] = None
    ):
        self.registry = registry
        self.modules_dir = modules_dir
        self.activator = activator
        self.locks = locks or NameLocks()

    def _checked_path(self, entry: InstalledModule) -> Path:
        """The entry's directory, refusing the modules root itself or anything outside it"""
        path = Path(entry.path)
        try:
            relative = path.resolve().relative_to(self.modules_dir.resolve())
        except ValueError:
            raise FilesystemError(
                f"Refusing to delete {path}: outside the modules directory"
            )
        if relative == Path("."):
            raise FilesystemError(f"Refusing to delete the modules directory itself: {path}")
        return path

    def remove(self, module: ModuleRef) -> None:
        """
        Delete a module's tree, then its registry record

        Raises:
            UnknownModuleError: If the module is not registered
            StateError: If the module is core or still enabled
            FilesystemError: If the tree cannot be deleted (record kept)
            RegistryError: If the record cannot be deleted
        """
        name = _name_of(module)
        with self.locks.hold(name):
            entry = self.registry.require(name)

            if entry.is_core:
                raise StateError("Core modules cannot be uninstalled.")
            if entry.is_enabled:
                raise StateError(
                    "Module must be disabled before uninstalling.",
                    hint="Disable the module first"
                )

            Installer.remove(self._checked_path(entry))
            self.registry.delete(name)

            if self.activator is not None:
                try:
                    self.activator.forget(name)
                except ActivationError as e:
                    logger.warning(f"Failed to clear host status for {name}: {e}")

    def uninstall(self, module: ModuleRef) -> OperationResult:
        """Uninstall a module, reporting success instead of raising"""
        name = _name_of(module)
        try:
            self.remove(name)
        except ModuleError as e:
            logger.warning(f"Uninstall failed for {name}: {e.message}")
            return _failure(e)
        except Exception as e:
            return _unexpected("uninstall module", e)

        logger.info(f"Module uninstalled: {name}")
        return OperationResult(success=True, message="Module uninstalled successfully.")
