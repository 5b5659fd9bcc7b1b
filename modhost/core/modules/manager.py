"""ModuleManager - single entry point wiring the module system from config"""

import logging
from pathlib import Path
from typing import List, Optional

from modhost.core.config import ModHostConfig, get_config
from modhost.core.modules.activator import FileActivator, ModuleActivator
from modhost.core.modules.coordinator import InstallCoordinator
from modhost.core.modules.installer import Installer, PackageExtractor
from modhost.core.modules.lifecycle import ActivationController, ModuleRef, Uninstaller
from modhost.core.modules.locks import NameLocks
from modhost.core.modules.models import (
    InstallResult,
    InstalledModule,
    OperationResult,
    SyncReport,
    UploadedArchive,
)
from modhost.core.modules.registry import ModuleRegistry
from modhost.core.modules.sync import ModuleSynchronizer
from modhost.core.modules.validator import ArchiveValidator, ManifestResolver

logger = logging.getLogger(__name__)


class ModuleManager:
    """Facade over install, lifecycle, listing and sync"""

    def __init__(
        self,
        config: Optional[ModHostConfig] = None,
        registry: Optional[ModuleRegistry] = None,
        activator: Optional[ModuleActivator] = None
    ):
        self.config = config or get_config()
        cfg = self.config

        self.registry = registry or ModuleRegistry(cfg.db_path, busy_timeout_ms=cfg.sqlite_busy_timeout)
        self.activator = activator or FileActivator(cfg.statuses_file)
        self.locks = NameLocks()

        self.coordinator = InstallCoordinator(
            registry=self.registry,
            modules_dir=cfg.modules_dir,
            scratch_dir=cfg.scratch_dir,
            archive_validator=ArchiveValidator(
                max_size=cfg.max_upload_size,
                extension=cfg.allowed_archive_extension,
            ),
            extractor=PackageExtractor(max_extracted_size=cfg.max_extracted_size),
            resolver=ManifestResolver(
                manifest_filename=cfg.manifest_filename,
                required_directories=cfg.required_directories,
            ),
            installer=Installer(cfg.modules_dir),
            namespace=cfg.default_namespace,
            locks=self.locks,
        )
        self.activation = ActivationController(self.registry, self.activator, locks=self.locks)
        self.uninstaller = Uninstaller(
            self.registry, cfg.modules_dir, activator=self.activator, locks=self.locks
        )
        self.synchronizer = ModuleSynchronizer(
            self.registry,
            cfg.modules_dir,
            self.activator,
            core_modules=cfg.core_modules,
            manifest_filename=cfg.manifest_filename,
            namespace=cfg.default_namespace,
            locks=self.locks,
        )

    # Install

    def install(self, upload: UploadedArchive) -> InstallResult:
        return self.coordinator.install(upload)

    def install_file(self, zip_path: Path, filename: Optional[str] = None) -> InstallResult:
        return self.coordinator.install_file(zip_path, filename)

    # Lifecycle

    def enable(self, module: ModuleRef) -> OperationResult:
        return self.activation.enable(module)

    def disable(self, module: ModuleRef) -> OperationResult:
        return self.activation.disable(module)

    def uninstall(self, module: ModuleRef) -> OperationResult:
        return self.uninstaller.uninstall(module)

    # Queries

    def list_modules(self, enabled_only: bool = False) -> List[InstalledModule]:
        return self.registry.list_modules(enabled_only=enabled_only)

    def get(self, name: str) -> Optional[InstalledModule]:
        return self.registry.get_by_name(name)

    def sync(self) -> SyncReport:
        return self.synchronizer.sync()
