"""ModHost Module System

Installs self-contained module packages (a zip holding code, views and a
module.json manifest) into a running host and manages their lifecycle.

Components:
- validator: upload checks and manifest resolution
- workspace: per-install scratch directory
- installer: zip extraction and staged copy into the modules directory
- registry: sqlite registry of installed modules
- coordinator: the install pipeline state machine
- lifecycle: enable / disable / uninstall
- activator: port to the host's module loading mechanism
- sync: registry reconciliation with the modules directory
- manager: facade wiring everything from config
"""

from modhost.core.modules.exceptions import (
    ModuleErrorCode,
    ModuleError,
    UploadError,
    ExtractionError,
    ManifestError,
    StructureError,
    ConflictError,
    FilesystemError,
    StateError,
    ActivationError,
    RegistryError,
    UnknownModuleError,
)
from modhost.core.modules.models import (
    InstallState,
    ModuleManifest,
    ResolvedPackage,
    UploadedArchive,
    InstalledModule,
    InstallResult,
    OperationResult,
    SyncReport,
)
from modhost.core.modules.validator import ArchiveValidator, ManifestResolver
from modhost.core.modules.workspace import Workspace
from modhost.core.modules.installer import PackageExtractor, Installer
from modhost.core.modules.registry import ModuleRegistry
from modhost.core.modules.activator import ModuleActivator, FileActivator, InMemoryActivator
from modhost.core.modules.coordinator import InstallCoordinator, ConflictChecker, RegistryRecorder
from modhost.core.modules.lifecycle import ActivationController, Uninstaller
from modhost.core.modules.sync import ModuleSynchronizer
from modhost.core.modules.manager import ModuleManager

__all__ = [
    # Exceptions
    "ModuleErrorCode",
    "ModuleError",
    "UploadError",
    "ExtractionError",
    "ManifestError",
    "StructureError",
    "ConflictError",
    "FilesystemError",
    "StateError",
    "ActivationError",
    "RegistryError",
    "UnknownModuleError",
    # Models
    "InstallState",
    "ModuleManifest",
    "ResolvedPackage",
    "UploadedArchive",
    "InstalledModule",
    "InstallResult",
    "OperationResult",
    "SyncReport",
    # Components
    "ArchiveValidator",
    "ManifestResolver",
    "Workspace",
    "PackageExtractor",
    "Installer",
    "ModuleRegistry",
    "ModuleActivator",
    "FileActivator",
    "InMemoryActivator",
    "InstallCoordinator",
    "ConflictChecker",
    "RegistryRecorder",
    "ActivationController",
    "Uninstaller",
    "ModuleSynchronizer",
    "ModuleManager",
]
