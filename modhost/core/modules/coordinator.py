"""
Module Install Coordinator - drives one upload through the install pipeline

Pipeline (strictly ordered, each step only after its predecessor succeeds):

    RECEIVED -> VALIDATING -> EXTRACTED -> MANIFEST_RESOLVED
             -> CONFLICT_CHECKED -> INSTALLED -> REGISTERED

Any failure short-circuits to FAILED. The extraction workspace is disposed on
every exit path, and no error escapes install(): callers always get an
InstallResult.

Installs of the same module name are serialized from the conflict check
through registration; the registry's unique constraints back this up across
processes.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from modhost.core.modules.exceptions import ConflictError, ModuleError, ModuleErrorCode
from modhost.core.modules.installer import Installer, PackageExtractor
from modhost.core.modules.locks import NameLocks
from modhost.core.modules.models import (
    DEFAULT_NAMESPACE,
    InstallResult,
    InstallState,
    InstalledModule,
    ModuleManifest,
    UploadedArchive,
)
from modhost.core.modules.registry import ModuleRegistry
from modhost.core.modules.validator import ArchiveValidator, ManifestResolver
from modhost.core.modules.workspace import Workspace

logger = logging.getLogger(__name__)


class ConflictChecker:
    """Rejects a package whose name is already registered or on disk"""

    def __init__(self, registry: ModuleRegistry, modules_dir: Path):
        self.registry = registry
        self.modules_dir = modules_dir

    def check(self, manifest: ModuleManifest) -> None:
        """
        Raises:
            ConflictError: If the name (or alias) is taken in the registry, or the
                target directory already exists
        """
        name = manifest.name

        if self.registry.exists(name):
            raise ConflictError(f"Module '{name}' is already installed.")

        owner = self.registry.get_by_alias(manifest.alias)
        if owner is not None:
            raise ConflictError(
                f"Module alias '{manifest.alias}' is already in use by '{owner.name}'."
            )

        if (self.modules_dir / name).exists():
            raise ConflictError(
                f"Module directory '{name}' already exists.",
                hint="Remove the stray directory or run a registry sync"
            )


class RegistryRecorder:
    """Makes an installed package known to the system (always disabled)"""

    def __init__(self, registry: ModuleRegistry, namespace: str = DEFAULT_NAMESPACE):
        self.registry = registry
        self.namespace = namespace

    def record(self, manifest: ModuleManifest, installed_path: Path) -> InstalledModule:
        return self.registry.create(
            manifest,
            path=installed_path,
            namespace=self.namespace,
            is_enabled=False,
            is_core=False,
        )


class _Attempt:
    """Bookkeeping for one install attempt"""

    def __init__(self, upload: UploadedArchive):
        self.id = f"inst_{uuid.uuid4().hex[:12]}"
        self.upload = upload
        self.state = InstallState.RECEIVED
        self.workspace: Optional[Workspace] = None

    def advance(self, state: InstallState) -> None:
        logger.info(f"[{self.id}] {self.state.value} -> {state.value}")
        self.state = state


class InstallCoordinator:
    """Orchestrates validation, extraction, installation and registration"""

    def __init__(
        self,
        registry: ModuleRegistry,
        modules_dir: Path,
        scratch_dir: Path,
        archive_validator: Optional[ArchiveValidator] = None,
        extractor: Optional[PackageExtractor] = None,
        resolver: Optional[ManifestResolver] = None,
        installer: Optional[Installer] = None,
        namespace: str = DEFAULT_NAMESPACE,
        locks: Optional[NameLocks] = None
    ):
        self.registry = registry
        self.modules_dir = modules_dir
        self.scratch_dir = scratch_dir
        self.archive_validator = archive_validator or ArchiveValidator()
        self.extractor = extractor or PackageExtractor()
        self.resolver = resolver or ManifestResolver()
        self.installer = installer or Installer(modules_dir)
        self.conflict_checker = ConflictChecker(registry, modules_dir)
        self.recorder = RegistryRecorder(registry, namespace)
        self.locks = locks or NameLocks()

    def _register_or_rollback(
        self,
        manifest: ModuleManifest,
        installed_path: Path
    ) -> InstalledModule:
        """Record the module; remove the installed tree if recording fails"""
        try:
            return self.recorder.record(manifest, installed_path)
        except Exception:
            logger.warning(f"Registration failed for {manifest.name}, removing {installed_path}")
            try:
                Installer.remove(installed_path)
            except ModuleError as cleanup_error:
                logger.error(f"Rollback failed for {installed_path}: {cleanup_error}")
            raise

    def _run(self, attempt: _Attempt) -> InstalledModule:
        upload = attempt.upload

        attempt.advance(InstallState.VALIDATING)
        self.archive_validator.validate_upload(upload)

        attempt.workspace = Workspace.create(self.scratch_dir)
        self.extractor.extract(upload.path, attempt.workspace.path)
        attempt.advance(InstallState.EXTRACTED)

        package = self.resolver.resolve(attempt.workspace.path)
        attempt.advance(InstallState.MANIFEST_RESOLVED)

        manifest = package.manifest
        with self.locks.hold(manifest.name):
            self.conflict_checker.check(manifest)
            attempt.advance(InstallState.CONFLICT_CHECKED)

            installed_path = self.installer.install(package.root, manifest.name)
            attempt.advance(InstallState.INSTALLED)

            module = self._register_or_rollback(manifest, installed_path)
            attempt.advance(InstallState.REGISTERED)

        return module

    def install(self, upload: UploadedArchive) -> InstallResult:
        """
        Install a module from an uploaded archive

        Args:
            upload: The uploaded archive (path, declared filename, size)

        Returns:
            InstallResult; success=False carries a display message and error code
        """
        attempt = _Attempt(upload)
        logger.info(f"[{attempt.id}] Install requested: {upload.filename}")

        try:
            module = self._run(attempt)

        except ModuleError as e:
            failed_in = attempt.state
            attempt.advance(InstallState.FAILED)
            logger.warning(f"[{attempt.id}] Install failed during {failed_in.value}: {e.message}")
            return InstallResult(
                success=False,
                message=e.message,
                state=InstallState.FAILED,
                error_code=e.error_code,
                hint=e.hint,
            )

        except Exception as e:
            attempt.advance(InstallState.FAILED)
            logger.error(f"[{attempt.id}] Unexpected install failure: {e}", exc_info=True)
            return InstallResult(
                success=False,
                message="Module installation failed.",
                state=InstallState.FAILED,
                error_code=ModuleErrorCode.UNKNOWN,
                hint="Check server logs for details",
            )

        finally:
            if attempt.workspace is not None:
                attempt.workspace.dispose()

        logger.info(f"[{attempt.id}] Module installed: {module.name} v{module.version}")
        return InstallResult(
            success=True,
            message=f"Module '{module.name}' installed successfully.",
            module=module,
            state=InstallState.REGISTERED,
        )

    def install_file(self, zip_path: Path, filename: Optional[str] = None) -> InstallResult:
        """Install from a file already on disk"""
        try:
            upload = UploadedArchive.from_path(zip_path, filename)
        except OSError as e:
            return InstallResult(
                success=False,
                message=f"Upload not readable: {e}",
                state=InstallState.FAILED,
                error_code=ModuleErrorCode.UPLOAD_REJECTED,
            )
        return self.install(upload)
