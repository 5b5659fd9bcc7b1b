"""Reconciles the registry with the module directories present on disk"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from modhost.core.modules.activator import ModuleActivator
from modhost.core.modules.exceptions import ActivationError, ConflictError, RegistryError
from modhost.core.modules.locks import NameLocks
from modhost.core.modules.models import DEFAULT_NAMESPACE, DEFAULT_VERSION, SyncReport
from modhost.core.modules.registry import ModuleRegistry
from modhost.core.modules.installer import STAGING_PREFIX
from modhost.core.modules.validator import MANIFEST_FILENAME, load_manifest

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description available"


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _optional_str(value) -> Optional[str]:
    if value is None or isinstance(value, (list, dict)):
        return None
    return str(value)


class ModuleSynchronizer:
    """
    Upserts one registry entry per module directory.

    Idempotent: entries are keyed by directory name, so repeated runs update
    rather than duplicate. installed_at is preserved for existing entries.
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        modules_dir: Path,
        activator: ModuleActivator,
        core_modules: Iterable[str] = (),
        manifest_filename: str = MANIFEST_FILENAME,
        namespace: str = DEFAULT_NAMESPACE,
        locks: Optional[NameLocks] = None
    ):
        self.registry = registry
        self.modules_dir = modules_dir
        self.activator = activator
        self.core_modules = set(core_modules)
        self.manifest_filename = manifest_filename
        self.namespace = namespace
        self.locks = locks or NameLocks()

    def discover(self) -> List[Path]:
        """Module directories (holding a manifest) under the modules root"""
        if not self.modules_dir.is_dir():
            return []

        return sorted(
            item for item in self.modules_dir.iterdir()
            if item.is_dir()
            and not item.name.startswith(STAGING_PREFIX)
            and (item / self.manifest_filename).is_file()
        )

    def _host_enabled(self, name: str) -> bool:
        try:
            return self.activator.is_active(name)
        except ActivationError as e:
            logger.warning(f"Could not read host status for {name}: {e}")
            return False

    def sync(self) -> SyncReport:
        report = SyncReport()

        for module_dir in self.discover():
            name = module_dir.name
            data = load_manifest(module_dir, self.manifest_filename) or {}

            fields = {
                "name": name,
                "alias": _optional_str(data.get("alias")) or name.lower(),
                "description": _optional_str(data.get("description")) or NO_DESCRIPTION,
                "version": _optional_str(data.get("version")) or DEFAULT_VERSION,
                "author": _optional_str(data.get("author")),
                "author_email": _optional_str(data.get("author_email")),
                "providers": _string_list(data.get("providers")),
                "requirements": _string_list(data.get("requirements")),
                "is_enabled": self._host_enabled(name),
                "is_core": name in self.core_modules,
                "path": str(module_dir.resolve()),
                "namespace": self.namespace,
            }

            with self.locks.hold(name):
                try:
                    _, created = self.registry.upsert(fields)
                except (ConflictError, RegistryError) as e:
                    logger.warning(f"Skipping {name} during sync: {e.message}")
                    report.skipped.append(name)
                    continue

            (report.created if created else report.updated).append(name)

        logger.info(
            f"Registry sync complete: {len(report.created)} created, "
            f"{len(report.updated)} updated, {len(report.skipped)} skipped"
        )
        return report
