"""Validators for uploaded module archives and extracted packages"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from modhost.core.modules.exceptions import ManifestError, StructureError, UploadError
from modhost.core.modules.models import ModuleManifest, ResolvedPackage, UploadedArchive

logger = logging.getLogger(__name__)

# Security limits
MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # 50MB
MAX_MANIFEST_SIZE = 100 * 1024      # 100KB

ARCHIVE_EXTENSION = ".zip"
MANIFEST_FILENAME = "module.json"
REQUIRED_FIELDS = ("name", "alias", "description")
REQUIRED_DIRECTORIES = ("app/Http/Controllers", "resources/views")


class ArchiveValidator:
    """Precondition checks on an upload, run before any disk work"""

    def __init__(
        self,
        max_size: int = MAX_UPLOAD_SIZE,
        extension: str = ARCHIVE_EXTENSION
    ):
        self.max_size = max_size
        self.extension = extension.lower()

    def validate(self, extension: str, size: int) -> None:
        """
        Check the declared extension and size of an upload

        Args:
            extension: Declared file extension (with or without leading dot)
            size: Size in bytes

        Raises:
            UploadError: If the type is not accepted or the file is too large
        """
        normalized = extension.lower()
        if normalized and not normalized.startswith("."):
            normalized = "." + normalized

        if normalized != self.extension:
            raise UploadError(
                f"Only {self.extension.lstrip('.').upper()} files are allowed.",
                hint=f"Upload a single {self.extension} archive"
            )

        if size > self.max_size:
            raise UploadError(
                f"File size exceeds {self.max_size // (1024 * 1024)}MB limit.",
                hint=f"Received {size / 1024 / 1024:.2f}MB"
            )

    def validate_upload(self, upload: UploadedArchive) -> None:
        """Validate an UploadedArchive (see validate)"""
        logger.info(f"Validating upload: {upload.filename} ({upload.size / 1024:.2f}KB)")
        self.validate(upload.extension, upload.size)


class ManifestResolver:
    """Locates, parses and checks the manifest of an extracted package"""

    def __init__(
        self,
        manifest_filename: str = MANIFEST_FILENAME,
        required_directories: Iterable[str] = REQUIRED_DIRECTORIES
    ):
        self.manifest_filename = manifest_filename
        self.required_directories = tuple(required_directories)

    def locate(self, workspace_root: Path) -> Tuple[Path, Path]:
        """
        Find the manifest at the workspace root or one directory below it

        Args:
            workspace_root: Extraction directory

        Returns:
            Tuple of (package_root, manifest_path)

        Raises:
            ManifestError: If no manifest is found
        """
        candidate = workspace_root / self.manifest_filename
        if candidate.is_file():
            return workspace_root, candidate

        subdirs = sorted(p for p in workspace_root.iterdir() if p.is_dir())
        matches = [d for d in subdirs if (d / self.manifest_filename).is_file()]

        if not matches:
            raise ManifestError(
                f"Invalid module structure: {self.manifest_filename} not found.",
                hint="Place the manifest at the archive root or inside a single top-level folder"
            )

        if len(matches) > 1:
            logger.warning(
                f"Multiple manifests found in {workspace_root.name}: "
                f"{[m.name for m in matches]}, using {matches[0].name}"
            )

        return matches[0], matches[0] / self.manifest_filename

    def parse(self, manifest_path: Path) -> Dict[str, Any]:
        """
        Parse the manifest into a dictionary

        Raises:
            ManifestError: If the content is not a non-empty JSON object
        """
        if manifest_path.stat().st_size > MAX_MANIFEST_SIZE:
            raise ManifestError(
                f"{self.manifest_filename} too large "
                f"(max: {MAX_MANIFEST_SIZE / 1024}KB)"
            )

        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Unparsable manifest {manifest_path}: {e}")
            raise ManifestError(f"Invalid {self.manifest_filename} format.")

        if not isinstance(data, dict) or not data:
            raise ManifestError(f"Invalid {self.manifest_filename} format.")

        return data

    @staticmethod
    def check_required_fields(data: Dict[str, Any]) -> None:
        """
        Raises:
            ManifestError: Naming the first missing or empty required field
        """
        for field in REQUIRED_FIELDS:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()) or value == []:
                raise ManifestError(f"Missing required field: {field}")

    def check_structure(self, package_root: Path) -> None:
        """
        Raises:
            StructureError: Naming the first missing required directory
        """
        for directory in self.required_directories:
            if not (package_root / directory).is_dir():
                raise StructureError(
                    f"Missing required directory: {directory}",
                    hint=f"Expected {directory}/ under the package root"
                )

    def resolve(self, workspace_root: Path) -> ResolvedPackage:
        """
        Resolve the package inside an extracted workspace

        Args:
            workspace_root: Extraction directory

        Returns:
            ResolvedPackage with the validated manifest and package root

        Raises:
            ManifestError: Missing/invalid manifest or required field
            StructureError: Missing required directory
        """
        package_root, manifest_path = self.locate(workspace_root)
        data = self.parse(manifest_path)
        self.check_required_fields(data)

        try:
            manifest = ModuleManifest(**data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "manifest"
            raise ManifestError(f"Invalid manifest field '{location}': {first['msg']}")

        self.check_structure(package_root)

        logger.info(f"Manifest resolved: {manifest.name} v{manifest.version} at {package_root}")
        return ResolvedPackage(manifest=manifest, root=package_root)


def load_manifest(module_dir: Path, manifest_filename: str = MANIFEST_FILENAME) -> Optional[Dict[str, Any]]:
    """
    Best-effort read of an installed module's manifest

    Returns:
        Manifest dictionary, or None if missing or unreadable
    """
    manifest_path = module_dir / manifest_filename
    if not manifest_path.is_file():
        return None

    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load manifest for {module_dir.name}: {e}")
        return None

    return data if isinstance(data, dict) else None
