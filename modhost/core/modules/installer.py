"""Extraction and on-disk installation of module packages"""

import logging
import os
import shutil
import uuid
import zipfile
from pathlib import Path

from modhost.core.modules.exceptions import ExtractionError, FilesystemError

logger = logging.getLogger(__name__)

MAX_EXTRACTED_SIZE = 200 * 1024 * 1024  # 200MB
STAGING_PREFIX = ".staging-"


class PackageExtractor:
    """Unpacks a module archive into a workspace"""

    def __init__(self, max_extracted_size: int = MAX_EXTRACTED_SIZE):
        self.max_extracted_size = max_extracted_size

    def _check_member(self, info: zipfile.ZipInfo, target_dir: Path) -> Path:
        """
        Resolve the destination of one archive member

        Raises:
            ExtractionError: On traversal, absolute paths or symlinks
        """
        name = info.filename

        # Path traversal protection
        if name.startswith("/") or name.startswith("\\") or ".." in Path(name).parts:
            raise ExtractionError(f"Invalid file path in zip: {name}")

        if Path(name).is_absolute():
            raise ExtractionError(f"Absolute path detected in zip: {name}")

        # In Unix systems, symlinks have external_attr with high nibble = 0xA
        if (info.external_attr >> 28) == 0xA:
            raise ExtractionError(f"Symlinks are not allowed in module packages: {name}")

        target_path = (target_dir / name).resolve()
        try:
            target_path.relative_to(target_dir)
        except ValueError:
            raise ExtractionError(f"Zip extraction would escape target directory: {name}")

        return target_path

    def extract(self, zip_path: Path, target_dir: Path) -> None:
        """
        Expand every archive entry into target_dir

        Args:
            zip_path: Path to the archive
            target_dir: Workspace directory

        Raises:
            ExtractionError: If the archive cannot be opened or is invalid
        """
        logger.info(f"Extracting {zip_path.name} to {target_dir}")
        target_dir = target_dir.resolve()

        try:
            with zipfile.ZipFile(zip_path, "r") as zf:
                members = zf.infolist()

                total_size = sum(info.file_size for info in members)
                if total_size > self.max_extracted_size:
                    raise ExtractionError(
                        f"Archive expands to {total_size / 1024 / 1024:.2f}MB "
                        f"(max: {self.max_extracted_size / 1024 / 1024}MB)"
                    )

                for info in members:
                    target_path = self._check_member(info, target_dir)

                    if info.is_dir():
                        target_path.mkdir(parents=True, exist_ok=True)
                        continue

                    target_path.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as source, open(target_path, "wb") as target:
                        shutil.copyfileobj(source, target)

        except ExtractionError:
            raise
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            logger.warning(f"Rejected archive {zip_path.name}: {e}")
            raise ExtractionError("Failed to open ZIP file.", hint=str(e))
        except (OSError, RuntimeError, EOFError) as e:
            raise ExtractionError(f"Failed to extract zip: {e}")

        logger.info(f"Extraction complete: {target_dir}")


class Installer:
    """Copies a resolved package tree into the live modules directory"""

    def __init__(self, modules_dir: Path):
        self.modules_dir = modules_dir

    def target_path(self, name: str) -> Path:
        return self.modules_dir / name

    def install(self, package_root: Path, name: str) -> Path:
        """
        Copy package_root to <modules_dir>/<name>

        The tree is copied to a staging directory beside the target and then
        renamed into place, so the target either appears complete or not at all.

        Returns:
            The installed path

        Raises:
            FilesystemError: If the copy or the rename fails
        """
        target = self.target_path(name)
        staging = self.modules_dir / f"{STAGING_PREFIX}{uuid.uuid4().hex[:12]}-{name}"

        logger.info(f"Installing {name}: {package_root} -> {target}")

        try:
            self.modules_dir.mkdir(parents=True, exist_ok=True)
            shutil.copytree(package_root, staging, symlinks=False)

            if target.exists():
                raise FilesystemError(f"Module directory '{name}' already exists.")

            os.rename(staging, target)

        except FilesystemError:
            self._discard(staging)
            raise
        except (OSError, shutil.Error) as e:
            self._discard(staging)
            raise FilesystemError(f"Failed to install module files: {e}")

        logger.info(f"Module files installed: {target}")
        return target.resolve()

    @staticmethod
    def _discard(staging: Path) -> None:
        if staging.exists():
            try:
                shutil.rmtree(staging)
            except OSError as cleanup_error:
                logger.warning(f"Failed to clean up {staging}: {cleanup_error}")

    @staticmethod
    def remove(path: Path) -> None:
        """
        Delete an installed module tree (missing trees are ignored)

        Raises:
            FilesystemError: If deletion fails
        """
        if not path.exists():
            logger.info(f"Module directory already absent: {path}")
            return

        logger.info(f"Removing module directory: {path}")
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise FilesystemError(f"Failed to remove module files: {e}")
