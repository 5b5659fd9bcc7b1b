"""Per-install scratch directories"""

import logging
import shutil
import uuid
from pathlib import Path
from typing import Optional

from modhost.core.modules.exceptions import FilesystemError

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "module_"


class Workspace:
    """
    Uniquely named temporary directory owned by one install attempt.

    Use as a context manager so dispose() runs on every exit path:

        with Workspace.create(scratch_root) as ws:
            ...
    """

    def __init__(self, path: Path):
        self.path = path
        self._disposed = False

    @classmethod
    def create(cls, scratch_root: Path) -> "Workspace":
        """
        Allocate a new workspace under scratch_root (created if absent)

        Raises:
            FilesystemError: If the directory cannot be created
        """
        try:
            scratch_root.mkdir(parents=True, exist_ok=True)
            path = scratch_root / f"{WORKSPACE_PREFIX}{uuid.uuid4().hex}"
            path.mkdir(mode=0o755)
        except OSError as e:
            raise FilesystemError(f"Failed to create workspace: {e}")

        logger.debug(f"Workspace created: {path}")
        return cls(path)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Recursively delete the workspace. Safe to call more than once."""
        if self._disposed:
            return

        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            # left undisposed so a later call can retry
            logger.warning(f"Failed to remove workspace {self.path}: {e}")
            return

        self._disposed = True
        logger.debug(f"Workspace disposed: {self.path}")

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.dispose()
        return None

    def __repr__(self) -> str:
        return f"Workspace({str(self.path)!r}, disposed={self._disposed})"
