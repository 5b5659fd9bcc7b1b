"""Host activation mechanisms

An activator is the narrow port through which the host is asked to start or
stop loading a module. The install pipeline never touches it; only the
ActivationController and the registry sync do.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from modhost.core.modules.exceptions import ActivationError

logger = logging.getLogger(__name__)


class ModuleActivator(ABC):
    """Port to the host's module loading mechanism"""

    @abstractmethod
    def activate(self, name: str) -> None:
        """
        Start loading a module

        Raises:
            ActivationError: If the host refuses or fails
        """

    @abstractmethod
    def deactivate(self, name: str) -> None:
        """
        Stop loading a module

        Raises:
            ActivationError: If the host refuses or fails
        """

    @abstractmethod
    def is_active(self, name: str) -> bool:
        """Current host-side state of a module"""

    def forget(self, name: str) -> None:
        """Drop host-side state for an uninstalled module (no-op by default)"""


class InMemoryActivator(ModuleActivator):
    """Activator for hosts that reload modules in-process"""

    def __init__(self, statuses: Optional[Dict[str, bool]] = None):
        self._statuses: Dict[str, bool] = dict(statuses or {})
        self._lock = threading.Lock()

    def activate(self, name: str) -> None:
        with self._lock:
            self._statuses[name] = True

    def deactivate(self, name: str) -> None:
        with self._lock:
            self._statuses[name] = False

    def is_active(self, name: str) -> bool:
        with self._lock:
            return self._statuses.get(name, False)

    def forget(self, name: str) -> None:
        with self._lock:
            self._statuses.pop(name, None)

    def statuses(self) -> Dict[str, bool]:
        with self._lock:
            return dict(self._statuses)


class FileActivator(ModuleActivator):
    """
    Persists module statuses as a JSON object of {name: enabled}.

    The host reads this file when deciding which module providers to load.
    Writes go through a temporary file and os.replace so readers never see a
    half-written map.
    """

    def __init__(self, statuses_file: Path):
        self.statuses_file = statuses_file
        self._lock = threading.Lock()

    def read_statuses(self) -> Dict[str, bool]:
        """
        Read the status map (missing file reads as empty)

        Raises:
            ActivationError: If the file exists but is not a JSON object
        """
        if not self.statuses_file.exists():
            return {}

        try:
            with open(self.statuses_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ActivationError(f"Failed to read module statuses: {e}")

        if not isinstance(data, dict):
            raise ActivationError(f"Invalid module statuses file: {self.statuses_file}")

        return {str(k): bool(v) for k, v in data.items()}

    def _write_statuses(self, statuses: Dict[str, bool]) -> None:
        try:
            self.statuses_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".statuses-", suffix=".json", dir=str(self.statuses_file.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(statuses, f, indent=4, sort_keys=True)
                os.replace(tmp_name, self.statuses_file)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise ActivationError(f"Failed to write module statuses: {e}")

    def _set(self, name: str, enabled: bool) -> None:
        with self._lock:
            statuses = self.read_statuses()
            statuses[name] = enabled
            self._write_statuses(statuses)
        logger.info(f"Host status for {name} set to {'enabled' if enabled else 'disabled'}")

    def activate(self, name: str) -> None:
        self._set(name, True)

    def deactivate(self, name: str) -> None:
        self._set(name, False)

    def is_active(self, name: str) -> bool:
        return self.read_statuses().get(name, False)

    def forget(self, name: str) -> None:
        """Drop a module from the status map (after uninstall)"""
        with self._lock:
            statuses = self.read_statuses()
            if statuses.pop(name, None) is not None:
                self._write_statuses(statuses)
