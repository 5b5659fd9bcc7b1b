"""Module registry for database operations"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from modhost.core.modules.exceptions import ConflictError, RegistryError, UnknownModuleError
from modhost.core.modules.models import (
    DEFAULT_NAMESPACE,
    DEFAULT_VERSION,
    InstalledModule,
    ModuleManifest,
)
from modhost.core.time import utc_now_iso

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS installed_modules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    alias TEXT NOT NULL UNIQUE,
    description TEXT,
    version TEXT NOT NULL DEFAULT '1.0.0',
    author TEXT,
    author_email TEXT,
    providers TEXT NOT NULL DEFAULT '[]',
    requirements TEXT NOT NULL DEFAULT '[]',
    is_enabled INTEGER NOT NULL DEFAULT 0,
    is_core INTEGER NOT NULL DEFAULT 0,
    path TEXT NOT NULL,
    namespace TEXT NOT NULL DEFAULT 'Modules',
    installed_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

_COLUMNS = (
    "name", "alias", "description", "version", "author", "author_email",
    "providers", "requirements", "is_enabled", "is_core", "path", "namespace",
)


class ModuleRegistry:
    """Registry for managing installed module records"""

    def __init__(self, db_path: Path, busy_timeout_ms: int = 5000):
        """
        Initialize registry

        Args:
            db_path: Database file path (parent directory is created)
            busy_timeout_ms: SQLite busy timeout
        """
        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms
        self.ensure_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory"""
        conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout_ms / 1000)
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)}")
        return conn

    def ensure_schema(self) -> None:
        """Create the registry table if it does not exist"""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._get_connection()
            try:
                conn.execute(SCHEMA)
                conn.commit()
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as e:
            raise RegistryError(f"Failed to initialize registry at {self.db_path}: {e}")

    @staticmethod
    def _conflict_from_integrity(error: sqlite3.IntegrityError, name: str, alias: str) -> ConflictError:
        text = str(error)
        if "installed_modules.alias" in text:
            return ConflictError(f"Module alias '{alias}' is already in use.")
        return ConflictError(f"Module '{name}' is already installed.")

    def create(
        self,
        manifest: ModuleManifest,
        path: Path,
        namespace: str = DEFAULT_NAMESPACE,
        is_enabled: bool = False,
        is_core: bool = False
    ) -> InstalledModule:
        """
        Insert a new module record

        Args:
            manifest: Validated manifest
            path: Installed module directory
            namespace: Code namespace root
            is_enabled: Initial enabled state
            is_core: Whether the module ships with the host

        Returns:
            The stored InstalledModule

        Raises:
            ConflictError: If name or alias is already registered
            RegistryError: On any other storage failure
        """
        now = utc_now_iso()
        values = (
            manifest.name,
            manifest.alias,
            manifest.description,
            manifest.version or DEFAULT_VERSION,
            manifest.author,
            manifest.author_email,
            json.dumps(manifest.providers),
            json.dumps(manifest.requirements),
            int(is_enabled),
            int(is_core),
            str(path),
            namespace or DEFAULT_NAMESPACE,
            now,
            now,
            now,
        )

        conn = self._get_connection()
        try:
            conn.execute(
                f"INSERT INTO installed_modules ({', '.join(_COLUMNS)}, installed_at, created_at, updated_at) "
                f"VALUES ({', '.join('?' * (len(_COLUMNS) + 3))})",
                values,
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise self._conflict_from_integrity(e, manifest.name, manifest.alias)
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to register module: {e}")
        finally:
            conn.close()

        logger.info(f"Module registered: {manifest.name} v{manifest.version}")
        return self.require(manifest.name)

    def _fetch_one(self, query: str, params: Tuple[Any, ...]) -> Optional[InstalledModule]:
        conn = self._get_connection()
        try:
            row = conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to query registry: {e}")
        finally:
            conn.close()

        return self._row_to_record(row) if row else None

    def get_by_name(self, name: str) -> Optional[InstalledModule]:
        return self._fetch_one("SELECT * FROM installed_modules WHERE name = ?", (name,))

    def get_by_alias(self, alias: str) -> Optional[InstalledModule]:
        return self._fetch_one("SELECT * FROM installed_modules WHERE alias = ?", (alias,))

    def require(self, name: str) -> InstalledModule:
        """
        Get a module record that must exist

        Raises:
            UnknownModuleError: If no record has this name
        """
        record = self.get_by_name(name)
        if record is None:
            raise UnknownModuleError(f"Module not found: {name}")
        return record

    def exists(self, name: str) -> bool:
        return self.get_by_name(name) is not None

    def list_modules(self, enabled_only: bool = False) -> List[InstalledModule]:
        """
        List module records ordered by name

        Args:
            enabled_only: Only return enabled modules
        """
        query = "SELECT * FROM installed_modules"
        params: List[Any] = []
        if enabled_only:
            query += " WHERE is_enabled = ?"
            params.append(1)
        query += " ORDER BY name"

        conn = self._get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to list modules: {e}")
        finally:
            conn.close()

        return [self._row_to_record(row) for row in rows]

    def set_enabled(self, name: str, enabled: bool) -> InstalledModule:
        """
        Persist the enabled flag of a module

        Raises:
            UnknownModuleError: If the module is not registered
            RegistryError: If the update fails
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "UPDATE installed_modules SET is_enabled = ?, updated_at = ? WHERE name = ?",
                (int(enabled), utc_now_iso(), name)
            )
            if cursor.rowcount == 0:
                raise UnknownModuleError(f"Module not found: {name}")
            conn.commit()
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to update module {name}: {e}")
        finally:
            conn.close()

        logger.info(f"Module {'enabled' if enabled else 'disabled'} in registry: {name}")
        return self.require(name)

    def delete(self, name: str) -> None:
        """
        Remove a module record

        Raises:
            UnknownModuleError: If the module is not registered
            RegistryError: If the delete fails
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM installed_modules WHERE name = ?", (name,))
            if cursor.rowcount == 0:
                raise UnknownModuleError(f"Module not found: {name}")
            conn.commit()
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to unregister module {name}: {e}")
        finally:
            conn.close()

        logger.info(f"Module unregistered: {name}")

    def upsert(self, fields: Dict[str, Any]) -> Tuple[InstalledModule, bool]:
        """
        Insert or update a record keyed by name (used by host sync)

        Existing records keep their installed_at and created_at.

        Args:
            fields: Column values; must include name, alias and path

        Returns:
            Tuple of (record, created)

        Raises:
            ConflictError: If the alias belongs to a different module
            RegistryError: On any other storage failure
        """
        name = fields["name"]
        now = utc_now_iso()
        values = (
            name,
            fields["alias"],
            fields.get("description"),
            fields.get("version") or DEFAULT_VERSION,
            fields.get("author"),
            fields.get("author_email"),
            json.dumps(fields.get("providers") or []),
            json.dumps(fields.get("requirements") or []),
            int(bool(fields.get("is_enabled", False))),
            int(bool(fields.get("is_core", False))),
            str(fields["path"]),
            fields.get("namespace") or DEFAULT_NAMESPACE,
            now,
            now,
            now,
        )
        update_columns = [c for c in _COLUMNS if c != "name"] + ["updated_at"]

        conn = self._get_connection()
        try:
            created = conn.execute(
                "SELECT 1 FROM installed_modules WHERE name = ?", (name,)
            ).fetchone() is None
            conn.execute(
                f"INSERT INTO installed_modules ({', '.join(_COLUMNS)}, installed_at, created_at, updated_at) "
                f"VALUES ({', '.join('?' * (len(_COLUMNS) + 3))}) "
                f"ON CONFLICT(name) DO UPDATE SET "
                + ", ".join(f"{c} = excluded.{c}" for c in update_columns),
                values,
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise self._conflict_from_integrity(e, name, fields["alias"])
        except sqlite3.Error as e:
            raise RegistryError(f"Failed to sync module {name}: {e}")
        finally:
            conn.close()

        return self.require(name), created

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> InstalledModule:
        data = dict(row)
        data["providers"] = json.loads(data.get("providers") or "[]")
        data["requirements"] = json.loads(data.get("requirements") or "[]")
        data["is_enabled"] = bool(data["is_enabled"])
        data["is_core"] = bool(data["is_core"])
        return InstalledModule(**data)
