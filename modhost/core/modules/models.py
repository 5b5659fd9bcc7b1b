"""Data models for the module system"""

import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modhost.core.modules.exceptions import ModuleErrorCode

DEFAULT_VERSION = "1.0.0"
DEFAULT_NAMESPACE = "Modules"

# Module names become directory names under the modules root
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class InstallState(str, Enum):
    """States of a single install attempt"""
    RECEIVED = "RECEIVED"
    VALIDATING = "VALIDATING"
    EXTRACTED = "EXTRACTED"
    MANIFEST_RESOLVED = "MANIFEST_RESOLVED"
    CONFLICT_CHECKED = "CONFLICT_CHECKED"
    INSTALLED = "INSTALLED"
    REGISTERED = "REGISTERED"
    FAILED = "FAILED"


class ModuleManifest(BaseModel):
    """module.json schema"""
    model_config = ConfigDict(extra="allow")

    name: str = Field(description="Canonical module name (also the install directory name)")
    alias: str = Field(description="Short lowercase identifier used for routing")
    description: str = Field(description="Brief description of the module")
    version: str = Field(default=DEFAULT_VERSION, description="Module version")
    author: Optional[str] = None
    author_email: Optional[str] = None
    providers: List[str] = Field(default_factory=list, description="Entry points loaded when enabled")
    requirements: List[str] = Field(default_factory=list, description="Declared dependencies (informational)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Module name must be a single safe path segment"""
        if not _NAME_PATTERN.match(v) or v in (".", ".."):
            raise ValueError(
                "Module name can only contain alphanumeric characters, dots, "
                "underscores, and hyphens"
            )
        return v

    @field_validator("version", mode="before")
    @classmethod
    def default_version(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_VERSION
        return v

    @field_validator("providers", "requirements", mode="before")
    @classmethod
    def default_list(cls, v: Any) -> Any:
        return [] if v is None else v


class ResolvedPackage(BaseModel):
    """A manifest together with the package root it was found in"""
    manifest: ModuleManifest
    root: Path


class UploadedArchive(BaseModel):
    """An uploaded archive as received from the caller"""
    path: Path
    filename: str
    size: int = Field(ge=0)

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @classmethod
    def from_path(cls, path: Path, filename: Optional[str] = None) -> "UploadedArchive":
        """Describe a file already on disk"""
        path = Path(path)
        return cls(path=path, filename=filename or path.name, size=path.stat().st_size)


class InstalledModule(BaseModel):
    """Registry record for an installed module"""
    id: int
    name: str
    alias: str
    description: Optional[str] = None
    version: str = DEFAULT_VERSION
    author: Optional[str] = None
    author_email: Optional[str] = None
    providers: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    is_enabled: bool = False
    is_core: bool = False
    path: str
    namespace: str = DEFAULT_NAMESPACE
    installed_at: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def status(self) -> str:
        return "enabled" if self.is_enabled else "disabled"

    @property
    def installation_date(self) -> str:
        return self.installed_at.strftime("%b %d, %Y")

    def can_be_disabled(self) -> bool:
        return not self.is_core

    def can_be_deleted(self) -> bool:
        return not self.is_core and not self.is_enabled


class InstallResult(BaseModel):
    """Uniform result of an install attempt"""
    success: bool
    message: str
    module: Optional[InstalledModule] = None
    state: InstallState
    error_code: Optional[ModuleErrorCode] = None
    hint: Optional[str] = None


class OperationResult(BaseModel):
    """Result of an enable/disable/uninstall operation"""
    success: bool
    message: str
    module: Optional[InstalledModule] = None
    error_code: Optional[ModuleErrorCode] = None
    hint: Optional[str] = None


class SyncReport(BaseModel):
    """Outcome of a registry sync against the live modules directory"""
    created: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
