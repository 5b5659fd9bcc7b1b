"""
Centralized Configuration Management for ModHost

Provides pydantic-based configuration with:
- Environment variable loading (.env support)
- Type validation
- Default values derived from a single home directory

Usage:
    from modhost.core.config import get_config

    config = get_config()
    print(config.modules_dir)
    print(config.max_upload_size)
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from modhost.core.storage import paths


class ModHostConfig(BaseSettings):
    """
    Central configuration for ModHost

    All settings can be overridden via environment variables with MODHOST_ prefix.
    For example: MODHOST_MODULES_DIR, MODHOST_MAX_UPLOAD_SIZE, etc.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MODHOST_",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # Paths
    # ============================================

    home_dir: Path = Field(
        default_factory=paths.modhost_home,
        description="Root directory for all derived paths"
    )

    modules_dir: Optional[Path] = Field(
        default=None,
        description="Live modules directory (default: <home>/Modules)"
    )

    scratch_dir: Optional[Path] = Field(
        default=None,
        description="Scratch root for install workspaces (default: <home>/storage/app/temp)"
    )

    db_path: Optional[Path] = Field(
        default=None,
        description="Registry database file (default: <home>/store/registry.sqlite)"
    )

    statuses_file: Optional[Path] = Field(
        default=None,
        description="Activation status file used by the file activator"
    )

    sqlite_busy_timeout: int = Field(
        default=5000,
        description="SQLite busy timeout in milliseconds"
    )

    # ============================================
    # Upload Configuration
    # ============================================

    max_upload_size: int = Field(
        default=50 * 1024 * 1024,  # 50MB
        description="Maximum upload size in bytes"
    )

    allowed_archive_extension: str = Field(
        default=".zip",
        description="The single accepted archive extension"
    )

    max_extracted_size: int = Field(
        default=200 * 1024 * 1024,  # 200MB
        description="Maximum total uncompressed size of an archive"
    )

    # ============================================
    # Package Layout
    # ============================================

    manifest_filename: str = Field(
        default="module.json",
        description="Manifest file name looked up at the package root"
    )

    required_directories: List[str] = Field(
        default_factory=lambda: ["app/Http/Controllers", "resources/views"],
        description="Directories that must exist under the package root"
    )

    core_modules: List[str] = Field(
        default_factory=lambda: ["Admin", "UserManagement", "Frontend"],
        description="Module names bundled with the host (cannot be disabled or removed)"
    )

    default_namespace: str = Field(
        default="Modules",
        description="Code namespace root recorded for installed modules"
    )

    # ============================================
    # Application Configuration
    # ============================================

    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    # ============================================
    # Validators
    # ============================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(
                f"log_level must be one of: {', '.join(valid_levels)}"
            )
        return v.upper()

    @field_validator("allowed_archive_extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        v = v.strip().lower()
        if not v.startswith("."):
            v = "." + v
        return v

    @model_validator(mode="after")
    def fill_derived_paths(self) -> "ModHostConfig":
        """Derive unset paths from home_dir"""
        home = self.home_dir.expanduser()
        self.home_dir = home
        if self.modules_dir is None:
            self.modules_dir = paths.modules_root(home)
        if self.scratch_dir is None:
            self.scratch_dir = paths.scratch_root(home)
        if self.db_path is None:
            self.db_path = paths.registry_db_path(home)
        if self.statuses_file is None:
            self.statuses_file = paths.statuses_file(home)
        return self

    def is_core_module(self, name: str) -> bool:
        return name in self.core_modules


# Global config instance
_config: Optional[ModHostConfig] = None


def get_config(force_reload: bool = False) -> ModHostConfig:
    """
    Get the global configuration instance

    Args:
        force_reload: Force reload configuration from environment

    Returns:
        ModHostConfig instance
    """
    global _config

    if _config is None or force_reload:
        _config = ModHostConfig()

    return _config


def validate_config(config: Optional[ModHostConfig] = None) -> tuple[bool, list[str]]:
    """
    Validate a configuration

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    config = config or get_config()

    if config.max_upload_size <= 0:
        errors.append("max_upload_size must be positive")

    if config.max_extracted_size <= 0:
        errors.append("max_extracted_size must be positive")

    if not config.manifest_filename.strip():
        errors.append("manifest_filename cannot be empty")

    if config.modules_dir == config.scratch_dir:
        errors.append("modules_dir and scratch_dir must differ")

    for directory in config.required_directories:
        if Path(directory).is_absolute() or ".." in Path(directory).parts:
            errors.append(f"required directory must be relative: {directory}")

    return len(errors) == 0, errors
