"""
Module Management API - HTTP endpoints for module installation and lifecycle

Provides:
- List installed modules (optionally only enabled ones)
- Get module details
- Install a module from a ZIP upload
- Enable/disable modules
- Uninstall modules
- Sync the registry with the modules directory
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from modhost.core.modules.manager import ModuleManager
from modhost.core.modules.models import (
    InstallResult,
    InstalledModule,
    OperationResult,
    UploadedArchive,
)
from modhost.webui.api.contracts import ReasonCode, error_detail, error_status

logger = logging.getLogger(__name__)

router = APIRouter()

UPLOAD_CHUNK_SIZE = 1024 * 1024

# Global instance (initialized lazily or by create_app)
_manager: Optional[ModuleManager] = None


def get_manager() -> ModuleManager:
    """Get module manager instance"""
    global _manager
    if _manager is None:
        _manager = ModuleManager()
    return _manager


def set_manager(manager: Optional[ModuleManager]) -> None:
    global _manager
    _manager = manager


# ============================================
# Request/Response Models
# ============================================

class ModuleItem(BaseModel):
    """Module list item / detail"""
    name: str
    alias: str
    description: Optional[str] = None
    version: str
    author: Optional[str] = None
    author_email: Optional[str] = None
    providers: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    is_enabled: bool
    is_core: bool
    status: str
    path: str
    namespace: str
    installed_at: str
    installation_date: str

    @classmethod
    def from_record(cls, record: InstalledModule) -> "ModuleItem":
        return cls(
            name=record.name,
            alias=record.alias,
            description=record.description,
            version=record.version,
            author=record.author,
            author_email=record.author_email,
            providers=record.providers,
            requirements=record.requirements,
            is_enabled=record.is_enabled,
            is_core=record.is_core,
            status=record.status,
            path=record.path,
            namespace=record.namespace,
            installed_at=record.installed_at.isoformat(),
            installation_date=record.installation_date,
        )


class ModuleListResponse(BaseModel):
    modules: List[ModuleItem]
    total: int


class OperationResponse(BaseModel):
    """Install / enable / disable / uninstall response"""
    success: bool
    message: str
    module: Optional[ModuleItem] = None


class SyncResponse(BaseModel):
    created: List[str]
    updated: List[str]
    skipped: List[str]


def _raise_for(result: Union[OperationResult, InstallResult]) -> None:
    status_code, reason = error_status(result.error_code)
    raise HTTPException(
        status_code=status_code,
        detail=error_detail(result.message, result.hint, reason),
    )


def _respond(result: Union[OperationResult, InstallResult]) -> OperationResponse:
    if not result.success:
        _raise_for(result)
    return OperationResponse(
        success=True,
        message=result.message,
        module=ModuleItem.from_record(result.module) if result.module else None,
    )


# ============================================
# API Endpoints
# ============================================

@router.get("/api/modules", response_model=ModuleListResponse)
async def list_modules(enabled_only: bool = Query(default=False)):
    """List installed modules ordered by name"""
    modules = await run_in_threadpool(get_manager().list_modules, enabled_only=enabled_only)
    return ModuleListResponse(
        modules=[ModuleItem.from_record(m) for m in modules],
        total=len(modules),
    )


@router.post("/api/modules/sync", response_model=SyncResponse)
async def sync_modules():
    """Reconcile the registry with the modules directory"""
    report = await run_in_threadpool(get_manager().sync)
    return SyncResponse(created=report.created, updated=report.updated, skipped=report.skipped)


@router.post("/api/modules/install", response_model=OperationResponse)
async def install_module(file: UploadFile = File(...)):
    """
    Install a module from an uploaded ZIP

    Body: multipart/form-data with a 'file' field. The upload is spooled to a
    temporary file; reading stops as soon as the size limit is exceeded.
    """
    manager = get_manager()
    max_size = manager.config.max_upload_size
    filename = file.filename or ""

    fd, temp_name = tempfile.mkstemp(prefix="modhost_upload_", suffix=Path(filename).suffix)
    temp_path = Path(temp_name)
    size = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while True:
                chunk = await file.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    break
                out.write(chunk)

        upload = UploadedArchive(path=temp_path, filename=filename, size=size)
        result = await run_in_threadpool(manager.install, upload)
    finally:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass

    return _respond(result)


@router.get("/api/modules/{name}", response_model=ModuleItem)
async def get_module(name: str):
    """Get one module"""
    module = await run_in_threadpool(get_manager().get, name)
    if module is None:
        raise HTTPException(
            status_code=404,
            detail=error_detail(
                f"Module not found: {name}",
                "Check the module name and try again",
                ReasonCode.NOT_FOUND,
            ),
        )
    return ModuleItem.from_record(module)


@router.post("/api/modules/{name}/enable", response_model=OperationResponse)
async def enable_module(name: str):
    """Enable a module"""
    return _respond(await run_in_threadpool(get_manager().enable, name))


@router.post("/api/modules/{name}/disable", response_model=OperationResponse)
async def disable_module(name: str):
    """Disable a module (core modules are refused)"""
    return _respond(await run_in_threadpool(get_manager().disable, name))


@router.delete("/api/modules/{name}", response_model=OperationResponse)
async def uninstall_module(name: str):
    """Uninstall a disabled, non-core module"""
    return _respond(await run_in_threadpool(get_manager().uninstall, name))
