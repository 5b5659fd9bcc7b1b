"""Exception classes for the module system"""

from enum import Enum
from typing import Optional


class ModuleErrorCode(str, Enum):
    """Standardized error codes for module operation failures"""
    UPLOAD_REJECTED = "UPLOAD_REJECTED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    MANIFEST_INVALID = "MANIFEST_INVALID"
    STRUCTURE_INVALID = "STRUCTURE_INVALID"
    CONFLICT = "CONFLICT"
    FILESYSTEM_ERROR = "FILESYSTEM_ERROR"
    INVALID_STATE = "INVALID_STATE"
    ACTIVATION_FAILED = "ACTIVATION_FAILED"
    REGISTRY_ERROR = "REGISTRY_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN = "UNKNOWN"


class ModuleError(Exception):
    """Base exception for all module-related errors"""

    error_code = ModuleErrorCode.UNKNOWN

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class UploadError(ModuleError):
    """Raised when an uploaded archive has the wrong type or is too large"""
    error_code = ModuleErrorCode.UPLOAD_REJECTED


class ExtractionError(ModuleError):
    """Raised when an archive cannot be opened or unpacked"""
    error_code = ModuleErrorCode.EXTRACTION_FAILED


class ManifestError(ModuleError):
    """Raised when the manifest is missing, unparsable or incomplete"""
    error_code = ModuleErrorCode.MANIFEST_INVALID


class StructureError(ModuleError):
    """Raised when a required package directory is missing"""
    error_code = ModuleErrorCode.STRUCTURE_INVALID


class ConflictError(ModuleError):
    """Raised when a module name or alias is already taken"""
    error_code = ModuleErrorCode.CONFLICT


class FilesystemError(ModuleError):
    """Raised when copying or deleting a module tree fails"""
    error_code = ModuleErrorCode.FILESYSTEM_ERROR


class StateError(ModuleError):
    """Raised on an illegal lifecycle transition"""
    error_code = ModuleErrorCode.INVALID_STATE


class ActivationError(ModuleError):
    """Raised when the host activation mechanism fails"""
    error_code = ModuleErrorCode.ACTIVATION_FAILED


class RegistryError(ModuleError):
    """Raised when registry operations fail"""
    error_code = ModuleErrorCode.REGISTRY_ERROR


class UnknownModuleError(RegistryError):
    """Raised when a module name is not present in the registry"""
    error_code = ModuleErrorCode.NOT_FOUND
