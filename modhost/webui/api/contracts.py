"""Shared response contracts for the HTTP API"""

from enum import Enum
from typing import Any, Dict, Optional

from modhost.core.modules.exceptions import ModuleErrorCode


class ReasonCode(str, Enum):
    """Machine-readable reason attached to error responses"""
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_STATE = "INVALID_STATE"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# error code -> (HTTP status, reason code)
ERROR_STATUS = {
    ModuleErrorCode.UPLOAD_REJECTED: (400, ReasonCode.INVALID_INPUT),
    ModuleErrorCode.EXTRACTION_FAILED: (400, ReasonCode.INVALID_INPUT),
    ModuleErrorCode.MANIFEST_INVALID: (400, ReasonCode.INVALID_INPUT),
    ModuleErrorCode.STRUCTURE_INVALID: (400, ReasonCode.INVALID_INPUT),
    ModuleErrorCode.NOT_FOUND: (404, ReasonCode.NOT_FOUND),
    ModuleErrorCode.CONFLICT: (409, ReasonCode.CONFLICT),
    ModuleErrorCode.INVALID_STATE: (409, ReasonCode.INVALID_STATE),
    ModuleErrorCode.ACTIVATION_FAILED: (502, ReasonCode.UPSTREAM_ERROR),
    ModuleErrorCode.FILESYSTEM_ERROR: (500, ReasonCode.INTERNAL_ERROR),
    ModuleErrorCode.REGISTRY_ERROR: (500, ReasonCode.INTERNAL_ERROR),
    ModuleErrorCode.UNKNOWN: (500, ReasonCode.INTERNAL_ERROR),
}


def error_status(code: Optional[ModuleErrorCode]) -> tuple:
    return ERROR_STATUS.get(code or ModuleErrorCode.UNKNOWN, (500, ReasonCode.INTERNAL_ERROR))


def error_detail(error: str, hint: Optional[str], reason_code: ReasonCode) -> Dict[str, Any]:
    return {
        "ok": False,
        "data": None,
        "error": error,
        "hint": hint,
        "reason_code": reason_code,
    }
