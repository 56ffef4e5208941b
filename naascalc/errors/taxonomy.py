"""
errors/taxonomy.py - Error classification for the calculation core

Structural errors (unknown component, dependency cycle) are raised at the
call site. Calculation failures are captured as ErrorInfo and stored on the
failing component instead of propagating.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class ErrorCategory(Enum):
    """Error categories."""
    DEPENDENCY = "dependency"
    CALCULATION = "calculation"
    STATE = "state"
    VALIDATION = "validation"
    LISTENER = "listener"


class ErrorCode(Enum):
    """Specific error codes."""

    # Dependency (1xxx)
    DEP_UNKNOWN_COMPONENT = 1001
    DEP_CYCLE = 1002
    DEP_DISABLED = 1003
    DEP_MISSING_RESULT = 1004

    # Calculation (2xxx)
    CALC_FAILED = 2001
    CALC_NO_CALCULATOR = 2002
    CALC_INVALID_RESULT = 2003

    # State (3xxx)
    STA_INVALID_UPDATE = 3001

    # Listener (4xxx)
    LSN_FAILED = 4001


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ErrorInfo:
    """Structured error recorded on a component after a failed calculation."""

    code: ErrorCode = ErrorCode.CALC_FAILED
    category: ErrorCategory = ErrorCategory.CALCULATION
    message: str = ""
    component_type: Optional[str] = None
    detail: str = ""
    recoverable: bool = True
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "category": self.category.value,
            "message": self.message,
            "component_type": self.component_type,
            "detail": self.detail,
            "recoverable": self.recoverable,
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# EXCEPTIONS
# =============================================================================

class NaasCalcError(Exception):
    """Base exception for the calculation core."""

    code: ErrorCode = ErrorCode.CALC_FAILED
    category: ErrorCategory = ErrorCategory.CALCULATION

    def to_error_info(self, component_type: Optional[str] = None) -> ErrorInfo:
        return ErrorInfo(
            code=self.code,
            category=self.category,
            message=str(self),
            component_type=component_type,
        )


class UnknownComponentError(NaasCalcError):
    """Raised when a component type was never registered."""

    code = ErrorCode.DEP_UNKNOWN_COMPONENT
    category = ErrorCategory.DEPENDENCY

    def __init__(self, component_type: str, referenced_by: Optional[str] = None):
        self.component_type = component_type
        self.referenced_by = referenced_by
        if referenced_by:
            message = f"Unknown component type: {component_type} (referenced by {referenced_by})"
        else:
            message = f"Unknown component type: {component_type}"
        super().__init__(message)


class CycleDetectedError(NaasCalcError):
    """Raised when a dependency declaration closes a cycle."""

    code = ErrorCode.DEP_CYCLE
    category = ErrorCategory.DEPENDENCY

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic dependency detected: {' -> '.join(self.cycle)}")


class CalculationError(NaasCalcError):
    """The calculation engine failed for one component type."""

    category = ErrorCategory.CALCULATION

    def __init__(
        self,
        component_type: str,
        message: str,
        code: ErrorCode = ErrorCode.CALC_FAILED,
        detail: str = "",
    ):
        self.component_type = component_type
        self.code = code
        self.detail = detail
        super().__init__(message)

    def to_error_info(self, component_type: Optional[str] = None) -> ErrorInfo:
        category = ErrorCategory.DEPENDENCY if self.code.value < 2000 else ErrorCategory.CALCULATION
        return ErrorInfo(
            code=self.code,
            category=category,
            message=str(self),
            component_type=component_type or self.component_type,
            detail=self.detail,
        )


class ListenerError(NaasCalcError):
    """A store subscriber raised during notification."""

    code = ErrorCode.LSN_FAILED
    category = ErrorCategory.LISTENER

    def __init__(self, listener: Any, cause: BaseException):
        self.listener = listener
        self.cause = cause
        name = getattr(listener, "__qualname__", None) or repr(listener)
        super().__init__(f"Listener {name} failed: {cause}")


class InvalidUpdateError(NaasCalcError):
    """A mutation payload could not be validated."""

    code = ErrorCode.STA_INVALID_UPDATE
    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.errors = errors or []
        super().__init__(message)


def error_info_from_exception(component_type: str, exc: BaseException) -> ErrorInfo:
    """Build the ErrorInfo stored on a component after its compute raised."""
    if isinstance(exc, NaasCalcError):
        return exc.to_error_info(component_type)
    return ErrorInfo(
        code=ErrorCode.CALC_FAILED,
        category=ErrorCategory.CALCULATION,
        message=str(exc) or exc.__class__.__name__,
        component_type=component_type,
        detail=exc.__class__.__name__,
    )
