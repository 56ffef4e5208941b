"""
errors/ - Error taxonomy for the calculation core.
"""

from .taxonomy import (
    ErrorCategory,
    ErrorCode,
    ErrorInfo,
    NaasCalcError,
    UnknownComponentError,
    CycleDetectedError,
    CalculationError,
    ListenerError,
    InvalidUpdateError,
    error_info_from_exception,
)

__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "ErrorInfo",
    "NaasCalcError",
    "UnknownComponentError",
    "CycleDetectedError",
    "CalculationError",
    "ListenerError",
    "InvalidUpdateError",
    "error_info_from_exception",
]
