"""Pydantic schemas shared by the engine and its collaborators."""
from .target import Target
from .check_result import CheckResult, ErrorCategory, Status

__all__ = [
    "Target",
    "CheckResult",
    "ErrorCategory",
    "Status",
]
