"""Field validation."""

from .functions import BUILTIN_VALIDATORS, ValidatorFn
from .engine import (
    FieldStatus,
    ValidationFailure,
    ValidationContext,
    FieldValidation,
    ValidationEngine,
    run_check,
)

__all__ = [
    "BUILTIN_VALIDATORS",
    "ValidatorFn",
    "FieldStatus",
    "ValidationFailure",
    "ValidationContext",
    "FieldValidation",
    "ValidationEngine",
    "run_check",
]
