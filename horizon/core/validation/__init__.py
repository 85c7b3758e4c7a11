"""
Validation framework: the validation capability, chaining, engine and reports.
"""

from .layers import ChainedValidator, StatelessValidation, Validation
from .engine import ValidationEngine, ValidationFailure, ValidationResult
from .report import ValidationReport, generate_report

__all__ = [
    "StatelessValidation",
    "Validation",
    "ChainedValidator",
    "ValidationEngine",
    "ValidationFailure",
    "ValidationResult",
    "ValidationReport",
    "generate_report",
]
