"""
Horizon Exceptions.

All exceptions raised by this package inherit from HorizonError for easy catching.
Validation failures are ValidationError subclasses and carry a ValidationErrorCode.
"""

from enum import Enum
from typing import Any, Optional


class ValidationErrorCode(Enum):
    """Error codes for validation failures."""
    # Storage errors (1xx)
    STORAGE_ERROR = 100

    # Final state errors (2xx)
    BALANCE_MISMATCH = 200
    INVALID_OUTPUT_MR = 201
    INVALID_KERNEL_MR = 202

    # Header errors (3xx)
    GENESIS_MISMATCH = 300
    CHAIN_LINK_BROKEN = 301
    TIMESTAMP_INVALID = 302

    # Anything else (9xx)
    CUSTOM = 900


class HorizonError(Exception):
    """Base exception for all horizon errors."""

    def __init__(self, message: str, code: str = "HORIZON_ERROR"):
        super().__init__(message)
        self.code = code
        self.message = message


class ConfigurationError(HorizonError):
    """Configuration could not be loaded or is invalid."""

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")


class SnapshotError(HorizonError):
    """A chain snapshot could not be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, "SNAPSHOT_ERROR")
        self.path = path


class ChainStorageError(HorizonError):
    """Any failure of the blockchain storage backend."""

    def __init__(self, message: str):
        super().__init__(message, "STORAGE_ERROR")


class ValueNotFoundError(ChainStorageError):
    """The requested value does not exist in storage."""

    def __init__(self, entity: str, field: str, value: Any):
        super().__init__(f"{entity} not found with {field} = {value}")
        self.entity = entity
        self.field = field
        self.value = value


class ValidationError(HorizonError):
    """A consensus validation check failed."""

    def __init__(
        self,
        message: str,
        code: ValidationErrorCode = ValidationErrorCode.CUSTOM,
        height: Optional[int] = None,
        source: Optional[BaseException] = None,
    ):
        super().__init__(message, code.name)
        self.error_code = code
        self.height = height
        self.source = source

    @classmethod
    def custom_error(cls, err: Any) -> "ValidationError":
        """
        Wrap an arbitrary error so it can travel through a validation pipeline.

        Storage errors keep the STORAGE_ERROR code. Callers should raise the
        result with ``from err`` so the original stays attached as __cause__.
        """
        if isinstance(err, ValidationError):
            return err
        if isinstance(err, ChainStorageError):
            return cls(str(err), ValidationErrorCode.STORAGE_ERROR, source=err)
        if isinstance(err, BaseException):
            return cls(str(err), ValidationErrorCode.CUSTOM, source=err)
        return cls(str(err), ValidationErrorCode.CUSTOM)

    @property
    def details(self) -> dict[str, Any]:
        """Extra diagnostic fields for reports."""
        details: dict[str, Any] = {}
        if self.height is not None:
            details["height"] = self.height
        if self.source is not None:
            details["source"] = type(self.source).__name__
        return details


class BalanceMismatchError(ValidationError):
    """The UTXO set does not balance with the expected emission."""

    def __init__(self, height: int):
        super().__init__(
            "Final state validation failed: The UTXO set did not balance with the "
            f"expected emission at height {height}",
            ValidationErrorCode.BALANCE_MISMATCH,
            height=height,
        )


class _MmrMismatchError(ValidationError):
    """Declared and calculated MMR roots differ."""

    tree = ""

    def __init__(self, code: ValidationErrorCode, height: int, expected: str, calculated: str):
        super().__init__(
            f"Invalid {self.tree} MMR root at height {height}: "
            f"header declares {expected[:16]}..., calculated {calculated[:16]}...",
            code,
            height=height,
        )
        self.expected = expected
        self.calculated = calculated

    @property
    def details(self) -> dict[str, Any]:
        details = super().details
        details["expected"] = self.expected
        details["calculated"] = self.calculated
        return details


class InvalidOutputMrError(_MmrMismatchError):
    """The header output_mr does not match the UTXO MMR."""

    tree = "output"

    def __init__(self, height: int, expected: str, calculated: str):
        super().__init__(ValidationErrorCode.INVALID_OUTPUT_MR, height, expected, calculated)


class InvalidKernelMrError(_MmrMismatchError):
    """The header kernel_mr does not match the kernel MMR."""

    tree = "kernel"

    def __init__(self, height: int, expected: str, calculated: str):
        super().__init__(ValidationErrorCode.INVALID_KERNEL_MR, height, expected, calculated)
