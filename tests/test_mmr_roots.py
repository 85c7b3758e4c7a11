"""
Tests for MMR root validation.
"""

import pytest
from unittest.mock import MagicMock

from horizon.core.horizon_sync.mmr_roots import MmrRootsValidator
from horizon.exceptions import (
    InvalidKernelMrError,
    InvalidOutputMrError,
    ValidationError,
    ValidationErrorCode,
)

BOGUS_ROOT = "ab" * 32


@pytest.fixture
def validator(db, rules):
    return MmrRootsValidator(db, rules, enabled=True)


def tamper(backend, height, **fields):
    header = backend.fetch_header(height)
    backend.insert_header(header.model_copy(update=fields))
    return backend.fetch_header(height)


class TestDisabled:
    """Tests for the default, disabled validator."""

    def test_passes_without_storage_access(self, rules):
        """Test the disabled check never touches storage."""
        db = MagicMock()
        validator = MmrRootsValidator(db, rules)

        assert validator.enabled is False
        assert validator.validate(5) is None
        assert db.method_calls == []

    def test_ignores_bad_roots(self, db, rules, backend, builder):
        """Test tampered roots pass while disabled."""
        tamper(backend, builder.height, output_mr=BOGUS_ROOT)
        MmrRootsValidator(db, rules).validate(builder.height)


class TestEnabled:
    """Tests for the enabled validator."""

    def test_valid_at_every_height(self, validator, builder):
        """Test declared roots match at every historical height."""
        for height in range(builder.height + 1):
            validator.validate(height)

    def test_check_utxo_mr_mismatch(self, validator, backend, builder):
        """Test a wrong output_mr raises InvalidOutputMrError."""
        header = tamper(backend, builder.height, output_mr=BOGUS_ROOT)

        with pytest.raises(InvalidOutputMrError) as exc_info:
            validator.check_utxo_mr(header)

        error = exc_info.value
        assert error.error_code is ValidationErrorCode.INVALID_OUTPUT_MR
        assert error.height == builder.height
        assert error.expected == BOGUS_ROOT
        assert error.details["calculated"] == error.calculated != BOGUS_ROOT

    def test_check_kernel_mr_mismatch(self, validator, backend, builder):
        """Test a wrong kernel_mr raises InvalidKernelMrError."""
        header = tamper(backend, builder.height, kernel_mr=BOGUS_ROOT)

        with pytest.raises(InvalidKernelMrError):
            validator.check_kernel_mr(header)

    def test_kernel_checked_first(self, validator, backend, builder):
        """Test the kernel root is checked before the UTXO root."""
        tamper(backend, builder.height, output_mr=BOGUS_ROOT, kernel_mr=BOGUS_ROOT)

        with pytest.raises(InvalidKernelMrError):
            validator.validate(builder.height)

    def test_validate_output_mismatch(self, validator, backend, builder):
        """Test validate() reports an output root mismatch."""
        tamper(backend, 2, output_mr=BOGUS_ROOT)

        with pytest.raises(InvalidOutputMrError):
            validator.validate(2)

    def test_unspent_history_matters(self, validator, backend, builder):
        """Test spending an old output changes the current root."""
        backend.spend_output(builder.spendable[0].commitment, builder.height)

        with pytest.raises(InvalidOutputMrError):
            validator.validate(builder.height)

    def test_missing_header(self, validator, builder):
        """Test a missing header is a storage error."""
        with pytest.raises(ValidationError) as exc_info:
            validator.validate(builder.height + 1)

        assert exc_info.value.error_code is ValidationErrorCode.STORAGE_ERROR
