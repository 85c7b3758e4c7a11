"""
Header validation for horizon sync.

Checks a header against the consensus genesis block or, above genesis, against
the stored chain: hash linkage, height continuity and the median timestamp rule.
"""

import logging
from statistics import median_low

from ...exceptions import ChainStorageError, ValidationError, ValidationErrorCode
from ..blockchain import BlockHeader
from ..consensus import ConsensusManager
from ..storage import BlockchainDatabase
from ..validation.layers import StatelessValidation

logger = logging.getLogger(__name__)


class HorizonHeadersValidator(StatelessValidation[BlockHeader]):
    """Validates a header against the chain already in storage."""

    name = "headers"

    def __init__(self, db: BlockchainDatabase, rules: ConsensusManager):
        self.db = db
        self.rules = rules

    def validate(self, header: BlockHeader) -> None:
        try:
            if header.height == 0:
                self._check_genesis(header)
            else:
                self._check_link(header)
                self._check_timestamp(header)
        except ValidationError:
            raise
        except ChainStorageError as e:
            logger.error(f"Header check at height {header.height} aborted: {e}")
            raise ValidationError.custom_error(e) from e

    def _check_genesis(self, header: BlockHeader) -> None:
        expected = self.rules.genesis_block().hash()
        if header.hash() != expected:
            raise ValidationError(
                f"Genesis header {header.hash()[:16]}... does not match "
                f"the {self.rules.network.value} genesis block {expected[:16]}...",
                ValidationErrorCode.GENESIS_MISMATCH,
                height=0,
            )

    def _check_link(self, header: BlockHeader) -> None:
        prev = self.db.fetch_header(header.height - 1)
        if prev.height != header.height - 1 or header.prev_hash != prev.hash():
            raise ValidationError(
                f"Header {header.height} does not link to header {header.height - 1}",
                ValidationErrorCode.CHAIN_LINK_BROKEN,
                height=header.height,
            )

    def _check_timestamp(self, header: BlockHeader) -> None:
        window = self.rules.consensus_constants().median_timestamp_count
        start = max(0, header.height - window)
        previous = self.db.fetch_headers(list(range(start, header.height)))
        median = median_low(h.timestamp for h in previous)
        if header.timestamp <= median:
            raise ValidationError(
                f"Header {header.height} timestamp {header.timestamp} is not after "
                f"the median {median} of the previous {len(previous)} headers",
                ValidationErrorCode.TIMESTAMP_INVALID,
                height=header.height,
            )
