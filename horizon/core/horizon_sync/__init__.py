"""
Horizon sync validators.

The bundle handed to the sync state machine once a pruned state has been
downloaded: a header validator and the final-state validator, which chains
the chain balance check with the MMR root check.
"""

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict

from ..consensus import ConsensusManager
from ..crypto import CommitmentFactory
from ..storage import BlockchainDatabase
from ..validation.layers import ChainedValidator
from .chain_balance import DEFAULT_CHUNK_SIZE, ChainBalanceValidator, HeaderIter, HeaderIterState
from .headers import HorizonHeadersValidator
from .mmr_roots import MmrRootsValidator

if TYPE_CHECKING:
    from ...config import HorizonConfig


class HorizonSyncValidators(BaseModel):
    """Validators run against a horizon state."""

    header: HorizonHeadersValidator
    final_state: ChainedValidator

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @classmethod
    def full_consensus(
        cls,
        db: BlockchainDatabase,
        rules: ConsensusManager,
        factory: CommitmentFactory,
        config: Optional["HorizonConfig"] = None,
    ) -> "HorizonSyncValidators":
        """
        Build the production validators.

        Args:
            db: Shared blockchain database
            rules: Consensus rules of the network
            factory: Commitment factory
            config: Chunk size and MMR toggle; defaults apply when omitted

        Returns:
            HorizonSyncValidators bundle
        """
        chunk_size = config.header_chunk_size if config else DEFAULT_CHUNK_SIZE
        check_mmr_roots = config.check_mmr_roots if config else False

        balance = ChainBalanceValidator(db, rules, factory, chunk_size=chunk_size)
        mmr_roots = MmrRootsValidator(db, rules, enabled=check_mmr_roots)
        return cls(
            header=HorizonHeadersValidator(db, rules),
            final_state=balance.chain(mmr_roots),
        )

    def __repr__(self) -> str:
        return f"HorizonSyncValidators(header={self.header.name}, final_state={self.final_state.name})"


__all__ = [
    "HorizonSyncValidators",
    "ChainBalanceValidator",
    "MmrRootsValidator",
    "HorizonHeadersValidator",
    "HeaderIter",
    "HeaderIterState",
    "DEFAULT_CHUNK_SIZE",
]
