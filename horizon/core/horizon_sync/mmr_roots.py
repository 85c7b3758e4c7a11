"""
MMR root validation of a horizon state.

Recomputes the UTXO and kernel MMR roots from storage and compares them with
the roots declared by the header. The check is off unless enabled.
"""

import logging

from ...exceptions import (
    ChainStorageError,
    InvalidKernelMrError,
    InvalidOutputMrError,
    ValidationError,
)
from ..blockchain import BlockHeader
from ..consensus import ConsensusManager
from ..storage import BlockchainDatabase, MmrTree
from ..validation.layers import StatelessValidation
from .chain_balance import check_height

logger = logging.getLogger(__name__)


class MmrRootsValidator(StatelessValidation[int]):
    """
    Checks the header-declared output_mr and kernel_mr at a height.

    When disabled, validate() passes without touching storage.
    """

    name = "mmr_roots"

    def __init__(self, db: BlockchainDatabase, rules: ConsensusManager, enabled: bool = False):
        self.db = db
        self.rules = rules
        self.enabled = enabled

    def validate(self, height: int) -> None:
        check_height(height)
        if not self.enabled:
            logger.debug(f"MMR root checks are disabled, skipping height {height}")
            return

        try:
            header = self.db.fetch_header(height)
            self.check_kernel_mr(header)
            self.check_utxo_mr(header)
        except ValidationError:
            raise
        except ChainStorageError as e:
            logger.error(f"MMR root check at height {height} aborted: {e}")
            raise ValidationError.custom_error(e) from e

    def check_utxo_mr(self, header: BlockHeader) -> None:
        """Raise InvalidOutputMrError unless the UTXO MMR root matches header.output_mr."""
        count = self.db.fetch_mmr_node_count(MmrTree.UTXO, header.height)
        nodes = self.db.fetch_mmr_nodes(MmrTree.UTXO, 0, count, hist_height=header.height)

        additions: list[str] = []
        deletions: list[int] = []
        for index, (leaf_hash, deleted) in enumerate(nodes):
            if deleted:
                deletions.append(index)
            else:
                additions.append(leaf_hash)

        root = self.db.calculate_mmr_root(MmrTree.UTXO, additions, deletions)
        logger.debug(
            f"UTXO MMR at height {header.height}: {len(additions)} unspent, "
            f"{len(deletions)} deleted leaves"
        )
        if root != header.output_mr:
            logger.warning(f"Output MMR root mismatch at height {header.height}")
            raise InvalidOutputMrError(header.height, header.output_mr, root)

    def check_kernel_mr(self, header: BlockHeader) -> None:
        """Raise InvalidKernelMrError unless the kernel MMR root matches header.kernel_mr."""
        count = self.db.fetch_mmr_node_count(MmrTree.KERNEL, header.height)
        nodes = self.db.fetch_mmr_nodes(MmrTree.KERNEL, 0, count)
        additions = [leaf_hash for leaf_hash, _ in nodes]

        root = self.db.calculate_mmr_root(MmrTree.KERNEL, additions, [])
        logger.debug(f"Kernel MMR at height {header.height}: {len(additions)} leaves")
        if root != header.kernel_mr:
            logger.warning(f"Kernel MMR root mismatch at height {header.height}")
            raise InvalidKernelMrError(header.height, header.kernel_mr, root)

    def __repr__(self) -> str:
        return f"MmrRootsValidator(enabled={self.enabled})"
