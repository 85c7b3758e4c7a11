"""
Genesis block construction.

The genesis block holds a coinbase output worth the height-0 supply minus the
genesis coinbase value offset, its coinbase kernel, and any pre-mine outputs.
Pre-mine outputs are not coinbase-flagged, so horizon validation adds them to
the expected side of the balance equation.
"""

import logging
from typing import TYPE_CHECKING, Optional

from .blockchain import (
    NULL_HASH,
    Block,
    BlockHeader,
    KernelFlags,
    OutputFlags,
    TransactionKernel,
    TransactionOutput,
)
from .crypto import BlindingFactor, CommitmentFactory
from .mmr import calculate_pruned_mmr_root

if TYPE_CHECKING:
    from .consensus import ConsensusConstants

logger = logging.getLogger(__name__)


def genesis_seed(constants: "ConsensusConstants") -> bytes:
    return f"horizon/genesis/{constants.network.value}".encode()


def create_genesis_block(
    constants: "ConsensusConstants",
    factory: CommitmentFactory,
    seed: Optional[bytes] = None,
) -> Block:
    """
    Deterministically build the genesis block for a set of constants.

    Args:
        constants: Network constants (emission, offset, pre-mine)
        factory: Commitment factory
        seed: Secret derivation seed, defaults to one derived from the network

    Returns:
        The genesis Block
    """
    seed = seed or genesis_seed(constants)
    supply = constants.emission_schedule().supply_at_block(0)
    coinbase_value = supply - constants.genesis_coinbase_value_offset
    if coinbase_value < 0:
        raise ValueError(
            f"genesis coinbase value offset {constants.genesis_coinbase_value_offset} "
            f"exceeds the height 0 supply {supply}"
        )

    coinbase_key = BlindingFactor.from_seed(seed + b"/coinbase")
    offset = BlindingFactor.from_seed(seed + b"/offset")

    outputs = [
        TransactionOutput(
            features=OutputFlags.COINBASE_OUTPUT,
            commitment=factory.commit(coinbase_key, coinbase_value),
        )
    ]
    for i, value in enumerate(constants.genesis_premine):
        key = BlindingFactor.from_seed(seed + f"/premine/{i}".encode())
        outputs.append(TransactionOutput(commitment=factory.commit(key, value)))

    kernels = [
        TransactionKernel(
            features=KernelFlags.COINBASE_KERNEL,
            excess=factory.commit(coinbase_key - offset, 0),
        )
    ]

    header = BlockHeader(
        height=0,
        prev_hash=NULL_HASH,
        timestamp=constants.genesis_timestamp,
        output_mr=calculate_pruned_mmr_root([o.hash() for o in outputs], []),
        kernel_mr=calculate_pruned_mmr_root([k.hash() for k in kernels], []),
        total_kernel_offset=offset,
    )

    block = Block(header=header, outputs=outputs, kernels=kernels)
    logger.debug(
        f"Created {constants.network.value} genesis block {block.hash()[:16]}... "
        f"with {len(outputs)} outputs"
    )
    return block
