"""
Deterministic chain builder.

Builds balanced chains into a MemoryBackend: every block carries a coinbase
output with its kernel, and optionally a transaction spending earlier outputs.
Header MMR roots and kernel offsets are filled in so the result passes every
horizon check. Used to produce localnet snapshots and test fixtures.
"""

import logging
import struct
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .blockchain import (
    Block,
    BlockHeader,
    KernelFlags,
    OutputFlags,
    TransactionKernel,
    TransactionOutput,
)
from .consensus import ConsensusManager
from .crypto import BlindingFactor, Commitment, CommitmentFactory
from .storage import MemoryBackend, MmrTree

logger = logging.getLogger(__name__)


class SpendableOutput(BaseModel):
    """An output whose opening the builder knows."""

    commitment: Commitment
    blinding: BlindingFactor
    value: int
    height: int

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


class ChainBuilder:
    """
    Builds a balanced chain on top of the rules' genesis block.

    Usage:
        builder = ChainBuilder(rules, factory)
        builder.add_blocks(10, spend=1)
        db = BlockchainDatabase(builder.backend)
    """

    def __init__(
        self,
        rules: ConsensusManager,
        factory: CommitmentFactory,
        seed: bytes = b"horizon/builder",
        backend: Optional[MemoryBackend] = None,
        fee: int = 0,
    ):
        self.rules = rules
        self.factory = factory
        self.seed = seed
        self.fee = fee
        self.backend = backend or MemoryBackend()
        self.blocks: list[Block] = []
        self._spendable: list[SpendableOutput] = []
        self._counter = 0

        genesis = rules.genesis_block()
        self.backend.apply_block(genesis)
        self.blocks.append(genesis)

    @property
    def tip(self) -> BlockHeader:
        return self.blocks[-1].header

    @property
    def height(self) -> int:
        return self.tip.height

    @property
    def spendable(self) -> list[SpendableOutput]:
        return list(self._spendable)

    def _next_key(self, label: str) -> BlindingFactor:
        self._counter += 1
        return BlindingFactor.from_seed(self.seed + f"/{label}/".encode() + struct.pack(">Q", self._counter))

    def add_block(self, spend: int = 0) -> Block:
        """
        Append a block.

        Args:
            spend: Number of earlier builder outputs to spend into two new outputs

        Returns:
            The new Block
        """
        height = self.height + 1
        reward = self.rules.emission_schedule().block_reward(height)
        inputs = self._spendable[:spend]
        fee = self.fee if inputs else 0

        outputs: list[TransactionOutput] = []
        kernels: list[TransactionKernel] = []
        created: list[SpendableOutput] = []
        total_offset = BlindingFactor.default()

        if inputs:
            value_in = sum(i.value for i in inputs)
            if value_in < fee:
                raise ValueError(f"inputs worth {value_in} cannot pay fee {fee}")
            blinding_in = BlindingFactor.default()
            for i in inputs:
                blinding_in = blinding_in + i.blinding

            change = (value_in - fee) // 2
            blinding_out = BlindingFactor.default()
            for value in (value_in - fee - change, change):
                key = self._next_key("output")
                commitment = self.factory.commit(key, value)
                outputs.append(TransactionOutput(commitment=commitment))
                created.append(SpendableOutput(commitment=commitment, blinding=key, value=value, height=height))
                blinding_out = blinding_out + key

            tx_offset = self._next_key("offset")
            kernels.append(TransactionKernel(
                fee=fee,
                excess=self.factory.commit(blinding_out - blinding_in - tx_offset, 0),
            ))
            total_offset = total_offset + tx_offset

        coinbase_key = self._next_key("coinbase")
        coinbase_offset = self._next_key("offset")
        coinbase = self.factory.commit(coinbase_key, reward + fee)
        outputs.append(TransactionOutput(features=OutputFlags.COINBASE_OUTPUT, commitment=coinbase))
        created.append(SpendableOutput(commitment=coinbase, blinding=coinbase_key, value=reward + fee, height=height))
        kernels.append(TransactionKernel(
            features=KernelFlags.COINBASE_KERNEL,
            excess=self.factory.commit(coinbase_key - coinbase_offset, 0),
        ))
        total_offset = total_offset + coinbase_offset

        backend = self.backend
        for output in outputs:
            backend.insert_output(output, height)
        for i in inputs:
            backend.spend_output(i.commitment, height)
        for kernel in kernels:
            backend.insert_kernel(kernel, height)

        header = BlockHeader(
            height=height,
            prev_hash=self.tip.hash(),
            timestamp=self.tip.timestamp + self.rules.consensus_constants().target_block_interval,
            output_mr=backend.mmr_root_at(MmrTree.UTXO, height),
            kernel_mr=backend.mmr_root_at(MmrTree.KERNEL, height),
            total_kernel_offset=total_offset,
        )
        backend.insert_header(header)

        block = Block(
            header=header,
            inputs=[i.commitment for i in inputs],
            outputs=outputs,
            kernels=kernels,
        )
        self.blocks.append(block)
        self._spendable = self._spendable[len(inputs):] + created

        logger.debug(
            f"Built block {height} with {len(inputs)} inputs, {len(outputs)} outputs, "
            f"{len(kernels)} kernels"
        )
        return block

    def add_blocks(self, count: int, spend: int = 0) -> list[Block]:
        return [self.add_block(spend=spend) for _ in range(count)]
