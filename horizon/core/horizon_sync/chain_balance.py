"""
Chain balance validation of a horizon (pruned) state.

A pruned node cannot replay history, so it checks that the UTXO set it was
handed balances homomorphically with everything that should have created it:

    Σ utxo = commit_value(supply(h) - genesis offset)
           + Σ non-coinbase genesis outputs
           + Σ kernel excess
           + commit(Σ header offsets [0, h], 0)

Headers are streamed through HeaderIter so memory stays bounded by the chunk
size. UTXOs and kernels are fetched in one call each.
"""

import logging
from collections import deque
from enum import Enum
from typing import Iterator

from ...exceptions import BalanceMismatchError, ChainStorageError, ValidationError, ValueNotFoundError
from ..blockchain import BlockHeader
from ..consensus import ConsensusManager
from ..crypto import BlindingFactor, Commitment, CommitmentFactory
from ..storage import BlockchainDatabase
from ..validation.layers import StatelessValidation

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 50


def check_height(height: int) -> int:
    """Reject anything that is not a non-negative int."""
    if isinstance(height, bool) or not isinstance(height, int):
        raise TypeError(f"height must be an int, got {type(height).__name__}")
    if height < 0:
        raise ValueError(f"height must be non-negative, got {height}")
    return height


class HeaderIterState(Enum):
    """Lifecycle of a HeaderIter."""
    FILLING = "filling"      # buffer empty, heights remain
    DRAINING = "draining"    # buffer holds headers
    EXHAUSTED = "exhausted"  # every height produced
    ERRORED = "errored"      # a fetch failed; terminal


class HeaderIter(Iterator[BlockHeader]):
    """
    Single-pass iterator over the headers at heights 0..=height.

    Fetches chunk_size headers at a time. When a fetch fails the storage
    error is raised from __next__ once, and the iterator then stops for good
    even if heights remain.
    """

    def __init__(self, db: BlockchainDatabase, height: int, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self._db = db
        self._end = check_height(height) + 1
        self._chunk_size = chunk_size
        self._cursor = 0
        self._buffer: deque[BlockHeader] = deque()
        self._state = HeaderIterState.FILLING
        self.fetches = 0

    @property
    def state(self) -> HeaderIterState:
        return self._state

    @property
    def remaining(self) -> int:
        """Heights not yet fetched from storage."""
        return self._end - self._cursor

    def __iter__(self) -> "HeaderIter":
        return self

    def _fill(self) -> None:
        count = min(self._chunk_size, self.remaining)
        heights = list(range(self._cursor, self._cursor + count))
        self.fetches += 1
        headers = self._db.fetch_headers(heights)

        if len(headers) < count:
            raise ValueNotFoundError("BlockHeader", "height", heights[len(headers)])
        if len(headers) > count:
            raise ChainStorageError(f"fetch_headers returned {len(headers)} headers for {count} heights")
        for expected, header in zip(heights, headers):
            if header.height != expected:
                raise ChainStorageError(
                    f"fetch_headers returned height {header.height} where {expected} was requested"
                )

        logger.debug(f"Fetched headers {heights[0]}..={heights[-1]}")
        self._buffer.extend(headers)
        self._cursor += count

    def __next__(self) -> BlockHeader:
        if self._state is HeaderIterState.FILLING:
            if self.remaining == 0:
                self._state = HeaderIterState.EXHAUSTED
            else:
                try:
                    self._fill()
                except ChainStorageError:
                    self._state = HeaderIterState.ERRORED
                    self._buffer.clear()
                    raise
                self._state = HeaderIterState.DRAINING

        if self._state is HeaderIterState.DRAINING:
            header = self._buffer.popleft()
            if not self._buffer:
                self._state = HeaderIterState.FILLING if self.remaining else HeaderIterState.EXHAUSTED
            return header

        raise StopIteration

    def __repr__(self) -> str:
        return f"HeaderIter(next={self._cursor - len(self._buffer)}, end={self._end}, state={self._state.value})"


class ChainBalanceValidator(StatelessValidation[int]):
    """
    Checks the UTXO set balances with emission, kernels and offsets at a height.

    Holds only shared read-only collaborators, so one instance may be reused
    across runs and threads.
    """

    name = "chain_balance"

    def __init__(
        self,
        db: BlockchainDatabase,
        rules: ConsensusManager,
        factory: CommitmentFactory,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self.db = db
        self.rules = rules
        self.factory = factory
        self.chunk_size = chunk_size

    def validate(self, height: int) -> None:
        check_height(height)
        try:
            self._validate(height)
        except ValidationError:
            raise
        except ChainStorageError as e:
            logger.error(f"Chain balance check at height {height} aborted: {e}")
            raise ValidationError.custom_error(e) from e

    def _validate(self, height: int) -> None:
        total_offset = self.fetch_total_offset_commitment(height)
        emission = self.emission_commitment(height)
        kernel_excess = self.fetch_kernel_excess_sum()
        genesis = self.genesis_commitment_sum()
        utxo_sum = self.fetch_utxo_sum()

        expected = emission + genesis + kernel_excess + total_offset
        if utxo_sum != expected:
            logger.warning(f"UTXO set does not balance at height {height}")
            raise BalanceMismatchError(height)

        logger.debug(f"UTXO set balances at height {height}")

    def fetch_total_offset_commitment(self, height: int) -> Commitment:
        offset = BlindingFactor.default()
        count = 0
        for header in HeaderIter(self.db, height, self.chunk_size):
            offset = offset + header.total_kernel_offset
            count += 1
        logger.debug(f"Summed kernel offsets of {count} headers")
        return self.factory.commit(offset, 0)

    def emission_commitment(self, height: int) -> Commitment:
        value = self.rules.supply_at_block(height) - self.rules.genesis_coinbase_value_offset()
        logger.debug(f"Expected emission at height {height}: {value}")
        return self.factory.commit_value(value)

    def fetch_kernel_excess_sum(self) -> Commitment:
        kernels = self.db.fetch_all_kernels()
        logger.debug(f"Summing {len(kernels)} kernel excesses")
        return Commitment.sum(k.excess for k in kernels)

    def genesis_commitment_sum(self) -> Commitment:
        outputs = self.rules.genesis_block().outputs
        return Commitment.sum(o.commitment for o in outputs if not o.is_coinbase())

    def fetch_utxo_sum(self) -> Commitment:
        utxos = self.db.fetch_all_utxos()
        logger.debug(f"Summing {len(utxos)} UTXO commitments")
        return Commitment.sum(u.commitment for u in utxos)

    def __repr__(self) -> str:
        return f"ChainBalanceValidator(chunk_size={self.chunk_size})"

