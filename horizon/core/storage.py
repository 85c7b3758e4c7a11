"""
Blockchain storage for horizon validation.

This module provides:
- BlockchainBackend: the read contract the validators rely on
- MemoryBackend: in-memory backend holding a (possibly pruned) chain state
- BlockchainDatabase: shared, lock-guarded handle over a backend

The UTXO MMR is tracked per leaf: every output ever inserted keeps its leaf
index, and spending only marks the leaf as deleted.
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from ..exceptions import ChainStorageError, ValueNotFoundError
from .blockchain import Block, BlockHeader, TransactionKernel, TransactionOutput
from .crypto import Commitment
from .mmr import calculate_pruned_mmr_root

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MmrTree(Enum):
    """MMR trees tracked by the backend."""
    UTXO = "utxo"
    KERNEL = "kernel"


class BlockchainBackend(ABC):
    """Read contract of a blockchain storage backend."""

    @abstractmethod
    def fetch_headers(self, heights: list[int]) -> list[BlockHeader]:
        """Fetch headers for the given heights, in the same order."""

    @abstractmethod
    def fetch_header(self, height: int) -> BlockHeader:
        """Fetch a single header."""

    @abstractmethod
    def fetch_tip_header(self) -> BlockHeader:
        """Fetch the header with the greatest height."""

    @abstractmethod
    def fetch_all_utxos(self) -> list[TransactionOutput]:
        """Fetch every unspent output."""

    @abstractmethod
    def fetch_all_kernels(self) -> list[TransactionKernel]:
        """Fetch every kernel."""

    @abstractmethod
    def fetch_mmr_node_count(self, tree: MmrTree, height: int) -> int:
        """Number of leaf nodes in tree once the block at height was applied."""

    @abstractmethod
    def fetch_mmr_nodes(
        self,
        tree: MmrTree,
        start: int,
        count: int,
        hist_height: Optional[int] = None,
    ) -> list[tuple[str, bool]]:
        """
        Fetch (leaf hash, deleted) pairs for leaves [start, start + count).

        With hist_height, a leaf only counts as deleted if it was deleted at
        or before that height.
        """

    @abstractmethod
    def calculate_mmr_root(self, tree: MmrTree, additions: list[str], deletions: list[int]) -> str:
        """Calculate the root of tree from retained leaf hashes and deleted leaf indices."""


class OutputEntry(BaseModel):
    """An output leaf of the UTXO MMR."""

    output: TransactionOutput
    height: int
    spent_height: Optional[int] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def is_spent(self, hist_height: Optional[int] = None) -> bool:
        if self.spent_height is None:
            return False
        return hist_height is None or self.spent_height <= hist_height


class KernelEntry(BaseModel):
    """A kernel leaf of the kernel MMR."""

    kernel: TransactionKernel
    height: int

    model_config = ConfigDict(arbitrary_types_allowed=True)


def _check_leaf_order(entries: list[Any], height: int) -> None:
    # Leaf counts per height assume leaves are appended in height order
    if entries and height < entries[-1].height:
        raise ChainStorageError(
            f"Leaf at height {height} inserted after a leaf at height {entries[-1].height}"
        )


class MemoryBackend(BlockchainBackend):
    """
    In-memory blockchain backend.

    Not thread-safe on its own; share it through BlockchainDatabase.
    """

    def __init__(self) -> None:
        self._headers: dict[int, BlockHeader] = {}
        self._outputs: list[OutputEntry] = []
        self._output_index: dict[Commitment, int] = {}
        self._kernels: list[KernelEntry] = []

    # Write API

    def insert_header(self, header: BlockHeader) -> None:
        self._headers[header.height] = header

    def insert_output(self, output: TransactionOutput, height: int) -> int:
        """Append an output leaf, returning its leaf index."""
        _check_leaf_order(self._outputs, height)
        if output.commitment in self._output_index:
            raise ChainStorageError(f"Duplicate output commitment {output.commitment!r}")
        self._outputs.append(OutputEntry(output=output, height=height))
        index = len(self._outputs) - 1
        self._output_index[output.commitment] = index
        return index

    def spend_output(self, commitment: Commitment, height: int) -> None:
        index = self._output_index.get(commitment)
        if index is None:
            raise ValueNotFoundError("TransactionOutput", "commitment", commitment.hex())
        entry = self._outputs[index]
        if entry.spent_height is not None:
            raise ChainStorageError(f"Output {commitment!r} already spent at height {entry.spent_height}")
        entry.spent_height = height

    def insert_kernel(self, kernel: TransactionKernel, height: int) -> int:
        _check_leaf_order(self._kernels, height)
        self._kernels.append(KernelEntry(kernel=kernel, height=height))
        return len(self._kernels) - 1

    def apply_block(self, block: Block) -> None:
        """Write a block's body and header."""
        height = block.height
        for output in block.outputs:
            self.insert_output(output, height)
        for commitment in block.inputs:
            self.spend_output(commitment, height)
        for kernel in block.kernels:
            self.insert_kernel(kernel, height)
        self.insert_header(block.header)

    def restore_output(self, entry: OutputEntry) -> None:
        """Append an output leaf exactly as stored, including its spent height."""
        self.insert_output(entry.output, entry.height)
        self._outputs[-1].spent_height = entry.spent_height

    # Read API

    def fetch_headers(self, heights: list[int]) -> list[BlockHeader]:
        headers = []
        for height in heights:
            header = self._headers.get(height)
            if header is None:
                raise ValueNotFoundError("BlockHeader", "height", height)
            headers.append(header)
        return headers

    def fetch_header(self, height: int) -> BlockHeader:
        return self.fetch_headers([height])[0]

    def fetch_tip_header(self) -> BlockHeader:
        if not self._headers:
            raise ValueNotFoundError("BlockHeader", "height", "tip")
        return self._headers[max(self._headers)]

    def fetch_all_utxos(self) -> list[TransactionOutput]:
        return [entry.output for entry in self._outputs if not entry.is_spent()]

    def fetch_all_kernels(self) -> list[TransactionKernel]:
        return [entry.kernel for entry in self._kernels]

    def fetch_mmr_node_count(self, tree: MmrTree, height: int) -> int:
        entries = self._outputs if tree is MmrTree.UTXO else self._kernels
        return sum(1 for entry in entries if entry.height <= height)

    def fetch_mmr_nodes(
        self,
        tree: MmrTree,
        start: int,
        count: int,
        hist_height: Optional[int] = None,
    ) -> list[tuple[str, bool]]:
        if tree is MmrTree.UTXO:
            size = len(self._outputs)
        else:
            size = len(self._kernels)

        if start < 0 or count < 0 or start + count > size:
            raise ValueNotFoundError(f"{tree.value} MMR node", "range", f"[{start}, {start + count})")

        if tree is MmrTree.UTXO:
            return [
                (entry.output.hash(), entry.is_spent(hist_height))
                for entry in self._outputs[start:start + count]
            ]
        return [(entry.kernel.hash(), False) for entry in self._kernels[start:start + count]]

    def calculate_mmr_root(self, tree: MmrTree, additions: list[str], deletions: list[int]) -> str:
        if tree is MmrTree.KERNEL and deletions:
            raise ChainStorageError("Kernel MMR does not support deletions")
        return calculate_pruned_mmr_root(additions, deletions)

    # Helpers

    def mmr_root_at(self, tree: MmrTree, height: int) -> str:
        """Root of tree as of height, as a header at that height declares it."""
        count = self.fetch_mmr_node_count(tree, height)
        additions: list[str] = []
        deletions: list[int] = []
        for index, (leaf_hash, deleted) in enumerate(self.fetch_mmr_nodes(tree, 0, count, height)):
            if deleted:
                deletions.append(index)
            else:
                additions.append(leaf_hash)
        return self.calculate_mmr_root(tree, additions, deletions)

    @property
    def headers(self) -> list[BlockHeader]:
        return [self._headers[h] for h in sorted(self._headers)]

    @property
    def output_entries(self) -> list[OutputEntry]:
        return list(self._outputs)

    @property
    def kernel_entries(self) -> list[KernelEntry]:
        return list(self._kernels)

    def __repr__(self) -> str:
        return (
            f"MemoryBackend(headers={len(self._headers)}, outputs={len(self._outputs)}, "
            f"kernels={len(self._kernels)})"
        )


class BlockchainDatabase:
    """
    Shared handle over a blockchain backend.

    Reads and writes are serialized with a re-entrant lock, and any backend
    failure surfaces as ChainStorageError.
    """

    def __init__(self, backend: BlockchainBackend):
        self._backend = backend
        self._lock = threading.RLock()

    @property
    def backend(self) -> BlockchainBackend:
        return self._backend

    def _access(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        with self._lock:
            try:
                return func(*args)
            except ChainStorageError:
                raise
            except Exception as e:
                logger.error(f"Storage backend failed during {operation}: {e}")
                raise ChainStorageError(f"{operation} failed: {e}") from e

    def fetch_headers(self, heights: list[int]) -> list[BlockHeader]:
        return self._access("fetch_headers", self._backend.fetch_headers, list(heights))

    def fetch_header(self, height: int) -> BlockHeader:
        return self._access("fetch_header", self._backend.fetch_header, height)

    def fetch_tip_header(self) -> BlockHeader:
        return self._access("fetch_tip_header", self._backend.fetch_tip_header)

    def fetch_all_utxos(self) -> list[TransactionOutput]:
        return self._access("fetch_all_utxos", self._backend.fetch_all_utxos)

    def fetch_all_kernels(self) -> list[TransactionKernel]:
        return self._access("fetch_all_kernels", self._backend.fetch_all_kernels)

    def fetch_mmr_node_count(self, tree: MmrTree, height: int) -> int:
        return self._access("fetch_mmr_node_count", self._backend.fetch_mmr_node_count, tree, height)

    def fetch_mmr_nodes(
        self,
        tree: MmrTree,
        start: int,
        count: int,
        hist_height: Optional[int] = None,
    ) -> list[tuple[str, bool]]:
        return self._access(
            "fetch_mmr_nodes", self._backend.fetch_mmr_nodes, tree, start, count, hist_height
        )

    def calculate_mmr_root(self, tree: MmrTree, additions: list[str], deletions: list[int]) -> str:
        return self._access(
            "calculate_mmr_root", self._backend.calculate_mmr_root, tree, additions, deletions
        )

    def apply_block(self, block: Block) -> None:
        apply = getattr(self._backend, "apply_block", None)
        if apply is None:
            raise ChainStorageError(f"{type(self._backend).__name__} is read-only")
        self._access("apply_block", apply, block)

    def __repr__(self) -> str:
        return f"BlockchainDatabase({self._backend!r})"
