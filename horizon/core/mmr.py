"""
Merkle Mountain Range.

An append-only Merkle structure made of perfect binary trees ("mountains").
The root is obtained by bagging the mountain peaks from right to left.

The pruned root used for UTXO and kernel trees commits to the leaf hashes of
the retained (unspent) leaves plus the sorted set of deleted leaf indices, so
a pruned node can recompute it without keeping spent leaves around.
"""

import struct
from typing import Iterable

from .crypto import hash_data

EMPTY_ROOT = hash_data(b"")


def _hash_pair(left: bytes, right: bytes) -> bytes:
    return hash_data(left, right)


class MerkleMountainRange:
    """
    Append-only MMR over 32-byte leaf hashes.

    Only the peaks are kept, so memory is O(log n) in the number of leaves.
    """

    def __init__(self, leaves: Iterable[bytes] = ()):
        # (mountain height, peak hash), left to right
        self._peaks: list[tuple[int, bytes]] = []
        self._leaf_count = 0
        for leaf in leaves:
            self.push(leaf)

    @property
    def leaf_count(self) -> int:
        return self._leaf_count

    @property
    def size(self) -> int:
        """Total number of nodes (leaves and parents)."""
        return 2 * self._leaf_count - bin(self._leaf_count).count("1")

    @property
    def peaks(self) -> list[bytes]:
        return [peak for _, peak in self._peaks]

    def push(self, leaf_hash: bytes) -> int:
        """Append a leaf, returning its leaf index."""
        if len(leaf_hash) != 32:
            raise ValueError(f"MMR leaf must be 32 bytes, got {len(leaf_hash)}")

        self._peaks.append((0, leaf_hash))
        while len(self._peaks) >= 2 and self._peaks[-1][0] == self._peaks[-2][0]:
            height, right = self._peaks.pop()
            _, left = self._peaks.pop()
            self._peaks.append((height + 1, _hash_pair(left, right)))

        self._leaf_count += 1
        return self._leaf_count - 1

    def root(self) -> bytes:
        """Bag the peaks right to left."""
        if not self._peaks:
            return EMPTY_ROOT

        peaks = self.peaks
        root = peaks[-1]
        for peak in reversed(peaks[:-1]):
            root = _hash_pair(peak, root)
        return hash_data(struct.pack(">Q", self._leaf_count), root)


def calculate_pruned_mmr_root(additions: list[str], deletions: list[int]) -> str:
    """
    Calculate the pruned MMR root.

    Args:
        additions: Hex leaf hashes of the retained leaves, in leaf order
        deletions: Leaf indices of deleted leaves

    Returns:
        Root as hex string
    """
    mmr = MerkleMountainRange(bytes.fromhex(leaf) for leaf in additions)
    deleted = sorted(set(deletions))
    parts = [mmr.root(), struct.pack(">Q", len(deleted))]
    parts.extend(struct.pack(">Q", index) for index in deleted)
    return hash_data(*parts).hex()
