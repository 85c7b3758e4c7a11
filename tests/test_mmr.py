"""
Tests for the Merkle Mountain Range.
"""

import pytest

from horizon.core.crypto import hash_data
from horizon.core.mmr import EMPTY_ROOT, MerkleMountainRange, calculate_pruned_mmr_root


def leaf(i: int) -> bytes:
    return hash_data(f"leaf-{i}".encode())


class TestMerkleMountainRange:
    """Tests for MerkleMountainRange."""

    def test_empty(self):
        """Test the empty MMR root."""
        mmr = MerkleMountainRange()

        assert mmr.leaf_count == 0
        assert mmr.size == 0
        assert mmr.root() == EMPTY_ROOT == hash_data(b"")

    @pytest.mark.parametrize("leaves,size,peaks", [
        (1, 1, 1),
        (2, 3, 1),
        (3, 4, 2),
        (4, 7, 1),
        (7, 11, 3),
        (8, 15, 1),
    ])
    def test_size_and_peaks(self, leaves, size, peaks):
        """Test node count and number of mountains."""
        mmr = MerkleMountainRange(leaf(i) for i in range(leaves))

        assert mmr.leaf_count == leaves
        assert mmr.size == size
        assert len(mmr.peaks) == peaks

    def test_perfect_tree_peak(self):
        """Test four leaves merge into a single mountain."""
        a, b, c, d = (leaf(i) for i in range(4))
        mmr = MerkleMountainRange([a, b, c, d])

        assert mmr.peaks == [hash_data(hash_data(a, b), hash_data(c, d))]

    def test_push_returns_index(self):
        """Test push returns the leaf index."""
        mmr = MerkleMountainRange()
        assert [mmr.push(leaf(i)) for i in range(3)] == [0, 1, 2]

    def test_push_rejects_bad_leaf(self):
        """Test leaves must be 32-byte hashes."""
        with pytest.raises(ValueError):
            MerkleMountainRange().push(b"short")

    def test_root_deterministic(self):
        """Test the root depends on leaves and their order."""
        leaves = [leaf(i) for i in range(5)]

        assert MerkleMountainRange(leaves).root() == MerkleMountainRange(leaves).root()
        assert MerkleMountainRange(leaves).root() != MerkleMountainRange(reversed(leaves)).root()
        assert MerkleMountainRange(leaves).root() != MerkleMountainRange(leaves[:4]).root()


class TestPrunedRoot:
    """Tests for calculate_pruned_mmr_root."""

    def test_deterministic(self):
        """Test the same inputs give the same root."""
        additions = [leaf(i).hex() for i in range(3)]
        assert calculate_pruned_mmr_root(additions, [3]) == calculate_pruned_mmr_root(additions, [3])

    def test_sensitive_to_deletions(self):
        """Test deleting a leaf changes the root."""
        additions = [leaf(i).hex() for i in range(3)]

        assert calculate_pruned_mmr_root(additions, []) != calculate_pruned_mmr_root(additions, [3])
        assert calculate_pruned_mmr_root(additions, [3]) != calculate_pruned_mmr_root(additions, [4])

    def test_deletion_order_irrelevant(self):
        """Test deletions are treated as a set."""
        additions = [leaf(0).hex()]
        assert calculate_pruned_mmr_root(additions, [2, 1]) == calculate_pruned_mmr_root(additions, [1, 2])

    def test_sensitive_to_additions(self):
        """Test changing a retained leaf changes the root."""
        assert calculate_pruned_mmr_root([leaf(0).hex()], []) != calculate_pruned_mmr_root([leaf(1).hex()], [])

    def test_empty(self):
        """Test the empty pruned root is a 32-byte hex digest."""
        assert len(calculate_pruned_mmr_root([], [])) == 64
