"""
Tests for consensus rules, genesis construction and the chain builder.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from horizon.core.blockchain import NULL_HASH, Block, BlockHeader
from horizon.core.builder import ChainBuilder
from horizon.core.consensus import (
    ConsensusConstants,
    ConsensusManager,
    ConsensusManagerBuilder,
    EmissionSchedule,
    Network,
)
from horizon.core.genesis import create_genesis_block
from horizon.core.storage import MmrTree


class TestEmissionSchedule:
    """Tests for EmissionSchedule."""

    def test_supply_is_cumulative(self):
        """Test supply_at_block sums the rewards of blocks 0..=h."""
        schedule = EmissionSchedule(initial_reward=1000, decay=(1,), tail_reward=10)
        rewards = [schedule.block_reward(h) for h in range(10)]

        assert schedule.supply_at_block(0) == 1000
        assert schedule.supply_at_block(9) == sum(rewards)

    def test_reward_decays_to_tail(self):
        """Test rewards never increase and floor at the tail."""
        schedule = EmissionSchedule(initial_reward=1000, decay=(1,), tail_reward=10)
        rewards = [schedule.block_reward(h) for h in range(30)]

        assert rewards[:4] == [1000, 500, 250, 125]
        assert all(a >= b for a, b in zip(rewards, rewards[1:]))
        assert rewards[-1] == 10
        assert min(rewards) == 10

    def test_no_decay(self):
        """Test a flat schedule."""
        schedule = EmissionSchedule(initial_reward=100)
        assert schedule.supply_at_block(4) == 500

    def test_emission_values(self):
        """Test the generator yields (height, reward, supply)."""
        values = EmissionSchedule(initial_reward=100).emission_values()
        assert [next(values) for _ in range(2)] == [(0, 100, 100), (1, 100, 200)]

    def test_negative_height(self):
        """Test negative heights are rejected."""
        with pytest.raises(ValueError):
            EmissionSchedule(initial_reward=1).supply_at_block(-1)

    def test_invalid_decay(self):
        """Test decay shifts must be positive."""
        with pytest.raises(PydanticValidationError):
            EmissionSchedule(initial_reward=1, decay=(0,))


class TestConsensusManager:
    """Tests for ConsensusManager and its builder."""

    def test_localnet_preset(self, rules):
        """Test the localnet rules."""
        constants = rules.consensus_constants()

        assert rules.network is Network.LOCALNET
        assert rules.genesis_block().height == 0
        assert rules.genesis_coinbase_value_offset() == constants.genesis_coinbase_value_offset
        assert rules.supply_at_block(0) == constants.emission_initial

    def test_genesis_deterministic(self, factory):
        """Test presets always derive the same genesis block."""
        a = ConsensusManager.for_network(Network.LOCALNET, factory)
        b = ConsensusManager.for_network(Network.LOCALNET, factory)
        c = ConsensusManager.for_network(Network.TESTNET, factory)

        assert a.genesis_block().hash() == b.genesis_block().hash()
        assert a.genesis_block().hash() != c.genesis_block().hash()

    def test_genesis_outputs(self, rules, factory):
        """Test the localnet genesis holds a coinbase and the pre-mine."""
        outputs = rules.genesis_block().outputs

        assert [o.is_coinbase() for o in outputs] == [True, False]
        assert rules.genesis_block().header.prev_hash == NULL_HASH

    def test_testnet_has_no_premine(self, factory):
        """Test the testnet genesis holds only the coinbase."""
        rules = ConsensusManager.for_network(Network.TESTNET, factory)
        assert [o.is_coinbase() for o in rules.genesis_block().outputs] == [True]

    def test_builder_overrides(self, factory):
        """Test custom constants and genesis block."""
        constants = ConsensusConstants(
            emission_initial=100, emission_decay=(), emission_tail=0, genesis_coinbase_value_offset=100,
        )
        genesis = Block(header=BlockHeader(height=0))
        rules = (
            ConsensusManagerBuilder()
            .with_consensus_constants(constants)
            .with_block(genesis)
            .build(factory)
        )

        assert rules.consensus_constants() is constants
        assert rules.genesis_block() is genesis
        assert rules.supply_at_block(2) == 300

    def test_rejects_non_genesis_block(self):
        """Test the genesis block must be at height 0."""
        with pytest.raises(ValueError):
            ConsensusManager(ConsensusConstants(), Block(header=BlockHeader(height=1)))

    def test_offset_exceeding_supply(self, factory):
        """Test a genesis coinbase cannot be negative."""
        constants = ConsensusConstants(emission_initial=10, genesis_coinbase_value_offset=11)
        with pytest.raises(ValueError):
            create_genesis_block(constants, factory)


class TestChainBuilder:
    """Tests for ChainBuilder."""

    def test_blocks_link(self, builder):
        """Test every header links to its predecessor."""
        headers = builder.backend.headers

        assert [h.height for h in headers] == list(range(7))
        for prev, header in zip(headers, headers[1:]):
            assert header.prev_hash == prev.hash()
            assert header.timestamp > prev.timestamp

    def test_declared_roots(self, builder):
        """Test headers declare the MMR roots as of their height."""
        backend = builder.backend
        for header in backend.headers[1:]:
            assert header.output_mr == backend.mmr_root_at(MmrTree.UTXO, header.height)
            assert header.kernel_mr == backend.mmr_root_at(MmrTree.KERNEL, header.height)

    def test_spending(self, builder):
        """Test spent outputs leave the UTXO set."""
        block = builder.blocks[-1]
        utxos = {o.commitment for o in builder.backend.fetch_all_utxos()}

        assert len(block.inputs) == 1
        assert block.inputs[0] not in utxos
        assert all(o.commitment in utxos for o in block.outputs)

    def test_fee_too_large(self, rules, factory):
        """Test inputs must cover the fee."""
        builder = ChainBuilder(rules, factory, fee=10**15)
        builder.add_block()

        with pytest.raises(ValueError):
            builder.add_block(spend=1)

    def test_deterministic(self, rules, factory):
        """Test the same seed builds the same chain."""
        a = ChainBuilder(rules, factory, seed=b"same")
        b = ChainBuilder(rules, factory, seed=b"same")
        a.add_blocks(2, spend=1)
        b.add_blocks(2, spend=1)

        assert a.tip.hash() == b.tip.hash()
