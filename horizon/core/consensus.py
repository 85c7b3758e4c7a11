"""
Consensus rules consumed by horizon validation.

This module provides:
- EmissionSchedule: decaying block reward with a tail emission
- ConsensusConstants: per-network constants
- ConsensusManager: emission, constants and genesis block for a network
- ConsensusManagerBuilder: builds a ConsensusManager with overrides
"""

import logging
from enum import Enum
from itertools import islice
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .blockchain import Block
from .crypto import CommitmentFactory
from .genesis import create_genesis_block

logger = logging.getLogger(__name__)


class Network(Enum):
    """Known networks."""
    LOCALNET = "localnet"
    TESTNET = "testnet"


class EmissionSchedule(BaseModel):
    """
    Block reward schedule.

    The reward starts at initial_reward and after every block decreases by
    sum(reward >> shift for shift in decay). It never drops below tail_reward.
    """

    initial_reward: int = Field(ge=0)
    decay: tuple[int, ...] = ()
    tail_reward: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @field_validator("decay")
    @classmethod
    def validate_decay(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if any(shift <= 0 for shift in v):
            raise ValueError("decay shifts must be positive")
        return v

    def emission_values(self) -> Iterator[tuple[int, int, int]]:
        """Yield (height, block reward, cumulative supply) from height 0 onwards."""
        reward = self.initial_reward
        supply = 0
        height = 0
        while True:
            block_reward = max(reward, self.tail_reward)
            supply += block_reward
            yield height, block_reward, supply
            reward -= sum(reward >> shift for shift in self.decay)
            height += 1

    def _at(self, height: int) -> tuple[int, int, int]:
        if height < 0:
            raise ValueError(f"height must be non-negative, got {height}")
        return next(islice(self.emission_values(), height, None))

    def block_reward(self, height: int) -> int:
        return self._at(height)[1]

    def supply_at_block(self, height: int) -> int:
        """Total supply emitted by blocks 0..=height."""
        return self._at(height)[2]


class ConsensusConstants(BaseModel):
    """Constants of a network."""

    network: Network = Network.LOCALNET
    emission_initial: int = 10_000_000
    emission_decay: tuple[int, ...] = (10, 20)
    emission_tail: int = 100_000
    genesis_coinbase_value_offset: int = 2_500_000
    genesis_premine: tuple[int, ...] = (1_000_000,)
    median_timestamp_count: int = Field(default=11, gt=0)
    genesis_timestamp: int = 1_600_000_000
    target_block_interval: int = 120

    model_config = ConfigDict(frozen=True)

    @classmethod
    def localnet(cls) -> "ConsensusConstants":
        return cls(network=Network.LOCALNET)

    @classmethod
    def testnet(cls) -> "ConsensusConstants":
        return cls(
            network=Network.TESTNET,
            emission_initial=5_538_846_115,
            emission_decay=(22, 23, 24, 26, 27),
            emission_tail=5_000_000,
            genesis_coinbase_value_offset=5_538_846_115 - 1_000_000,
            genesis_premine=(),
        )

    @classmethod
    def for_network(cls, network: Network) -> "ConsensusConstants":
        if network is Network.TESTNET:
            return cls.testnet()
        return cls.localnet()

    def emission_schedule(self) -> EmissionSchedule:
        return EmissionSchedule(
            initial_reward=self.emission_initial,
            decay=self.emission_decay,
            tail_reward=self.emission_tail,
        )


class ConsensusManager:
    """
    Consensus rules for a network.

    Immutable once built; safe to share between validators and threads.
    """

    def __init__(self, constants: ConsensusConstants, genesis: Block):
        if genesis.height != 0:
            raise ValueError(f"genesis block must be at height 0, got {genesis.height}")
        self._constants = constants
        self._emission = constants.emission_schedule()
        self._genesis = genesis

    @classmethod
    def for_network(
        cls,
        network: Network,
        factory: Optional[CommitmentFactory] = None,
    ) -> "ConsensusManager":
        """Preset rules whose genesis block is derived deterministically from the network name."""
        return ConsensusManagerBuilder(network).build(factory)

    @property
    def network(self) -> Network:
        return self._constants.network

    def consensus_constants(self) -> ConsensusConstants:
        return self._constants

    def emission_schedule(self) -> EmissionSchedule:
        return self._emission

    def genesis_block(self) -> Block:
        return self._genesis

    def supply_at_block(self, height: int) -> int:
        return self._emission.supply_at_block(height)

    def genesis_coinbase_value_offset(self) -> int:
        return self._constants.genesis_coinbase_value_offset

    def __repr__(self) -> str:
        return f"ConsensusManager(network={self.network.value}, genesis={self._genesis.hash()[:16]}...)"


class ConsensusManagerBuilder:
    """Builds a ConsensusManager, defaulting to the network presets."""

    def __init__(self, network: Network = Network.LOCALNET):
        self._network = network
        self._constants: Optional[ConsensusConstants] = None
        self._genesis: Optional[Block] = None

    def with_consensus_constants(self, constants: ConsensusConstants) -> "ConsensusManagerBuilder":
        self._constants = constants
        return self

    def with_block(self, genesis: Block) -> "ConsensusManagerBuilder":
        self._genesis = genesis
        return self

    def build(self, factory: Optional[CommitmentFactory] = None) -> ConsensusManager:
        constants = self._constants or ConsensusConstants.for_network(self._network)
        genesis = self._genesis
        if genesis is None:
            genesis = create_genesis_block(constants, factory or CommitmentFactory())
        return ConsensusManager(constants, genesis)
