"""Shared fixtures for horizon tests."""

import pytest

from horizon.core.builder import ChainBuilder
from horizon.core.consensus import ConsensusManager, Network
from horizon.core.crypto import CommitmentFactory
from horizon.core.storage import BlockchainDatabase

HORIZON_ENV_VARS = [
    "HORIZON_NETWORK",
    "HORIZON_HEADER_CHUNK_SIZE",
    "HORIZON_CHECK_MMR_ROOTS",
    "HORIZON_LOG_LEVEL",
    "HORIZON_LOG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep HORIZON_* variables of the host out of the tests."""
    for var in HORIZON_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(scope="session")
def factory():
    return CommitmentFactory()


@pytest.fixture(scope="session")
def rules(factory):
    return ConsensusManager.for_network(Network.LOCALNET, factory)


@pytest.fixture
def builder(rules, factory):
    """A balanced localnet chain with 6 blocks after genesis, spending as it goes."""
    builder = ChainBuilder(rules, factory, seed=b"tests")
    builder.add_blocks(2)
    builder.add_blocks(4, spend=1)
    return builder


@pytest.fixture
def backend(builder):
    return builder.backend


@pytest.fixture
def db(backend):
    return BlockchainDatabase(backend)
