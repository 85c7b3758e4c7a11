"""
Horizon Sync - final-state validation of pruned (horizon) chain states.

A node that syncs headers and the current UTXO set, without replaying
history, uses this package to prove the state it received is consistent with
the chain's emission rules and declared headers.

Quick Start:
    from horizon import (
        BlockchainDatabase, CommitmentFactory, ConsensusManager,
        HorizonSyncValidators, Network, load_snapshot,
    )

    factory = CommitmentFactory()
    rules = ConsensusManager.for_network(Network.LOCALNET, factory)
    db = BlockchainDatabase(load_snapshot("chain.json"))

    validators = HorizonSyncValidators.full_consensus(db, rules, factory)
    validators.final_state.validate(db.fetch_tip_header().height)

Features:
    - Homomorphic balance check of the UTXO set against emission and kernels
    - Bounded-memory streaming of block headers
    - Optional recomputation of UTXO and kernel MMR roots
    - Structured validation results and audit reports
"""

__version__ = "0.1.0"

from .config import HorizonConfig, configure_logging
from .core import (
    BlindingFactor,
    BlockchainDatabase,
    ChainBalanceValidator,
    ChainBuilder,
    Commitment,
    CommitmentFactory,
    ConsensusManager,
    ConsensusManagerBuilder,
    HeaderIter,
    HorizonHeadersValidator,
    HorizonSyncValidators,
    MemoryBackend,
    MmrRootsValidator,
    Network,
    ValidationEngine,
    dump_snapshot,
    load_snapshot,
)
from .exceptions import (
    BalanceMismatchError,
    ChainStorageError,
    ConfigurationError,
    HorizonError,
    InvalidKernelMrError,
    InvalidOutputMrError,
    SnapshotError,
    ValidationError,
    ValidationErrorCode,
    ValueNotFoundError,
)

__all__ = [
    "__version__",
    # Config
    "HorizonConfig",
    "configure_logging",
    # Core
    "BlindingFactor",
    "Commitment",
    "CommitmentFactory",
    "BlockchainDatabase",
    "MemoryBackend",
    "ConsensusManager",
    "ConsensusManagerBuilder",
    "Network",
    "ChainBuilder",
    "HorizonSyncValidators",
    "ChainBalanceValidator",
    "MmrRootsValidator",
    "HorizonHeadersValidator",
    "HeaderIter",
    "ValidationEngine",
    "dump_snapshot",
    "load_snapshot",
    # Exceptions
    "HorizonError",
    "ChainStorageError",
    "ValueNotFoundError",
    "ValidationError",
    "ValidationErrorCode",
    "BalanceMismatchError",
    "InvalidOutputMrError",
    "InvalidKernelMrError",
    "ConfigurationError",
    "SnapshotError",
]
