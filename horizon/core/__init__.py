"""
Core chain model, storage, consensus rules and horizon validators.
"""

from .crypto import (
    BlindingFactor,
    Commitment,
    CommitmentFactory,
    PrivateKey,
    hash_data,
    hash_hex,
)
from .blockchain import (
    NULL_HASH,
    Block,
    BlockHeader,
    KernelFlags,
    OutputFlags,
    TransactionKernel,
    TransactionOutput,
)
from .mmr import EMPTY_ROOT, MerkleMountainRange, calculate_pruned_mmr_root
from .storage import (
    BlockchainBackend,
    BlockchainDatabase,
    KernelEntry,
    MemoryBackend,
    MmrTree,
    OutputEntry,
)
from .consensus import (
    ConsensusConstants,
    ConsensusManager,
    ConsensusManagerBuilder,
    EmissionSchedule,
    Network,
)
from .genesis import create_genesis_block
from .builder import ChainBuilder, SpendableOutput
from .serialization import dump_snapshot, load_snapshot
from .validation import (
    ChainedValidator,
    StatelessValidation,
    Validation,
    ValidationEngine,
    ValidationFailure,
    ValidationReport,
    ValidationResult,
    generate_report,
)
from .horizon_sync import (
    DEFAULT_CHUNK_SIZE,
    ChainBalanceValidator,
    HeaderIter,
    HeaderIterState,
    HorizonHeadersValidator,
    HorizonSyncValidators,
    MmrRootsValidator,
)

__all__ = [
    # Crypto
    "BlindingFactor",
    "Commitment",
    "CommitmentFactory",
    "PrivateKey",
    "hash_data",
    "hash_hex",
    # Chain model
    "NULL_HASH",
    "Block",
    "BlockHeader",
    "KernelFlags",
    "OutputFlags",
    "TransactionKernel",
    "TransactionOutput",
    # MMR
    "EMPTY_ROOT",
    "MerkleMountainRange",
    "calculate_pruned_mmr_root",
    # Storage
    "BlockchainBackend",
    "BlockchainDatabase",
    "KernelEntry",
    "MemoryBackend",
    "MmrTree",
    "OutputEntry",
    # Consensus
    "ConsensusConstants",
    "ConsensusManager",
    "ConsensusManagerBuilder",
    "EmissionSchedule",
    "Network",
    "create_genesis_block",
    # Builder
    "ChainBuilder",
    "SpendableOutput",
    # Serialization
    "dump_snapshot",
    "load_snapshot",
    # Validation
    "StatelessValidation",
    "Validation",
    "ChainedValidator",
    "ValidationEngine",
    "ValidationFailure",
    "ValidationResult",
    "ValidationReport",
    "generate_report",
    # Horizon sync
    "DEFAULT_CHUNK_SIZE",
    "HorizonSyncValidators",
    "ChainBalanceValidator",
    "MmrRootsValidator",
    "HorizonHeadersValidator",
    "HeaderIter",
    "HeaderIterState",
]
