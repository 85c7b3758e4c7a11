"""
Chain data model for horizon state validation.

This module provides:
- BlockHeader with declared MMR roots and total kernel offset
- TransactionOutput and TransactionKernel carrying Pedersen commitments
- Block, used for the genesis block and by the chain builder
- Blake2b hashing used for header hashes and MMR leaves
"""

import logging
import struct
from enum import IntFlag
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_serializer, field_validator

from .crypto import BlindingFactor, Commitment, hash_hex

logger = logging.getLogger(__name__)

# Previous hash of the genesis header
NULL_HASH = "00" * 32


class OutputFlags(IntFlag):
    """Output feature flags."""
    NONE = 0
    COINBASE_OUTPUT = 1


class KernelFlags(IntFlag):
    """Kernel feature flags."""
    NONE = 0
    COINBASE_KERNEL = 1


def _parse_commitment(v: Any) -> Any:
    if isinstance(v, str):
        return Commitment.from_hex(v)
    if isinstance(v, (bytes, bytearray)):
        return Commitment(bytes(v))
    return v


def _parse_blinding(v: Any) -> Any:
    if isinstance(v, str):
        return BlindingFactor.from_hex(v)
    if isinstance(v, (bytes, bytearray)):
        return BlindingFactor(bytes(v))
    return v


def _check_flags(v: IntFlag, known: IntFlag) -> IntFlag:
    if int(v) & ~int(known):
        raise ValueError(f"Unknown feature flags: {int(v):#x}")
    return v


class BlockHeader(BaseModel):
    """
    Block header.

    total_kernel_offset is the sum of the kernel offsets of every transaction
    in the block; output_mr and kernel_mr are the declared MMR roots after the
    block was applied.
    """

    version: int = Field(default=1, ge=0, lt=2**16)
    height: int = Field(ge=0, lt=2**64)
    prev_hash: str = NULL_HASH
    timestamp: int = Field(default=0, ge=0, lt=2**64)
    output_mr: str = ""
    kernel_mr: str = ""
    total_kernel_offset: BlindingFactor = Field(default_factory=BlindingFactor.default)
    nonce: int = Field(default=0, ge=0, lt=2**64)

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("prev_hash", "output_mr", "kernel_mr")
    @classmethod
    def validate_digest(cls, v: str, info: ValidationInfo) -> str:
        """Digests are 32-byte hex strings; MMR roots may also be empty."""
        if v == "" and info.field_name != "prev_hash":
            return v
        try:
            data = bytes.fromhex(v)
        except ValueError:
            raise ValueError(f"Not a hex digest: {v!r}") from None
        if len(data) != 32:
            raise ValueError(f"Digest must be 32 bytes, got {len(data)}")
        return v.lower()

    @field_serializer("total_kernel_offset")
    def serialize_offset(self, v: BlindingFactor, _info):
        """Serialize blinding factor to hex string."""
        return v.hex()

    @field_validator("total_kernel_offset", mode="before")
    @classmethod
    def validate_offset(cls, v: Any) -> Any:
        return _parse_blinding(v)

    def hash(self) -> str:
        """Blake2b-256 hash of the header fields."""
        return hash_hex(
            struct.pack(">HQ", self.version, self.height),
            bytes.fromhex(self.prev_hash),
            struct.pack(">Q", self.timestamp),
            bytes.fromhex(self.output_mr),
            bytes.fromhex(self.kernel_mr),
            self.total_kernel_offset.data,
            struct.pack(">Q", self.nonce),
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockHeader":
        return cls(**data)


class TransactionOutput(BaseModel):
    """An output committing to a hidden value."""

    features: OutputFlags = OutputFlags.NONE
    commitment: Commitment

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_serializer("commitment")
    def serialize_commitment(self, v: Commitment, _info):
        return v.hex()

    @field_validator("commitment", mode="before")
    @classmethod
    def validate_commitment(cls, v: Any) -> Any:
        return _parse_commitment(v)

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: OutputFlags) -> OutputFlags:
        return _check_flags(v, OutputFlags.COINBASE_OUTPUT)

    def is_coinbase(self) -> bool:
        return bool(self.features & OutputFlags.COINBASE_OUTPUT)

    def hash(self) -> str:
        """MMR leaf hash of this output."""
        return hash_hex(struct.pack(">B", int(self.features)), self.commitment.data)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionOutput":
        return cls(**data)


class TransactionKernel(BaseModel):
    """A transaction kernel; excess is the transaction's net blinding residual."""

    features: KernelFlags = KernelFlags.NONE
    fee: int = Field(default=0, ge=0, lt=2**64)
    lock_height: int = Field(default=0, ge=0, lt=2**64)
    excess: Commitment

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_serializer("excess")
    def serialize_excess(self, v: Commitment, _info):
        return v.hex()

    @field_validator("excess", mode="before")
    @classmethod
    def validate_excess(cls, v: Any) -> Any:
        return _parse_commitment(v)

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: KernelFlags) -> KernelFlags:
        return _check_flags(v, KernelFlags.COINBASE_KERNEL)

    def is_coinbase(self) -> bool:
        return bool(self.features & KernelFlags.COINBASE_KERNEL)

    def hash(self) -> str:
        """MMR leaf hash of this kernel."""
        return hash_hex(
            struct.pack(">BQQ", int(self.features), self.fee, self.lock_height),
            self.excess.data,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionKernel":
        return cls(**data)


class Block(BaseModel):
    """A full block: header plus aggregated body."""

    header: BlockHeader
    inputs: list[Commitment] = Field(default_factory=list)
    outputs: list[TransactionOutput] = Field(default_factory=list)
    kernels: list[TransactionKernel] = Field(default_factory=list)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_serializer("inputs")
    def serialize_inputs(self, v: list[Commitment], _info):
        return [c.hex() for c in v]

    @field_validator("inputs", mode="before")
    @classmethod
    def validate_inputs(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [_parse_commitment(c) for c in v]
        return v

    @property
    def height(self) -> int:
        return self.header.height

    def hash(self) -> str:
        return self.header.hash()

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Block":
        return cls(**data)
