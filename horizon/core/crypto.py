"""
Pedersen commitment primitives over Ed25519.

This module provides:
- BlindingFactor: scalar mod L used as commitment blinding
- Commitment: compressed curve point supporting homomorphic addition
- CommitmentFactory: C = k*G + v*H with a nothing-up-my-sleeve H
- Hash utilities used for MMR leaves and header hashes

All curve and scalar arithmetic is delegated to libsodium through PyNaCl.
"""

import hashlib
import logging
import struct
from typing import Iterable, Optional

import nacl.bindings as sodium
import nacl.utils
from nacl.exceptions import RuntimeError as SodiumError

logger = logging.getLogger(__name__)

# Ed25519 group order (L)
CURVE_ORDER = 2**252 + 27742317777372353535851937790883648493

SCALAR_SIZE = 32
POINT_SIZE = 32

# Compressed encoding of the neutral element (x=0, y=1)
IDENTITY_POINT = b"\x01" + b"\x00" * 31
ZERO_SCALAR = b"\x00" * SCALAR_SIZE

# Seed for the value generator H
H_GENERATOR_SEED = b"horizon/pedersen/H/v1"
DOMAIN_HASH_TO_POINT = b"horizon/hash-to-point/v1"


def hash_data(*parts: bytes, digest_size: int = 32) -> bytes:
    """Blake2b over the concatenation of parts."""
    h = hashlib.blake2b(digest_size=digest_size)
    for part in parts:
        h.update(part)
    return h.digest()


def hash_hex(*parts: bytes) -> str:
    """Blake2b-256 over parts as hex string."""
    return hash_data(*parts).hex()


class BlindingFactor:
    """
    A blinding factor (private scalar) reduced mod L.

    BlindingFactor() is the additive identity.
    """

    __slots__ = ("_data",)

    def __init__(self, data: bytes = ZERO_SCALAR):
        if len(data) != SCALAR_SIZE:
            raise ValueError(f"Blinding factor must be {SCALAR_SIZE} bytes, got {len(data)}")
        if int.from_bytes(data, "little") >= CURVE_ORDER:
            raise ValueError("Blinding factor is not reduced mod L")
        self._data = bytes(data)

    @classmethod
    def default(cls) -> "BlindingFactor":
        return cls()

    @classmethod
    def from_int(cls, value: int) -> "BlindingFactor":
        return cls((value % CURVE_ORDER).to_bytes(SCALAR_SIZE, "little"))

    @classmethod
    def from_seed(cls, seed: bytes) -> "BlindingFactor":
        """Derive a scalar deterministically from arbitrary bytes."""
        return cls(sodium.crypto_core_ed25519_scalar_reduce(hash_data(seed, digest_size=64)))

    @classmethod
    def random(cls) -> "BlindingFactor":
        return cls(sodium.crypto_core_ed25519_scalar_reduce(nacl.utils.random(64)))

    @classmethod
    def from_hex(cls, value: str) -> "BlindingFactor":
        return cls(bytes.fromhex(value))

    @property
    def data(self) -> bytes:
        return self._data

    def hex(self) -> str:
        return self._data.hex()

    def is_zero(self) -> bool:
        return self._data == ZERO_SCALAR

    def __add__(self, other: "BlindingFactor") -> "BlindingFactor":
        if not isinstance(other, BlindingFactor):
            return NotImplemented
        return BlindingFactor(sodium.crypto_core_ed25519_scalar_add(self._data, other._data))

    def __sub__(self, other: "BlindingFactor") -> "BlindingFactor":
        if not isinstance(other, BlindingFactor):
            return NotImplemented
        return BlindingFactor(sodium.crypto_core_ed25519_scalar_sub(self._data, other._data))

    def __neg__(self) -> "BlindingFactor":
        return BlindingFactor(sodium.crypto_core_ed25519_scalar_negate(self._data))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlindingFactor):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(("BlindingFactor", self._data))

    def __repr__(self) -> str:
        # Never print secret material
        return "BlindingFactor(...)"


PrivateKey = BlindingFactor


class Commitment:
    """
    A Pedersen commitment, stored as a compressed Ed25519 point.

    Commitments add homomorphically; Commitment.zero() is the group identity.
    """

    __slots__ = ("_data",)

    def __init__(self, data: bytes):
        if len(data) != POINT_SIZE:
            raise ValueError(f"Commitment must be {POINT_SIZE} bytes, got {len(data)}")
        data = bytes(data)
        if data != IDENTITY_POINT and not sodium.crypto_core_ed25519_is_valid_point(data):
            raise ValueError("Commitment is not a valid curve point")
        self._data = data

    @classmethod
    def zero(cls) -> "Commitment":
        return cls(IDENTITY_POINT)

    @classmethod
    def from_hex(cls, value: str) -> "Commitment":
        return cls(bytes.fromhex(value))

    @classmethod
    def sum(cls, commitments: Iterable["Commitment"]) -> "Commitment":
        """Homomorphic sum of an iterable of commitments."""
        total = cls.zero()
        for commitment in commitments:
            total = total + commitment
        return total

    @property
    def data(self) -> bytes:
        return self._data

    def hex(self) -> str:
        return self._data.hex()

    def is_zero(self) -> bool:
        return self._data == IDENTITY_POINT

    def __add__(self, other: "Commitment") -> "Commitment":
        if not isinstance(other, Commitment):
            return NotImplemented
        if self.is_zero():
            return other
        if other.is_zero():
            return self
        return Commitment(sodium.crypto_core_ed25519_add(self._data, other._data))

    def __radd__(self, other: object) -> "Commitment":
        # Lets the builtin sum() start from 0
        if other == 0:
            return self
        return NotImplemented

    def __sub__(self, other: "Commitment") -> "Commitment":
        if not isinstance(other, Commitment):
            return NotImplemented
        if other.is_zero():
            return self
        if self == other:
            return Commitment.zero()
        if self.is_zero():
            return Commitment(sodium.crypto_core_ed25519_sub(IDENTITY_POINT, other._data))
        return Commitment(sodium.crypto_core_ed25519_sub(self._data, other._data))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(("Commitment", self._data))

    def __repr__(self) -> str:
        return f"Commitment({self._data.hex()[:16]}...)"


def _hash_to_point(seed: bytes) -> bytes:
    """
    Deterministically map a seed to a point in the prime-order subgroup.

    Try-and-increment over Blake2b candidates. Three doublings multiply an
    on-curve candidate by the cofactor 8, which moves it into the main
    subgroup. Point addition only requires operands on the curve, unlike
    scalar multiplication which requires them in the main subgroup already.
    """
    for counter in range(1024):
        point = hash_data(DOMAIN_HASH_TO_POINT, seed, struct.pack("<I", counter))
        try:
            for _ in range(3):
                point = sodium.crypto_core_ed25519_add(point, point)
        except SodiumError:
            continue
        if point != IDENTITY_POINT and sodium.crypto_core_ed25519_is_valid_point(point):
            return point
    raise ValueError("hash to point failed")


class CommitmentFactory:
    """
    Pedersen commitment factory: commit(k, v) = k*G + v*H.

    G is the Ed25519 base point, H is derived from H_GENERATOR_SEED so that
    nobody knows its discrete log relative to G.
    """

    _H: Optional[bytes] = None

    def __init__(self) -> None:
        if CommitmentFactory._H is None:
            CommitmentFactory._H = _hash_to_point(H_GENERATOR_SEED)
            logger.debug(f"Derived Pedersen generator H={CommitmentFactory._H.hex()[:16]}...")
        self._h = CommitmentFactory._H

    @property
    def h_generator(self) -> Commitment:
        return Commitment(self._h)

    def zero(self) -> Commitment:
        return Commitment.zero()

    def commit(self, blinding: BlindingFactor, value: int) -> Commitment:
        """Commit to value under blinding. Values are reduced mod L."""
        value_scalar = (value % CURVE_ORDER).to_bytes(SCALAR_SIZE, "little")

        blinding_part = Commitment.zero()
        if not blinding.is_zero():
            blinding_part = Commitment(sodium.crypto_scalarmult_ed25519_base_noclamp(blinding.data))

        value_part = Commitment.zero()
        if value_scalar != ZERO_SCALAR:
            value_part = Commitment(sodium.crypto_scalarmult_ed25519_noclamp(value_scalar, self._h))

        return blinding_part + value_part

    def commit_value(self, value: int) -> Commitment:
        """Value-only commitment (zero blinding)."""
        return self.commit(BlindingFactor.default(), value)

    def open(self, commitment: Commitment, blinding: BlindingFactor, value: int) -> bool:
        """Check that commitment opens to (blinding, value)."""
        return self.commit(blinding, value) == commitment
