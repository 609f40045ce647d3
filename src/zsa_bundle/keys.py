"""Spending keys and addresses.

Only the pieces a bundle needs: the spend authorizing key (and its
validating key), the nullifier deriving key, and diversified addresses.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Optional

from .config import (
    DIVERSIFIER_SIZE,
    DOMAIN_COMMIT_IVK,
    GEN_KEY_DIVERSIFY,
    POINT_SIZE,
    PRF_EXPAND_ASK,
    PRF_EXPAND_NK,
    RAW_ADDRESS_SIZE,
)
from .crypto.hashes import prf_expand, wide_hash
from .crypto.pallas import (
    SPEND_AUTH_G,
    Point,
    base_to_bytes,
    hash_to_curve,
    to_base,
    to_scalar,
)
from .errors import BundleError, ErrorCode


def diversify_hash(d: bytes) -> Point:
    return hash_to_curve(GEN_KEY_DIVERSIFY, bytes(d))


@dataclass(frozen=True)
class SpendingKey:
    data: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "SpendingKey":
        if len(data) != 32:
            raise BundleError(ErrorCode.INVALID_ENCODING, "spending key must be 32 bytes")
        sk = cls(bytes(data))
        if SpendAuthorizingKey.from_spending_key(sk).scalar == 0:
            raise BundleError(ErrorCode.INVALID_ENCODING, "spending key derives a zero ask")
        return sk

    @classmethod
    def random(cls, rng) -> "SpendingKey":
        while True:
            try:
                return cls.from_bytes(rng.randbytes(32))
            except BundleError:
                continue

    def authorizing_key(self) -> "SpendAuthorizingKey":
        return SpendAuthorizingKey.from_spending_key(self)

    def full_viewing_key(self) -> "FullViewingKey":
        ask = self.authorizing_key()
        nk = to_base(prf_expand(self.data, bytes([PRF_EXPAND_NK])))
        return FullViewingKey(ak=ask.validating_key(), nk=base_to_bytes(nk))


@dataclass(frozen=True)
class SpendAuthorizingKey:
    scalar: int

    @classmethod
    def from_spending_key(cls, sk: SpendingKey) -> "SpendAuthorizingKey":
        return cls(to_scalar(prf_expand(sk.data, bytes([PRF_EXPAND_ASK]))))

    def validating_key(self) -> "SpendValidatingKey":
        return SpendValidatingKey(SPEND_AUTH_G * self.scalar)

    def __repr__(self) -> str:
        return "SpendAuthorizingKey(<redacted>)"


@dataclass(frozen=True)
class SpendValidatingKey:
    point: Point

    def to_bytes(self) -> bytes:
        return self.point.to_bytes()


@dataclass(frozen=True)
class Address:
    """A diversified payment address: diversifier d and transmission key pk_d."""

    d: bytes
    pk_d: Point

    def __post_init__(self) -> None:
        if len(self.d) != DIVERSIFIER_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, f"diversifier must be {DIVERSIFIER_SIZE} bytes")

    @cached_property
    def g_d(self) -> Point:
        return diversify_hash(self.d)

    def to_raw_bytes(self) -> bytes:
        return self.d + self.pk_d.to_bytes()

    @classmethod
    def from_raw_bytes(cls, data: bytes) -> "Address":
        if len(data) != RAW_ADDRESS_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, f"address must be {RAW_ADDRESS_SIZE} bytes")
        pk_d = Point.from_bytes(data[DIVERSIFIER_SIZE:])
        if pk_d.is_identity():
            raise BundleError(ErrorCode.INVALID_ENCODING, "pk_d must not be the identity")
        return cls(bytes(data[:DIVERSIFIER_SIZE]), pk_d)


@dataclass(frozen=True)
class FullViewingKey:
    ak: SpendValidatingKey
    nk: bytes

    @property
    def ivk(self) -> int:
        return to_scalar(wide_hash(DOMAIN_COMMIT_IVK, self.ak.to_bytes(), self.nk))

    def address(self, d: Optional[bytes] = None) -> Address:
        d = bytes(DIVERSIFIER_SIZE) if d is None else bytes(d)
        return Address(d, diversify_hash(d) * self.ivk)

    def owns(self, address: Address) -> bool:
        return address.g_d * self.ivk == address.pk_d

    def to_bytes(self) -> bytes:
        return self.ak.to_bytes() + self.nk

    def __post_init__(self) -> None:
        if len(self.nk) != POINT_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, "nk must be 32 bytes")
