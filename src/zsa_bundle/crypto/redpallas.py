"""RedPallas-style Schnorr signatures with rerandomizable keys.

Two signature kinds share the scheme and differ only in basepoint:
spend authorization (basepoint G) and binding (the value-commitment
randomness base R, so that a binding verification key can be derived from
a sum of value commitments).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..config import DOMAIN_REDPALLAS, POINT_SIZE, SIGNATURE_SIZE
from ..errors import BundleError, ErrorCode
from .hashes import wide_hash
from .pallas import (
    Q,
    SPEND_AUTH_G,
    VALUE_COMMIT_R,
    Point,
    scalar_to_bytes,
    to_scalar,
)


class SigType(Enum):
    SPEND_AUTH = "spend_auth"
    BINDING = "binding"

    @property
    def basepoint(self) -> Point:
        return SPEND_AUTH_G if self is SigType.SPEND_AUTH else VALUE_COMMIT_R


@dataclass(frozen=True)
class Signature:
    r_bytes: bytes
    s_bytes: bytes

    def to_bytes(self) -> bytes:
        return self.r_bytes + self.s_bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "Signature":
        if len(data) != SIGNATURE_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, f"signature must be {SIGNATURE_SIZE} bytes")
        return cls(bytes(data[:POINT_SIZE]), bytes(data[POINT_SIZE:]))


def _h_star(*parts: bytes) -> int:
    return to_scalar(wide_hash(DOMAIN_REDPALLAS, *parts))


def verification_key(sig_type: SigType, sk: int) -> Point:
    return sig_type.basepoint * sk


def randomize_sk(sk: int, alpha: int) -> int:
    return (sk + alpha) % Q


def randomize_vk(sig_type: SigType, vk: Point, alpha: int) -> Point:
    return vk + sig_type.basepoint * alpha


def sign(sig_type: SigType, sk: int, msg: bytes, rng) -> Signature:
    vk_bytes = verification_key(sig_type, sk).to_bytes()
    t = rng.randbytes(80)
    r = _h_star(t, vk_bytes, msg)
    r_bytes = (sig_type.basepoint * r).to_bytes()
    c = _h_star(r_bytes, vk_bytes, msg)
    s = (r + c * sk) % Q
    return Signature(r_bytes, scalar_to_bytes(s))


def verify(sig_type: SigType, vk: Point, msg: bytes, sig: Signature) -> bool:
    s = int.from_bytes(sig.s_bytes, "little")
    if s >= Q:
        return False
    try:
        r_point = Point.from_bytes(sig.r_bytes)
    except BundleError:
        return False
    c = _h_star(sig.r_bytes, vk.to_bytes(), msg)
    return sig_type.basepoint * s == r_point + vk * c
