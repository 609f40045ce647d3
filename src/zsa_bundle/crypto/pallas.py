"""Pallas prime-order group used by value commitments, notes and signatures.

The curve is y^2 = x^3 + 5 over F_p with prime order q (cofactor 1), so every
point on the curve is a valid group element. Arithmetic is delegated to
`ecdsa.ellipticcurve.PointJacobi` on a custom `CurveFp`; this module adds the
canonical 32-byte encoding, identity handling and hash-to-curve.
"""

from __future__ import annotations

from typing import Optional

from ecdsa import numbertheory
from ecdsa.ellipticcurve import CurveFp, PointJacobi

from ..config import (
    DOMAIN_HASH_TO_CURVE,
    GEN_NATIVE_ASSET,
    GEN_NOTE_COMMIT_Q,
    GEN_NOTE_COMMIT_R,
    GEN_NULLIFIER_K,
    GEN_SPEND_AUTH,
    GEN_SPLIT_NOTE_L,
    GEN_VALUE_RANDOMNESS,
    POINT_SIZE,
    SCALAR_SIZE,
)
from ..errors import BundleError, ErrorCode
from .hashes import wide_hash

# Base field modulus and group order.
P = 0x40000000000000000000000000000000224698FC094CF91B992D30ED00000001
Q = 0x40000000000000000000000000000000224698FC0994A8DD8C46EB2100000001
CURVE_B = 5

CURVE = CurveFp(P, 0, CURVE_B, 1)

_SIGN_BIT = 1 << 255


def _is_square(v: int) -> bool:
    return v == 0 or numbertheory.jacobi(v, P) == 1


class Point:
    """A Pallas group element; `None` inner value is the identity."""

    __slots__ = ("_inner", "_encoded")

    def __init__(self, inner: Optional[PointJacobi] = None):
        self._inner = inner
        self._encoded: Optional[bytes] = None

    @classmethod
    def identity(cls) -> "Point":
        return cls(None)

    @classmethod
    def from_affine(cls, x: int, y: int, generator: bool = False) -> "Point":
        if (y * y - (x * x * x + CURVE_B)) % P != 0:
            raise BundleError(ErrorCode.INVALID_ENCODING, "point is not on the curve")
        return cls(PointJacobi(CURVE, x, y, 1, Q, generator=generator))

    @staticmethod
    def _wrap(result: object) -> "Point":
        # ecdsa returns its affine INFINITY singleton for the identity
        if isinstance(result, PointJacobi):
            return Point(result)
        return Point.identity()

    def is_identity(self) -> bool:
        return self._inner is None

    def affine(self) -> tuple[int, int]:
        if self._inner is None:
            raise ValueError("identity has no affine coordinates")
        aff = self._inner.to_affine()
        return aff.x() % P, aff.y() % P

    def extract_x(self) -> int:
        """Extract_P: the x-coordinate, or 0 for the identity."""
        if self._inner is None:
            return 0
        return self.affine()[0]

    def __add__(self, other: "Point") -> "Point":
        if not isinstance(other, Point):
            return NotImplemented
        if self._inner is None:
            return other
        if other._inner is None:
            return self
        return Point._wrap(self._inner + other._inner)

    def __neg__(self) -> "Point":
        if self._inner is None:
            return self
        x, y = self.affine()
        return Point.from_affine(x, (P - y) % P)

    def __sub__(self, other: "Point") -> "Point":
        if not isinstance(other, Point):
            return NotImplemented
        return self + (-other)

    def __mul__(self, scalar: int) -> "Point":
        if not isinstance(scalar, int):
            return NotImplemented
        k = scalar % Q
        if k == 0 or self._inner is None:
            return Point.identity()
        return Point._wrap(self._inner * k)

    __rmul__ = __mul__

    def to_bytes(self) -> bytes:
        if self._encoded is None:
            if self._inner is None:
                self._encoded = bytes(POINT_SIZE)
            else:
                x, y = self.affine()
                self._encoded = (x | ((y & 1) << 255)).to_bytes(POINT_SIZE, "little")
        return self._encoded

    @classmethod
    def from_bytes(cls, data: bytes) -> "Point":
        if len(data) != POINT_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, f"point must be {POINT_SIZE} bytes")
        raw = int.from_bytes(data, "little")
        if raw == 0:
            return cls.identity()
        sign = raw >> 255
        x = raw & (_SIGN_BIT - 1)
        if x >= P:
            raise BundleError(ErrorCode.INVALID_ENCODING, "non-canonical x-coordinate")
        rhs = (x * x * x + CURVE_B) % P
        if not _is_square(rhs):
            raise BundleError(ErrorCode.INVALID_ENCODING, "x-coordinate is not on the curve")
        y = numbertheory.square_root_mod_prime(rhs, P)
        if y == 0 and sign:
            raise BundleError(ErrorCode.INVALID_ENCODING, "non-canonical sign bit")
        if (y & 1) != sign:
            y = P - y
        point = cls.from_affine(x, y)
        point._encoded = bytes(data)
        return point

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"Point({self.to_bytes().hex()})"


def hash_to_curve(domain: bytes, msg: bytes, generator: bool = False) -> Point:
    """Deterministic try-and-increment map from (domain, msg) to a group element."""
    for counter in range(256):
        digest = wide_hash(DOMAIN_HASH_TO_CURVE, domain, msg, bytes([counter]))
        x = int.from_bytes(digest[:32], "little") % P
        rhs = (x * x * x + CURVE_B) % P
        if rhs == 0 or not _is_square(rhs):
            continue
        y = numbertheory.square_root_mod_prime(rhs, P)
        if (y & 1) != (digest[32] & 1):
            y = P - y
        return Point.from_affine(x, y, generator=generator)
    raise RuntimeError("hash_to_curve exhausted its counter")


# --- scalar and base field helpers ---


def to_scalar(data: bytes) -> int:
    return int.from_bytes(data, "little") % Q


def to_base(data: bytes) -> int:
    return int.from_bytes(data, "little") % P


def scalar_to_bytes(s: int) -> bytes:
    return (s % Q).to_bytes(SCALAR_SIZE, "little")


def base_to_bytes(v: int) -> bytes:
    return (v % P).to_bytes(POINT_SIZE, "little")


def scalar_from_bytes(data: bytes) -> int:
    if len(data) != SCALAR_SIZE:
        raise BundleError(ErrorCode.INVALID_ENCODING, f"scalar must be {SCALAR_SIZE} bytes")
    v = int.from_bytes(data, "little")
    if v >= Q:
        raise BundleError(ErrorCode.INVALID_ENCODING, "non-canonical scalar")
    return v


def base_from_bytes(data: bytes) -> int:
    if len(data) != POINT_SIZE:
        raise BundleError(ErrorCode.INVALID_ENCODING, f"field element must be {POINT_SIZE} bytes")
    v = int.from_bytes(data, "little")
    if v >= P:
        raise BundleError(ErrorCode.INVALID_ENCODING, "non-canonical field element")
    return v


def random_scalar(rng) -> int:
    return to_scalar(rng.randbytes(64))


def random_base(rng) -> int:
    return to_base(rng.randbytes(64))


# --- fixed generators ---

GENERATOR = Point.from_affine(P - 1, 2, generator=True)

SPEND_AUTH_G = hash_to_curve(GEN_SPEND_AUTH, b"", generator=True)
VALUE_COMMIT_R = hash_to_curve(GEN_VALUE_RANDOMNESS, b"r", generator=True)
NATIVE_ASSET_V = hash_to_curve(GEN_NATIVE_ASSET, b"v", generator=True)
NULLIFIER_K = hash_to_curve(GEN_NULLIFIER_K, b"", generator=True)
SPLIT_NOTE_L = hash_to_curve(GEN_SPLIT_NOTE_L, b"", generator=True)
NOTE_COMMIT_Q = hash_to_curve(GEN_NOTE_COMMIT_Q, b"", generator=True)
NOTE_COMMIT_R = hash_to_curve(GEN_NOTE_COMMIT_R, b"", generator=True)
