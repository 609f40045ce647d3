"""Value commitments and the binding signature.

cv = [v] * AssetBase + [rcv] * R. Commitments to values of one asset add up to
a commitment to the summed value under the summed randomness, which is what
lets a verifier check balance from the action commitments alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .asset_base import AssetBase
from .config import MAX_NOTE_VALUE, MAX_VALUE_SUM
from .crypto import redpallas
from .crypto.pallas import Q, VALUE_COMMIT_R, Point, random_scalar
from .crypto.redpallas import SigType, Signature
from .errors import BundleError, ErrorCode


def check_note_value(value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise BundleError(ErrorCode.VALUE_OVERFLOW, "note value must be an integer")
    if value < 0 or value > MAX_NOTE_VALUE:
        raise BundleError(ErrorCode.VALUE_OVERFLOW, f"note value {value} outside u64")
    return value


def check_value_sum(value: int) -> int:
    if value < -MAX_VALUE_SUM or value > MAX_VALUE_SUM:
        raise BundleError(ErrorCode.VALUE_OVERFLOW, f"value sum {value} out of range")
    return value


def value_sum(spent: int, output: int, split: bool = False) -> int:
    """Net value of one action; a split spend contributes nothing."""
    counted = 0 if split else check_note_value(spent)
    return check_value_sum(counted - check_note_value(output))


def random_trapdoor(rng) -> int:
    return random_scalar(rng)


@dataclass(frozen=True)
class ValueCommitment:
    point: Point

    @classmethod
    def zero(cls) -> "ValueCommitment":
        return cls(Point.identity())

    def __add__(self, other: "ValueCommitment") -> "ValueCommitment":
        return ValueCommitment(self.point + other.point)

    def __sub__(self, other: "ValueCommitment") -> "ValueCommitment":
        return ValueCommitment(self.point - other.point)

    @classmethod
    def sum(cls, items: Iterable["ValueCommitment"]) -> "ValueCommitment":
        total = cls.zero()
        for cv in items:
            total = total + cv
        return total

    def to_bytes(self) -> bytes:
        return self.point.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "ValueCommitment":
        return cls(Point.from_bytes(data))

    def into_bvk(self) -> Point:
        return self.point


def commit(value: int, asset: AssetBase, rcv: int) -> ValueCommitment:
    return ValueCommitment(asset.point * (value % Q) + VALUE_COMMIT_R * rcv)


def aggregate_bsk(rcvs: Iterable[int]) -> int:
    total = 0
    for rcv in rcvs:
        total = (total + rcv) % Q
    return total


def compute_bvk(
    actions: Sequence,
    native_balance: int,
    burn: Sequence[tuple[AssetBase, int]],
) -> ValueCommitment:
    """Sum of cv_net minus the zero-randomness commitments to the public values."""
    bvk = ValueCommitment.sum(action.cv_net for action in actions)
    bvk = bvk - commit(native_balance, AssetBase.native(), 0)
    for asset, amount in burn:
        bvk = bvk - commit(amount, asset, 0)
    return bvk


class BindingSigningKey:
    """Holds bsk for the duration of a `with` block and drops it on exit."""

    def __init__(self, rcvs: Iterable[int]):
        self._bsk: Optional[int] = aggregate_bsk(rcvs)

    def __enter__(self) -> "BindingSigningKey":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def wipe(self) -> None:
        self._bsk = None

    def _scalar(self) -> int:
        if self._bsk is None:
            raise BundleError(ErrorCode.MISSING_RANDOMNESS, "binding signing key already wiped")
        return self._bsk

    def verification_key(self) -> Point:
        return redpallas.verification_key(SigType.BINDING, self._scalar())

    def sign(self, sighash: bytes, rng) -> Signature:
        return redpallas.sign(SigType.BINDING, self._scalar(), sighash, rng)

    def __repr__(self) -> str:
        return "BindingSigningKey(<redacted>)" if self._bsk is not None else "BindingSigningKey(<wiped>)"


def sign_binding(bsk: BindingSigningKey, sighash: bytes, rng) -> Signature:
    return bsk.sign(sighash, rng)


def verify_binding(bvk: ValueCommitment, sighash: bytes, sig: Signature) -> bool:
    return redpallas.verify(SigType.BINDING, bvk.into_bvk(), sighash, sig)
