"""Notes, note seeds and nullifiers."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Optional

from .asset_base import AssetBase
from .config import (
    DIVERSIFIER_SIZE,
    DOMAIN_NOTE_COMMIT,
    POINT_SIZE,
    PRF_EXPAND_ESK,
    PRF_EXPAND_PSI,
    PRF_EXPAND_RCM,
)
from .crypto.hashes import prf_expand, prf_nf, wide_hash
from .crypto.pallas import (
    NOTE_COMMIT_Q,
    NOTE_COMMIT_R,
    NULLIFIER_K,
    SPLIT_NOTE_L,
    Point,
    base_from_bytes,
    base_to_bytes,
    random_base,
    to_base,
    to_scalar,
)
from .errors import BundleError, ErrorCode
from .keys import Address, FullViewingKey, SpendingKey
from .value import check_note_value


@dataclass(frozen=True)
class Nullifier:
    data: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "Nullifier":
        base_from_bytes(data)
        return cls(bytes(data))

    @classmethod
    def dummy(cls, rng) -> "Nullifier":
        return cls(base_to_bytes(random_base(rng)))

    def to_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class Rho:
    """Nullifier-derivation input; the nullifier of the note spent alongside."""

    data: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "Rho":
        base_from_bytes(data)
        return cls(bytes(data))

    @classmethod
    def from_nf_old(cls, nf: Nullifier) -> "Rho":
        return cls(nf.data)

    def to_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class RandomSeed:
    data: bytes = field(repr=False)

    @classmethod
    def from_bytes(cls, rseed: bytes, rho: Rho) -> "RandomSeed":
        if len(rseed) != 32:
            raise BundleError(ErrorCode.INVALID_SEED, "rseed must be 32 bytes")
        seed = cls(bytes(rseed))
        if seed.esk(rho) == 0:
            raise BundleError(ErrorCode.INVALID_SEED, "rseed derives a zero ephemeral key")
        return seed

    @classmethod
    def random(cls, rng, rho: Rho) -> "RandomSeed":
        while True:
            try:
                return cls.from_bytes(rng.randbytes(32), rho)
            except BundleError:
                continue

    def esk(self, rho: Rho) -> int:
        return to_scalar(prf_expand(self.data, bytes([PRF_EXPAND_ESK]) + rho.data))

    def rcm(self, rho: Rho) -> int:
        return to_scalar(prf_expand(self.data, bytes([PRF_EXPAND_RCM]) + rho.data))

    def psi(self, rho: Rho) -> int:
        return to_base(prf_expand(self.data, bytes([PRF_EXPAND_PSI]) + rho.data))


@dataclass(frozen=True)
class Note:
    recipient: Address
    value: int
    asset: AssetBase
    rho: Rho
    rseed: RandomSeed
    # Set only on split notes; replaces psi in the nullifier.
    rseed_split: Optional[RandomSeed] = None

    @classmethod
    def new(cls, recipient: Address, value: int, asset: AssetBase, rho: Rho, rng) -> "Note":
        check_note_value(value)
        return cls(recipient, value, asset, rho, RandomSeed.random(rng, rho))

    @classmethod
    def dummy(cls, rng, asset: AssetBase, rho: Optional[Rho] = None) -> tuple[SpendingKey, FullViewingKey, "Note"]:
        """A zero-valued note to a fresh random address, with its keys."""
        sk = SpendingKey.random(rng)
        fvk = sk.full_viewing_key()
        recipient = fvk.address(rng.randbytes(DIVERSIFIER_SIZE))
        if rho is None:
            rho = Rho.from_nf_old(Nullifier.dummy(rng))
        return sk, fvk, cls.new(recipient, 0, asset, rho, rng)

    @property
    def is_split(self) -> bool:
        return self.rseed_split is not None

    def esk(self) -> int:
        return self.rseed.esk(self.rho)

    def rcm(self) -> int:
        return self.rseed.rcm(self.rho)

    def psi(self) -> int:
        return self.rseed.psi(self.rho)

    @cached_property
    def _commitment(self) -> Point:
        h = to_scalar(
            wide_hash(
                DOMAIN_NOTE_COMMIT,
                self.recipient.g_d.to_bytes(),
                self.recipient.pk_d.to_bytes(),
                self.value.to_bytes(8, "little"),
                self.asset.to_bytes(),
                self.rho.data,
                base_to_bytes(self.psi()),
            )
        )
        return NOTE_COMMIT_Q * h + NOTE_COMMIT_R * self.rcm()

    def commitment(self) -> Point:
        return self._commitment

    def cmx(self) -> bytes:
        return base_to_bytes(self.commitment().extract_x())

    def nullifier(self, nk: bytes) -> Nullifier:
        return nullifier(self, nk)

    def create_split_note(self, rng) -> "Note":
        """Copy of this note with a fresh split seed: same commitment, new nullifier."""
        return replace(self, rseed_split=RandomSeed.random(rng, self.rho))


def derive_note(rseed: bytes, rho: Rho, recipient: Address, value: int, asset: AssetBase) -> Note:
    check_note_value(value)
    return Note(recipient, value, asset, rho, RandomSeed.from_bytes(rseed, rho))


def nullifier(note: Note, nk: bytes) -> Nullifier:
    if len(nk) != POINT_SIZE:
        raise BundleError(ErrorCode.INVALID_ENCODING, "nk must be 32 bytes")
    seed = note.rseed_split if note.rseed_split is not None else note.rseed
    psi = seed.psi(note.rho)
    k = to_base(prf_nf(nk, note.rho.data)) + psi
    point = NULLIFIER_K * k + note.commitment()
    if note.is_split:
        point = point + SPLIT_NOTE_L
    return Nullifier(base_to_bytes(point.extract_x()))
