"""Bundle data model: flags, authorization states and digests."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import ClassVar, Sequence, Union

from .action import Action
from .asset_base import AssetBase
from .config import (
    COMPACT_CIPHERTEXT_SIZE,
    DIGEST_ACTIONS_COMPACT,
    DIGEST_ACTIONS_MEMOS,
    DIGEST_ACTIONS_NONCOMPACT,
    DIGEST_AUTH,
    DIGEST_BUNDLE,
    DIGEST_BURN,
    MEMO_CIPHERTEXT_END,
)
from .crypto.hashes import hasher
from .crypto.redpallas import Signature
from .errors import BundleError, ErrorCode
from .note import Nullifier
from .proof import ActionWitness, Proof, PublicInputs
from .value import ValueCommitment, compute_bvk

FLAG_SPENDS_ENABLED = 0b0000_0001
FLAG_OUTPUTS_ENABLED = 0b0000_0010
FLAG_ZSA_ENABLED = 0b0000_0100
FLAGS_EXPECTED_UNSET = 0xFF & ~(FLAG_SPENDS_ENABLED | FLAG_OUTPUTS_ENABLED | FLAG_ZSA_ENABLED)


@dataclass(frozen=True)
class Flags:
    spends_enabled: bool = True
    outputs_enabled: bool = True
    zsa_enabled: bool = False

    def to_byte(self) -> int:
        value = 0
        if self.spends_enabled:
            value |= FLAG_SPENDS_ENABLED
        if self.outputs_enabled:
            value |= FLAG_OUTPUTS_ENABLED
        if self.zsa_enabled:
            value |= FLAG_ZSA_ENABLED
        return value

    @classmethod
    def from_byte(cls, value: int) -> "Flags":
        if value & FLAGS_EXPECTED_UNSET:
            raise BundleError(ErrorCode.INVALID_FORMAT, f"reserved flag bits set: {value:#04x}")
        return cls(
            spends_enabled=bool(value & FLAG_SPENDS_ENABLED),
            outputs_enabled=bool(value & FLAG_OUTPUTS_ENABLED),
            zsa_enabled=bool(value & FLAG_ZSA_ENABLED),
        )


ENABLED_WITHOUT_ZSA = Flags(True, True, False)
ENABLED_WITH_ZSA = Flags(True, True, True)
SPENDS_DISABLED = Flags(False, True, False)
OUTPUTS_DISABLED = Flags(True, False, False)
DISABLED_FLAGS = Flags(False, False, False)


class BundleState(Enum):
    UNAUTHORIZED = "unauthorized"
    PROVEN = "proven"
    PARTIALLY_AUTHORIZED = "partially_authorized"
    AUTHORIZED = "authorized"


@dataclass(frozen=True)
class Unauthorized:
    witnesses: tuple[ActionWitness, ...]
    state: ClassVar[BundleState] = BundleState.UNAUTHORIZED


@dataclass(frozen=True)
class Proven:
    proof: Proof
    state: ClassVar[BundleState] = BundleState.PROVEN


@dataclass(frozen=True)
class PartiallyAuthorized:
    proof: Proof
    sighash: bytes
    state: ClassVar[BundleState] = BundleState.PARTIALLY_AUTHORIZED


@dataclass(frozen=True)
class Authorized:
    proof: Proof
    binding_signature: Signature
    state: ClassVar[BundleState] = BundleState.AUTHORIZED


Authorization = Union[Unauthorized, Proven, PartiallyAuthorized, Authorized]


def validate_bundle_burn(burn: Sequence[tuple[AssetBase, int]]) -> None:
    """Burn entries must name distinct custom assets with positive amounts."""
    seen = set()
    for asset, amount in burn:
        if asset.is_native():
            raise BundleError(ErrorCode.BURN_NATIVE_ASSET, "the native asset cannot be burned")
        if amount <= 0:
            raise BundleError(ErrorCode.BURN_ZERO_VALUE, f"burn amount must be positive, got {amount}")
        key = asset.to_bytes()
        if key in seen:
            raise BundleError(ErrorCode.DUPLICATE_BURN_ASSET, f"asset {asset!r} burned twice")
        seen.add(key)


def check_distinct_nullifiers(actions: Sequence[Action]) -> None:
    seen: dict[bytes, int] = {}
    for index, action in enumerate(actions):
        nf = action.nullifier.to_bytes()
        if nf in seen:
            raise BundleError(
                ErrorCode.DUPLICATE_NULLIFIER,
                f"actions {seen[nf]} and {index} share nullifier {nf.hex()}",
            )
        seen[nf] = index


@dataclass(frozen=True)
class Bundle:
    actions: tuple[Action, ...]
    flags: Flags
    value_balance: int
    burn: tuple[tuple[AssetBase, int], ...]
    authorization: Authorization

    @property
    def state(self) -> BundleState:
        return self.authorization.state

    def expect_state(self, *states: BundleState) -> None:
        if self.state not in states:
            names = ", ".join(s.name for s in states)
            raise BundleError(ErrorCode.INVALID_STATE, f"bundle is {self.state.name}, expected {names}")

    def with_authorization(self, authorization: Authorization) -> "Bundle":
        return replace(self, authorization=authorization)

    def with_actions(self, actions: Sequence[Action]) -> "Bundle":
        return replace(self, actions=tuple(actions))

    def nullifiers(self) -> list[Nullifier]:
        return [action.nullifier for action in self.actions]

    def to_public_inputs(self) -> PublicInputs:
        return PublicInputs(
            instances=tuple(action.to_instance(self.flags) for action in self.actions),
            flags=self.flags.to_byte(),
            value_balance=self.value_balance,
        )

    def binding_validating_key(self) -> ValueCommitment:
        return compute_bvk(self.actions, self.value_balance, self.burn)

    def commitment(self) -> bytes:
        """Digest of the effecting data; the default sighash for a lone bundle."""
        ch = hasher(DIGEST_ACTIONS_COMPACT)
        mh = hasher(DIGEST_ACTIONS_MEMOS)
        nh = hasher(DIGEST_ACTIONS_NONCOMPACT)
        for action in self.actions:
            enc = action.encrypted_note.enc_ciphertext
            ch.update(action.nullifier.to_bytes())
            ch.update(action.cmx)
            ch.update(action.encrypted_note.epk_bytes)
            ch.update(enc[:COMPACT_CIPHERTEXT_SIZE])

            mh.update(enc[COMPACT_CIPHERTEXT_SIZE:MEMO_CIPHERTEXT_END])

            nh.update(action.cv_net.to_bytes())
            nh.update(action.rk.to_bytes())
            nh.update(enc[MEMO_CIPHERTEXT_END:])
            nh.update(action.encrypted_note.out_ciphertext)

        bh = hasher(DIGEST_BURN)
        for asset, amount in self.burn:
            bh.update(asset.to_bytes())
            bh.update(amount.to_bytes(8, "little"))

        h = hasher(DIGEST_BUNDLE)
        h.update(ch.digest())
        h.update(mh.digest())
        h.update(nh.digest())
        h.update(bytes([self.flags.to_byte()]))
        h.update(self.value_balance.to_bytes(8, "little", signed=True))
        h.update(bh.digest())
        return h.digest()

    def authorizing_commitment(self) -> bytes:
        self.expect_state(BundleState.AUTHORIZED)
        h = hasher(DIGEST_AUTH)
        h.update(self.authorization.proof.data)
        for action in self.actions:
            h.update(action.spend_auth_sig.to_bytes())
        h.update(self.authorization.binding_signature.to_bytes())
        return h.digest()
