"""Actions: one spend paired with one output."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, NamedTuple, Optional

from .asset_base import AssetBase
from .config import (
    DIVERSIFIER_SIZE,
    ENC_CIPHERTEXT_SIZE,
    MEMO_SIZE,
    OUT_CIPHERTEXT_SIZE,
    POINT_SIZE,
)
from .crypto.pallas import random_scalar
from .crypto.redpallas import SigType, Signature, randomize_vk
from .encryption import DEFAULT_MEMO, NoteEncryption
from .errors import BundleError, ErrorCode
from .keys import Address, FullViewingKey, SpendingKey, SpendValidatingKey
from .note import Note, Nullifier, Rho
from .proof import ActionWitness, Instance
from .value import ValueCommitment, check_note_value, commit, random_trapdoor, value_sum


class SpendKind(Enum):
    REAL = "real"
    DUMMY = "dummy"
    SPLIT = "split"


@dataclass(frozen=True)
class SpendInfo:
    kind: SpendKind
    note: Note
    fvk: FullViewingKey
    merkle_path: Any = None
    # Throwaway key of a dummy spend, used to sign it like any other action.
    dummy_sk: Optional[SpendingKey] = field(default=None, repr=False)
    # Position (in request order) of the real spend a split note was cloned from.
    source_index: Optional[int] = None

    @classmethod
    def real(cls, fvk: FullViewingKey, note: Note, merkle_path: Any) -> "SpendInfo":
        if not fvk.owns(note.recipient):
            raise BundleError(ErrorCode.FVK_MISMATCH, "full viewing key does not own the note")
        return cls(SpendKind.REAL, note, fvk, merkle_path)

    @classmethod
    def dummy(cls, rng, asset: AssetBase) -> "SpendInfo":
        sk, fvk, note = Note.dummy(rng, asset)
        return cls(SpendKind.DUMMY, note, fvk, None, dummy_sk=sk)

    def split(self, rng, source_index: int) -> "SpendInfo":
        if self.kind is not SpendKind.REAL:
            raise BundleError(ErrorCode.NO_SPEND_TO_SPLIT, "only real spends can be split")
        return SpendInfo(
            SpendKind.SPLIT,
            self.note.create_split_note(rng),
            self.fvk,
            self.merkle_path,
            source_index=source_index,
        )

    @property
    def asset(self) -> AssetBase:
        return self.note.asset

    @property
    def counted_value(self) -> int:
        return 0 if self.kind is SpendKind.SPLIT else self.note.value


@dataclass(frozen=True)
class OutputInfo:
    recipient: Address
    value: int
    asset: AssetBase
    memo: bytes = DEFAULT_MEMO
    ovk: Optional[bytes] = field(default=None, repr=False)
    is_dummy: bool = False

    def __post_init__(self) -> None:
        check_note_value(self.value)
        if len(self.memo) != MEMO_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, f"memo must be {MEMO_SIZE} bytes")

    @classmethod
    def dummy(cls, rng, asset: AssetBase) -> "OutputInfo":
        fvk = SpendingKey.random(rng).full_viewing_key()
        return cls(fvk.address(rng.randbytes(DIVERSIFIER_SIZE)), 0, asset, is_dummy=True)


@dataclass(frozen=True)
class TransmittedNoteCiphertext:
    epk_bytes: bytes
    enc_ciphertext: bytes
    out_ciphertext: bytes

    def __post_init__(self) -> None:
        if len(self.epk_bytes) != POINT_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, "epk must be 32 bytes")
        if len(self.enc_ciphertext) != ENC_CIPHERTEXT_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, f"enc_ciphertext must be {ENC_CIPHERTEXT_SIZE} bytes")
        if len(self.out_ciphertext) != OUT_CIPHERTEXT_SIZE:
            raise BundleError(ErrorCode.INVALID_ENCODING, f"out_ciphertext must be {OUT_CIPHERTEXT_SIZE} bytes")


@dataclass(frozen=True)
class Action:
    nullifier: Nullifier
    rk: SpendValidatingKey
    cmx: bytes
    encrypted_note: TransmittedNoteCiphertext
    cv_net: ValueCommitment
    spend_auth_sig: Optional[Signature] = None

    def with_signature(self, sig: Signature) -> "Action":
        return replace(self, spend_auth_sig=sig)

    def to_instance(self, flags) -> Instance:
        return Instance(
            nf=self.nullifier.to_bytes(),
            rk=self.rk.to_bytes(),
            cmx=self.cmx,
            cv_net=self.cv_net.to_bytes(),
            epk=self.encrypted_note.epk_bytes,
            enable_spend=flags.spends_enabled,
            enable_output=flags.outputs_enabled,
            enable_zsa=flags.zsa_enabled,
        )


class BuiltAction(NamedTuple):
    action: Action
    rcv: int
    alpha: int
    witness: ActionWitness


def build_action(spend: SpendInfo, output: OutputInfo, rng, note_encryption: NoteEncryption) -> BuiltAction:
    """Pair a spend with an output; returns the action and the secrets to retain."""
    if spend.asset != output.asset:
        raise BundleError(ErrorCode.ASSET_MISMATCH, "spend and output of an action must share an asset")

    rcv = random_trapdoor(rng)
    v_net = value_sum(spend.note.value, output.value, split=spend.kind is SpendKind.SPLIT)
    cv_net = commit(v_net, output.asset, rcv)

    nf_old = spend.note.nullifier(spend.fvk.nk)
    alpha = random_scalar(rng)
    rk = SpendValidatingKey(randomize_vk(SigType.SPEND_AUTH, spend.fvk.ak.point, alpha))

    note = Note.new(output.recipient, output.value, output.asset, Rho.from_nf_old(nf_old), rng)
    cmx = note.cmx()
    esk = note.esk()
    epk = note.recipient.g_d * esk
    enc, out = note_encryption.encrypt(note, output.memo, esk, output.ovk, cv_net, cmx, rng)

    action = Action(
        nullifier=nf_old,
        rk=rk,
        cmx=cmx,
        encrypted_note=TransmittedNoteCiphertext(epk.to_bytes(), enc, out),
        cv_net=cv_net,
    )
    witness = ActionWitness(spend.note, spend.fvk, spend.merkle_path, note, alpha, rcv)
    return BuiltAction(action, rcv, alpha, witness)
