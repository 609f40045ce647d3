"""Wire-format encoding for authorized bundles.

Layout (big-endian integers):

    flags u8 | action_count u16 | action* | value_balance i64
    | burn_count u16 | (asset 32 | amount u64)* | proof_len u32 | proof
    | binding_sig 64

    action = cv_net 32 | nf 32 | rk 32 | cmx 32 | epk 32
             | enc_ciphertext 612 | out_ciphertext 80 | spend_auth_sig 64
"""

from __future__ import annotations

from dataclasses import dataclass

from .action import Action, TransmittedNoteCiphertext
from .asset_base import AssetBase
from .bundle import Authorized, Bundle, BundleState, Flags, validate_bundle_burn
from .config import (
    ACTION_SIZE,
    ENC_CIPHERTEXT_SIZE,
    MAX_ACTIONS,
    MAX_BURN_ENTRIES,
    MAX_PROOF_SIZE,
    OUT_CIPHERTEXT_SIZE,
    POINT_SIZE,
    SIGNATURE_SIZE,
)
from .crypto.pallas import Point, base_from_bytes, scalar_from_bytes
from .crypto.redpallas import Signature
from .errors import BundleError, ErrorCode
from .keys import SpendValidatingKey
from .note import Nullifier
from .proof import Proof
from .value import ValueCommitment


@dataclass
class Writer:
    buf: bytearray

    def write_u8(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(1, "big", signed=False))

    def write_u16(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(2, "big", signed=False))

    def write_u32(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(4, "big", signed=False))

    def write_u64(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(8, "big", signed=False))

    def write_i64(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(8, "big", signed=True))

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)


@dataclass
class Reader:
    data: bytes
    pos: int = 0

    def read_bytes(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise BundleError(ErrorCode.INVALID_FORMAT, f"truncated input at offset {self.pos}")
        out = self.data[self.pos : self.pos + n]
        self.pos += n
        return bytes(out)

    def read_u8(self) -> int:
        return self.read_bytes(1)[0]

    def read_u16(self) -> int:
        return int.from_bytes(self.read_bytes(2), "big")

    def read_u32(self) -> int:
        return int.from_bytes(self.read_bytes(4), "big")

    def read_u64(self) -> int:
        return int.from_bytes(self.read_bytes(8), "big")

    def read_i64(self) -> int:
        return int.from_bytes(self.read_bytes(8), "big", signed=True)

    def finish(self) -> None:
        if self.pos != len(self.data):
            raise BundleError(ErrorCode.INVALID_FORMAT, f"{len(self.data) - self.pos} trailing bytes")


def _expect_len(name: str, value: bytes, size: int) -> None:
    if len(value) != size:
        raise BundleError(ErrorCode.INVALID_FORMAT, f"{name} must be {size} bytes")


def _read_signature(r: Reader) -> Signature:
    sig = Signature.from_bytes(r.read_bytes(SIGNATURE_SIZE))
    Point.from_bytes(sig.r_bytes)
    scalar_from_bytes(sig.s_bytes)
    return sig


def encode_action(w: Writer, action: Action) -> None:
    if action.spend_auth_sig is None:
        raise BundleError(ErrorCode.INVALID_STATE, "cannot encode an unsigned action")
    note = action.encrypted_note
    w.write_bytes(action.cv_net.to_bytes())
    w.write_bytes(action.nullifier.to_bytes())
    w.write_bytes(action.rk.to_bytes())
    _expect_len("cmx", action.cmx, POINT_SIZE)
    w.write_bytes(action.cmx)
    w.write_bytes(note.epk_bytes)
    w.write_bytes(note.enc_ciphertext)
    w.write_bytes(note.out_ciphertext)
    w.write_bytes(action.spend_auth_sig.to_bytes())


def decode_action(r: Reader) -> Action:
    cv_net = ValueCommitment.from_bytes(r.read_bytes(POINT_SIZE))
    nf = Nullifier.from_bytes(r.read_bytes(POINT_SIZE))
    rk = SpendValidatingKey(Point.from_bytes(r.read_bytes(POINT_SIZE)))
    cmx = r.read_bytes(POINT_SIZE)
    base_from_bytes(cmx)
    epk = r.read_bytes(POINT_SIZE)
    Point.from_bytes(epk)
    enc = r.read_bytes(ENC_CIPHERTEXT_SIZE)
    out = r.read_bytes(OUT_CIPHERTEXT_SIZE)
    sig = _read_signature(r)
    return Action(
        nullifier=nf,
        rk=rk,
        cmx=cmx,
        encrypted_note=TransmittedNoteCiphertext(epk, enc, out),
        cv_net=cv_net,
        spend_auth_sig=sig,
    )


def encode_bundle(bundle: Bundle) -> bytes:
    bundle.expect_state(BundleState.AUTHORIZED)
    w = Writer(bytearray())
    w.write_u8(bundle.flags.to_byte())
    w.write_u16(len(bundle.actions))
    for action in bundle.actions:
        encode_action(w, action)
    w.write_i64(bundle.value_balance)
    w.write_u16(len(bundle.burn))
    for asset, amount in bundle.burn:
        w.write_bytes(asset.to_bytes())
        w.write_u64(amount)
    proof = bundle.authorization.proof.data
    w.write_u32(len(proof))
    w.write_bytes(proof)
    w.write_bytes(bundle.authorization.binding_signature.to_bytes())
    return bytes(w.buf)


def decode_bundle(data: bytes) -> Bundle:
    r = Reader(bytes(data))
    flags = Flags.from_byte(r.read_u8())

    count = r.read_u16()
    if count == 0:
        raise BundleError(ErrorCode.INVALID_FORMAT, "bundle has no actions")
    if count > MAX_ACTIONS:
        raise BundleError(ErrorCode.INVALID_FORMAT, f"{count} actions exceed the maximum of {MAX_ACTIONS}")
    if len(r.data) - r.pos < count * ACTION_SIZE:
        raise BundleError(ErrorCode.INVALID_FORMAT, f"truncated input: expected {count} actions")
    actions = tuple(decode_action(r) for _ in range(count))

    value_balance = r.read_i64()

    burn_count = r.read_u16()
    if burn_count > MAX_BURN_ENTRIES:
        raise BundleError(ErrorCode.INVALID_FORMAT, f"{burn_count} burn entries exceed the maximum")
    burn = []
    for _ in range(burn_count):
        asset = AssetBase.from_bytes(r.read_bytes(POINT_SIZE))
        burn.append((asset, r.read_u64()))
    validate_bundle_burn(burn)

    proof_len = r.read_u32()
    if proof_len > MAX_PROOF_SIZE:
        raise BundleError(ErrorCode.INVALID_FORMAT, f"proof of {proof_len} bytes exceeds the maximum")
    proof = Proof(r.read_bytes(proof_len))
    binding_signature = _read_signature(r)
    r.finish()

    return Bundle(
        actions=actions,
        flags=flags,
        value_balance=value_balance,
        burn=tuple(burn),
        authorization=Authorized(proof, binding_signature),
    )
