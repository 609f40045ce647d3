"""Sender-side note encryption.

The bundle core only attaches ciphertexts to actions; it never decrypts.
`ChaChaNoteEncryption` is the default encryptor: ChaCha20-Poly1305 under a
key agreed from [esk]pk_d, and an out-ciphertext keyed from the sender's
outgoing viewing key so the sender can later recover what was sent.
"""

from __future__ import annotations

from typing import Optional, Protocol

from blake3 import blake3
from Cryptodome.Cipher import ChaCha20_Poly1305

from .config import (
    DEFAULT_MEMO_LEAD_BYTE,
    DOMAIN_NOTE_KDF,
    MEMO_SIZE,
    NOTE_PLAINTEXT_LEAD_BYTE,
    OUT_PLAINTEXT_SIZE,
)
from .crypto.hashes import prf_ock
from .crypto.pallas import Point, scalar_to_bytes
from .errors import BundleError, ErrorCode
from .note import Note
from .value import ValueCommitment

_ZERO_NONCE = bytes(12)

DEFAULT_MEMO = bytes([DEFAULT_MEMO_LEAD_BYTE]) + bytes(MEMO_SIZE - 1)


class NoteEncryption(Protocol):
    def encrypt(
        self,
        note: Note,
        memo: bytes,
        esk: int,
        ovk: Optional[bytes],
        cv_net: ValueCommitment,
        cmx: bytes,
        rng,
    ) -> tuple[bytes, bytes]:
        """Return (enc_ciphertext, out_ciphertext)."""
        ...


def note_plaintext(note: Note, memo: bytes) -> bytes:
    if len(memo) != MEMO_SIZE:
        raise BundleError(ErrorCode.INVALID_ENCODING, f"memo must be {MEMO_SIZE} bytes")
    out = (
        bytes([NOTE_PLAINTEXT_LEAD_BYTE])
        + note.recipient.d
        + note.value.to_bytes(8, "little")
        + note.rseed.data
        + note.asset.to_bytes()
        + memo
    )
    return out


def kdf(shared_secret: Point, epk: Point) -> bytes:
    return blake3(shared_secret.to_bytes() + epk.to_bytes(), derive_key_context=DOMAIN_NOTE_KDF).digest()


def _seal(key: bytes, plaintext: bytes) -> bytes:
    cipher = ChaCha20_Poly1305.new(key=key, nonce=_ZERO_NONCE)
    ciphertext, tag = cipher.encrypt_and_digest(plaintext)
    return ciphertext + tag


class ChaChaNoteEncryption:
    def encrypt(
        self,
        note: Note,
        memo: bytes,
        esk: int,
        ovk: Optional[bytes],
        cv_net: ValueCommitment,
        cmx: bytes,
        rng,
    ) -> tuple[bytes, bytes]:
        epk = note.recipient.g_d * esk
        shared_secret = note.recipient.pk_d * esk
        enc = _seal(kdf(shared_secret, epk), note_plaintext(note, memo))

        if ovk is None:
            # No outgoing viewing key: the out-ciphertext is unrecoverable noise.
            ock = rng.randbytes(32)
            op = rng.randbytes(OUT_PLAINTEXT_SIZE)
        else:
            ock = prf_ock(ovk, cv_net.to_bytes(), cmx, epk.to_bytes())
            op = note.recipient.pk_d.to_bytes() + scalar_to_bytes(esk)
        return enc, _seal(ock, op)
