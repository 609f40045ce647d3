"""Hash and PRF helpers.

Every hash in the bundle core is BLAKE3 in derive-key mode; the context
string provides domain separation between purposes.
"""

from __future__ import annotations

from blake3 import blake3

from ..config import (
    DOMAIN_PRF_EXPAND,
    DOMAIN_PRF_NF,
    DOMAIN_PRF_OCK,
)

WIDE_HASH_SIZE = 64


def hasher(context: str) -> blake3:
    return blake3(derive_key_context=context)


def _length_prefixed(*parts: bytes) -> bytes:
    buf = bytearray()
    for part in parts:
        buf += len(part).to_bytes(4, "big")
        buf += part
    return bytes(buf)


def wide_hash(context: str, *parts: bytes) -> bytes:
    h = hasher(context)
    h.update(_length_prefixed(*parts))
    return h.digest(length=WIDE_HASH_SIZE)


def prf_expand(sk: bytes, t: bytes) -> bytes:
    """PRF^expand(sk, t): 64 pseudorandom bytes keyed by `sk`."""
    return wide_hash(DOMAIN_PRF_EXPAND, bytes(sk), bytes(t))


def prf_nf(nk: bytes, rho: bytes) -> bytes:
    return wide_hash(DOMAIN_PRF_NF, bytes(nk), bytes(rho))


def prf_ock(ovk: bytes, cv: bytes, cmx: bytes, epk: bytes) -> bytes:
    h = hasher(DOMAIN_PRF_OCK)
    h.update(_length_prefixed(ovk, cv, cmx, epk))
    return h.digest()

