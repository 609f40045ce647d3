"""Group arithmetic, encodings and RedPallas signatures."""

from __future__ import annotations

import random

import pytest
from ecdsa import numbertheory

from zsa_bundle.crypto import redpallas
from zsa_bundle.crypto.pallas import (
    CURVE_B,
    GENERATOR,
    NATIVE_ASSET_V,
    P,
    Q,
    SPEND_AUTH_G,
    VALUE_COMMIT_R,
    Point,
    hash_to_curve,
    scalar_from_bytes,
    scalar_to_bytes,
)
from zsa_bundle.crypto.redpallas import SigType, Signature
from zsa_bundle.errors import BundleError, ErrorCode


def _on_curve(point: Point) -> bool:
    x, y = point.affine()
    return (y * y - x * x * x - CURVE_B) % P == 0


def test_generator_has_prime_order() -> None:
    assert _on_curve(GENERATOR)
    assert (GENERATOR * (Q - 1) + GENERATOR).is_identity()
    assert not (GENERATOR * (Q - 1)).is_identity()


def test_identity_encodes_as_zero_bytes() -> None:
    identity = Point.identity()
    assert identity.to_bytes() == bytes(32)
    assert Point.from_bytes(bytes(32)).is_identity()
    assert identity + GENERATOR == GENERATOR
    assert (GENERATOR - GENERATOR).is_identity()
    assert identity.extract_x() == 0


@pytest.mark.parametrize("k", [1, 2, 7, 0xDEADBEEF, Q - 1])
def test_point_encoding_round_trip(k: int) -> None:
    point = GENERATOR * k
    decoded = Point.from_bytes(point.to_bytes())
    assert decoded == point
    assert decoded.affine() == point.affine()


def test_negation_flips_only_the_sign_bit() -> None:
    point = GENERATOR * 12345
    a = point.to_bytes()
    b = (-point).to_bytes()
    assert a[:31] == b[:31]
    assert a[31] ^ b[31] == 0x80


def test_scalar_multiplication_distributes() -> None:
    assert GENERATOR * 3 + GENERATOR * 4 == GENERATOR * 7
    assert 5 * GENERATOR == GENERATOR * 5
    assert GENERATOR * (Q + 2) == GENERATOR * 2


def test_from_bytes_rejects_non_canonical_x() -> None:
    with pytest.raises(BundleError) as exc:
        Point.from_bytes(P.to_bytes(32, "little"))
    assert exc.value.code == ErrorCode.INVALID_ENCODING


def test_from_bytes_rejects_x_off_curve() -> None:
    x = 1
    while numbertheory.jacobi((x ** 3 + CURVE_B) % P, P) != -1:
        x += 1
    with pytest.raises(BundleError) as exc:
        Point.from_bytes(x.to_bytes(32, "little"))
    assert exc.value.code == ErrorCode.INVALID_ENCODING


def test_from_bytes_rejects_wrong_length() -> None:
    with pytest.raises(BundleError):
        Point.from_bytes(bytes(31))


def test_hash_to_curve_is_deterministic_and_separated() -> None:
    a = hash_to_curve(b"domain-a", b"msg")
    assert a == hash_to_curve(b"domain-a", b"msg")
    assert a != hash_to_curve(b"domain-b", b"msg")
    assert a != hash_to_curve(b"domain-a", b"msg2")
    assert _on_curve(a)


def test_fixed_generators_are_distinct() -> None:
    gens = {GENERATOR.to_bytes(), SPEND_AUTH_G.to_bytes(), VALUE_COMMIT_R.to_bytes(), NATIVE_ASSET_V.to_bytes()}
    assert len(gens) == 4


def test_scalar_from_bytes_rejects_non_canonical() -> None:
    assert scalar_from_bytes(scalar_to_bytes(Q - 1)) == Q - 1
    with pytest.raises(BundleError) as exc:
        scalar_from_bytes(Q.to_bytes(32, "little"))
    assert exc.value.code == ErrorCode.INVALID_ENCODING


def test_redpallas_sign_and_verify() -> None:
    rng = random.Random(1)
    sk = 0x1234567890
    vk = redpallas.verification_key(SigType.SPEND_AUTH, sk)
    sig = redpallas.sign(SigType.SPEND_AUTH, sk, b"message", rng)
    assert redpallas.verify(SigType.SPEND_AUTH, vk, b"message", sig)
    assert not redpallas.verify(SigType.SPEND_AUTH, vk, b"other message", sig)
    assert Signature.from_bytes(sig.to_bytes()) == sig


def test_redpallas_rerandomized_keys_match() -> None:
    rng = random.Random(2)
    sk = 0xABCDEF
    alpha = 0x42
    vk = redpallas.verification_key(SigType.SPEND_AUTH, sk)
    rk = redpallas.randomize_vk(SigType.SPEND_AUTH, vk, alpha)
    rsk = redpallas.randomize_sk(sk, alpha)
    sig = redpallas.sign(SigType.SPEND_AUTH, rsk, b"sighash", rng)
    assert redpallas.verify(SigType.SPEND_AUTH, rk, b"sighash", sig)
    assert not redpallas.verify(SigType.SPEND_AUTH, vk, b"sighash", sig)


def test_redpallas_signature_kinds_use_different_bases() -> None:
    rng = random.Random(3)
    sk = 99
    sig = redpallas.sign(SigType.SPEND_AUTH, sk, b"m", rng)
    binding_vk = redpallas.verification_key(SigType.BINDING, sk)
    assert not redpallas.verify(SigType.BINDING, binding_vk, b"m", sig)


def test_redpallas_rejects_non_canonical_s() -> None:
    rng = random.Random(4)
    sk = 7
    vk = redpallas.verification_key(SigType.SPEND_AUTH, sk)
    sig = redpallas.sign(SigType.SPEND_AUTH, sk, b"m", rng)
    s = int.from_bytes(sig.s_bytes, "little")
    forged = Signature(sig.r_bytes, (s + Q).to_bytes(32, "little"))
    assert not redpallas.verify(SigType.SPEND_AUTH, vk, b"m", forged)
