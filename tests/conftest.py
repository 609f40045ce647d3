"""Shared fixtures and the vector dump hook."""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Any, Callable

import pytest

from zsa_bundle import authorization
from zsa_bundle.builder import DEFAULT_ZSA, Builder
from zsa_bundle.bundle import Bundle
from zsa_bundle.proof import TranscriptProofSystem
from zsa_bundle.test_keys import ALICE_ASK, ALICE_FVK, ASSET_A, BOB, NATIVE, received_note
from zsa_bundle.transient import BundleSecrets

_VECTOR_CASES: dict[str, list[dict[str, Any]]] = {}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated vectors",
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(0x5EED)


@pytest.fixture
def proof_system() -> TranscriptProofSystem:
    return TranscriptProofSystem()


@pytest.fixture
def sighash() -> bytes:
    return bytes(range(32))


@pytest.fixture
def unauthorized_bundle(rng) -> tuple[Bundle, BundleSecrets]:
    """Alice spends 5 and 3 of the native asset and 10 of ASSET_A, sends 6 native to Bob, burns 4 ASSET_A."""
    builder = Builder(DEFAULT_ZSA)
    builder.add_spend(ALICE_FVK, received_note(ALICE_FVK, 5, NATIVE, rng), merkle_path="path-0")
    builder.add_spend(ALICE_FVK, received_note(ALICE_FVK, 3, NATIVE, rng), merkle_path="path-1")
    builder.add_spend(ALICE_FVK, received_note(ALICE_FVK, 10, ASSET_A, rng), merkle_path="path-2")
    builder.add_output(BOB, 6)
    builder.add_output(BOB, 6, ASSET_A)
    builder.add_burn(ASSET_A, 4)
    bundle, secrets, _ = builder.build(rng)
    return bundle, secrets


@pytest.fixture
def authorized_bundle(unauthorized_bundle, proof_system, sighash, rng) -> Bundle:
    bundle, secrets = unauthorized_bundle
    proven = authorization.create_proof(bundle, proof_system)
    return authorization.apply_signatures(proven, secrets, sighash, [ALICE_ASK], rng)


@pytest.fixture
def vector_test_group() -> Callable[[str, dict[str, Any]], None]:
    """Collect pre-built test_vectors under a specific fixture path."""

    def _vector_test_group(rel_path: str, vector: dict[str, Any]) -> None:
        _VECTOR_CASES.setdefault(rel_path, []).append(vector)

    return _vector_test_group


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, vectors in _VECTOR_CASES.items():
        if not vectors:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"test_vectors": vectors}, indent=2))
