"""Generate deterministic asset, note, value-commitment and bundle YAML vectors.

Run from the repository root: python -m tools.gen_bundle_vectors
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import Any

from zsa_bundle import authorization
from zsa_bundle.builder import DEFAULT_ZSA, Builder
from zsa_bundle.note import Nullifier, Rho, derive_note
from zsa_bundle.proof import TranscriptProofSystem
from zsa_bundle.test_keys import ALICE, ALICE_ASK, ALICE_FVK, ASSET_A, ASSET_B, BOB, ISSUER_KEY, NATIVE, received_note
from zsa_bundle.value import commit

from tools.fixtures_io import bundle_to_json, note_to_json
from tools.yaml_dump import write_yaml

ROOT = Path(__file__).resolve().parent.parent
SEED = 0x5EED


def asset_vectors() -> dict[str, Any]:
    cases = [{"name": "native", "asset": NATIVE.to_bytes().hex()}]
    for desc, asset in (("Asset A", ASSET_A), ("Asset B", ASSET_B)):
        cases.append(
            {
                "name": desc,
                "issuer_key": ISSUER_KEY.hex(),
                "description": desc,
                "asset": asset.to_bytes().hex(),
            }
        )
    return {"algorithm": "zsa_asset_base", "test_vectors": cases}


def note_vectors() -> dict[str, Any]:
    rng = random.Random(SEED)
    cases = []
    for value, asset in ((0, NATIVE), (42, NATIVE), (1000, ASSET_A), ((1 << 64) - 1, ASSET_B)):
        rho = Rho.from_nf_old(Nullifier.dummy(rng))
        note = derive_note(rng.randbytes(32), rho, ALICE, value, asset)
        case = note_to_json(note)
        case["nk"] = ALICE_FVK.nk.hex()
        case["nullifier"] = note.nullifier(ALICE_FVK.nk).to_bytes().hex()
        cases.append(case)
    return {"algorithm": "zsa_note", "test_vectors": cases}


def value_commitment_vectors() -> dict[str, Any]:
    rng = random.Random(SEED)
    cases = []
    for value, asset in ((0, NATIVE), (5, NATIVE), (-5, NATIVE), (7, ASSET_A)):
        rcv = rng.randrange(1 << 250)
        cases.append(
            {
                "value": value,
                "asset": asset.to_bytes().hex(),
                "rcv": rcv.to_bytes(32, "little").hex(),
                "cv_net": commit(value, asset, rcv).to_bytes().hex(),
            }
        )
    return {"algorithm": "zsa_value_commitment", "test_vectors": cases}


def bundle_vectors() -> dict[str, Any]:
    rng = random.Random(SEED)
    sighash = bytes(range(32))
    builder = Builder(DEFAULT_ZSA)
    builder.add_spend(ALICE_FVK, received_note(ALICE_FVK, 5, NATIVE, rng))
    builder.add_spend(ALICE_FVK, received_note(ALICE_FVK, 10, ASSET_A, rng))
    builder.add_output(BOB, 3)
    builder.add_output(BOB, 4, ASSET_A)
    builder.add_output(BOB, 2, ASSET_A)
    builder.add_burn(ASSET_A, 4)
    bundle, secrets, _ = builder.build(rng)
    proof_system = TranscriptProofSystem()
    proven = authorization.create_proof(bundle, proof_system)
    final = authorization.apply_signatures(proven, secrets, sighash, [ALICE_ASK], rng)
    case = bundle_to_json(final)
    case["name"] = "native_and_asset_a_with_burn"
    case["sighash"] = sighash.hex()
    return {"algorithm": "zsa_bundle", "test_vectors": [case]}


def main() -> None:
    out = ROOT / "fixtures" / "bundle"
    write_yaml(out / "asset_base.yaml", asset_vectors())
    write_yaml(out / "note.yaml", note_vectors())
    write_yaml(out / "value_commitment.yaml", value_commitment_vectors())
    write_yaml(out / "bundle.yaml", bundle_vectors())


if __name__ == "__main__":
    main()
