"""Helpers to serialize bundles and notes into fixture JSON."""

from __future__ import annotations

from typing import Any

from zsa_bundle.action import Action
from zsa_bundle.bundle import Bundle, BundleState
from zsa_bundle.encoding import encode_bundle
from zsa_bundle.note import Note


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def note_to_json(note: Note) -> dict[str, Any]:
    result: dict[str, Any] = {
        "recipient": _bytes_to_hex(note.recipient.to_raw_bytes()),
        "value": note.value,
        "asset": _bytes_to_hex(note.asset.to_bytes()),
        "rho": _bytes_to_hex(note.rho.to_bytes()),
        "rseed": _bytes_to_hex(note.rseed.data),
        "cmx": _bytes_to_hex(note.cmx()),
    }
    if note.rseed_split is not None:
        result["rseed_split"] = _bytes_to_hex(note.rseed_split.data)
    return result


def action_to_json(action: Action) -> dict[str, Any]:
    result: dict[str, Any] = {
        "cv_net": _bytes_to_hex(action.cv_net.to_bytes()),
        "nullifier": _bytes_to_hex(action.nullifier.to_bytes()),
        "rk": _bytes_to_hex(action.rk.to_bytes()),
        "cmx": _bytes_to_hex(action.cmx),
        "epk": _bytes_to_hex(action.encrypted_note.epk_bytes),
    }
    if action.spend_auth_sig is not None:
        result["spend_auth_sig"] = _bytes_to_hex(action.spend_auth_sig.to_bytes())
    return result


def bundle_to_json(bundle: Bundle) -> dict[str, Any]:
    result: dict[str, Any] = {
        "state": bundle.state.value,
        "flags": bundle.flags.to_byte(),
        "value_balance": bundle.value_balance,
        "burn": [
            {"asset": _bytes_to_hex(asset.to_bytes()), "amount": amount} for asset, amount in bundle.burn
        ],
        "actions": [action_to_json(a) for a in bundle.actions],
        "commitment": _bytes_to_hex(bundle.commitment()),
    }
    if bundle.state is BundleState.AUTHORIZED:
        result["authorizing_commitment"] = _bytes_to_hex(bundle.authorizing_commitment())
        result["binding_sig"] = _bytes_to_hex(bundle.authorization.binding_signature.to_bytes())
        result["encoded"] = _bytes_to_hex(encode_bundle(bundle))
    return result
