"""Bundle builder: partitioning, padding, balance and construction errors."""

from __future__ import annotations

import random
from collections import defaultdict

import pytest

from zsa_bundle.action import SpendKind
from zsa_bundle.builder import (
    COINBASE,
    DEFAULT_VANILLA,
    DEFAULT_ZSA,
    DISABLED,
    Builder,
    BundleType,
)
from zsa_bundle.bundle import ENABLED_WITHOUT_ZSA, BundleState
from zsa_bundle.config import I64_MAX, MAX_NOTE_VALUE, MIN_ACTIONS
from zsa_bundle.crypto.pallas import VALUE_COMMIT_R
from zsa_bundle.errors import BundleError, ErrorCode
from zsa_bundle.test_keys import ALICE_FVK, ASSET_A, ASSET_B, BOB, BOB_FVK, NATIVE, received_note
from zsa_bundle.value import aggregate_bsk


def _spend(builder: Builder, rng, value: int, asset=NATIVE, fvk=ALICE_FVK):
    note = received_note(fvk, value, asset, rng)
    builder.add_spend(fvk, note, merkle_path=f"path-{len(builder.spends)}")
    return note


def _net_by_asset(bundle) -> dict[bytes, int]:
    """Per-asset sum of counted spend value minus output value, from the witnesses."""
    totals: dict[bytes, int] = defaultdict(int)
    for witness in bundle.authorization.witnesses:
        counted = 0 if witness.spend_note.is_split else witness.spend_note.value
        totals[witness.spend_note.asset.to_bytes()] += counted - witness.output_note.value
    return dict(totals)


def _assert_balanced(bundle, secrets) -> None:
    assert bundle.binding_validating_key().into_bvk() == VALUE_COMMIT_R * aggregate_bsk(secrets.rcvs())
    nets = _net_by_asset(bundle)
    assert nets.pop(NATIVE.to_bytes(), 0) == bundle.value_balance
    burned = {asset.to_bytes(): amount for asset, amount in bundle.burn}
    assert {k: v for k, v in nets.items() if v} == burned


def test_scenario_two_assets_with_declared_burn(rng) -> None:
    builder = Builder(DEFAULT_ZSA)
    _spend(builder, rng, 5, ASSET_A)
    _spend(builder, rng, 3, ASSET_A)
    _spend(builder, rng, 10, ASSET_B)
    builder.add_output(BOB, 8, ASSET_A)
    builder.add_burn(ASSET_B, 10)

    bundle, secrets, metadata = builder.build(rng)

    assert len(bundle.actions) == 3
    assert bundle.state is BundleState.UNAUTHORIZED
    assert bundle.value_balance == 0
    assert bundle.burn == ((ASSET_B, 10),)
    assert all(s.kind is SpendKind.REAL for s in secrets.actions)
    assert [metadata.spend_action_index(i) for i in range(3)] == [0, 1, 2]
    assert metadata.output_action_index(0) == 0
    assert [w.output_note.value for w in bundle.authorization.witnesses] == [8, 0, 0]
    _assert_balanced(bundle, secrets)


def test_scenario_undeclared_burn_fails(rng) -> None:
    builder = Builder(DEFAULT_ZSA)
    _spend(builder, rng, 5, ASSET_A)
    _spend(builder, rng, 3, ASSET_A)
    _spend(builder, rng, 10, ASSET_B)
    builder.add_output(BOB, 8, ASSET_A)
    with pytest.raises(BundleError) as exc:
        builder.build(rng)
    assert exc.value.code == ErrorCode.BURN_EXCEEDS_BALANCE


def test_scenario_output_without_spend_of_custom_asset(rng) -> None:
    builder = Builder(DEFAULT_ZSA)
    builder.add_output(BOB, 7, ASSET_A)
    with pytest.raises(BundleError) as exc:
        builder.build(rng)
    assert exc.value.code == ErrorCode.NO_SPEND_TO_SPLIT


def test_scenario_native_output_is_padded_with_dummy_spends(rng) -> None:
    builder = Builder(DEFAULT_VANILLA)
    builder.add_output(BOB, 7)
    bundle, secrets, metadata = builder.build(rng)
    assert len(bundle.actions) == MIN_ACTIONS
    assert bundle.value_balance == -7
    assert [s.kind for s in secrets.actions] == [SpendKind.DUMMY, SpendKind.DUMMY]
    assert metadata.output_action_index(0) == 0
    _assert_balanced(bundle, secrets)


def test_custom_outputs_are_padded_with_split_notes(rng) -> None:
    builder = Builder(DEFAULT_ZSA)
    source = _spend(builder, rng, 10, ASSET_A)
    builder.add_output(BOB, 4, ASSET_A)
    builder.add_output(BOB, 6, ASSET_A)
    bundle, secrets, metadata = builder.build(rng)

    assert len(bundle.actions) == 2
    assert [s.kind for s in secrets.actions] == [SpendKind.REAL, SpendKind.SPLIT]
    split_witness = bundle.authorization.witnesses[1]
    assert split_witness.spend_note.is_split
    assert split_witness.spend_note.value == source.value
    assert split_witness.spend_note.cmx() == source.cmx()
    assert bundle.actions[0].nullifier != bundle.actions[1].nullifier
    assert metadata.spend_action_index(0) == 0
    assert [metadata.output_action_index(i) for i in range(2)] == [0, 1]
    assert bundle.value_balance == 0
    _assert_balanced(bundle, secrets)


def test_extra_spends_are_padded_with_zero_outputs(rng) -> None:
    builder = Builder(DEFAULT_VANILLA)
    for value in (1, 2, 3):
        _spend(builder, rng, value)
    builder.add_output(BOB, 5)
    bundle, secrets, _ = builder.build(rng)
    assert len(bundle.actions) == 3
    assert [w.output_note.value for w in bundle.authorization.witnesses] == [5, 0, 0]
    assert bundle.value_balance == 1
    _assert_balanced(bundle, secrets)


def test_padding_balances_spends_and_outputs_per_asset(rng) -> None:
    builder = Builder(DEFAULT_ZSA)
    _spend(builder, rng, 20, ASSET_A)
    for value in (5, 5, 5):
        builder.add_output(BOB, value, ASSET_A)
    _spend(builder, rng, 4)
    _spend(builder, rng, 4)
    builder.add_burn(ASSET_A, 5)
    bundle, secrets, _ = builder.build(rng)

    assets = [w.spend_note.asset for w in bundle.authorization.witnesses]
    assert assets == [ASSET_A, ASSET_A, ASSET_A, NATIVE, NATIVE]
    for witness in bundle.authorization.witnesses:
        assert witness.spend_note.asset == witness.output_note.asset
    assert bundle.value_balance == 8
    _assert_balanced(bundle, secrets)


def test_nullifiers_are_distinct(rng) -> None:
    builder = Builder(DEFAULT_ZSA)
    _spend(builder, rng, 9, ASSET_A)
    for _ in range(4):
        builder.add_output(BOB, 2, ASSET_A)
    builder.add_burn(ASSET_A, 1)
    bundle, _, _ = builder.build(rng)
    nfs = [nf.to_bytes() for nf in bundle.nullifiers()]
    assert len(set(nfs)) == len(nfs) == 4


def test_build_is_reproducible_with_seeded_rng() -> None:
    def build(seed: int) -> bytes:
        rng = random.Random(seed)
        builder = Builder(DEFAULT_VANILLA)
        _spend(builder, rng, 10)
        builder.add_output(BOB, 3)
        bundle, _, _ = builder.build(rng)
        return bundle.commitment()

    assert build(7) == build(7)
    assert build(7) != build(8)


def test_shuffle_keeps_metadata_consistent(rng) -> None:
    builder = Builder(DEFAULT_VANILLA, shuffle=True)
    notes = [_spend(builder, rng, value) for value in (1, 2, 3, 4)]
    builder.add_output(BOB, 6)
    builder.add_output(BOB, 3)
    bundle, secrets, metadata = builder.build(rng)

    witnesses = bundle.authorization.witnesses
    for i, note in enumerate(notes):
        assert witnesses[metadata.spend_action_index(i)].spend_note == note
    assert witnesses[metadata.output_action_index(0)].output_note.value == 6
    assert witnesses[metadata.output_action_index(1)].output_note.value == 3
    _assert_balanced(bundle, secrets)


def test_empty_builder_produces_nothing(rng) -> None:
    assert Builder(DEFAULT_VANILLA).build(rng) is None


def test_bundle_required_produces_dummy_bundle(rng) -> None:
    bundle, secrets, metadata = Builder(BundleType(ENABLED_WITHOUT_ZSA, bundle_required=True)).build(rng)
    assert len(bundle.actions) == MIN_ACTIONS
    assert bundle.value_balance == 0
    assert all(s.kind is SpendKind.DUMMY for s in secrets.actions)
    assert metadata.spend_indices == [] and metadata.output_indices == []


def test_coinbase_is_not_padded(rng) -> None:
    builder = Builder(COINBASE)
    builder.add_output(BOB, 50)
    bundle, secrets, _ = builder.build(rng)
    assert len(bundle.actions) == 1
    assert bundle.value_balance == -50
    assert not bundle.flags.spends_enabled
    _assert_balanced(bundle, secrets)


def test_coinbase_rejects_spends(rng) -> None:
    builder = Builder(COINBASE)
    with pytest.raises(BundleError) as exc:
        builder.add_spend(ALICE_FVK, received_note(ALICE_FVK, 1, NATIVE, rng))
    assert exc.value.code == ErrorCode.SPENDS_DISABLED


def test_disabled_bundle_rejects_outputs() -> None:
    with pytest.raises(BundleError) as exc:
        Builder(DISABLED).add_output(BOB, 1)
    assert exc.value.code == ErrorCode.OUTPUTS_DISABLED


def test_custom_asset_requires_zsa(rng) -> None:
    builder = Builder(DEFAULT_VANILLA)
    _spend(builder, rng, 5, ASSET_A)
    builder.add_output(BOB, 5, ASSET_A)
    with pytest.raises(BundleError) as exc:
        builder.build(rng)
    assert exc.value.code == ErrorCode.ZSA_DISABLED


def test_spend_with_wrong_key_is_rejected(rng) -> None:
    builder = Builder(DEFAULT_VANILLA)
    with pytest.raises(BundleError) as exc:
        builder.add_spend(BOB_FVK, received_note(ALICE_FVK, 1, NATIVE, rng))
    assert exc.value.code == ErrorCode.FVK_MISMATCH


def test_too_many_actions_fails_before_building(rng) -> None:
    builder = Builder(DEFAULT_VANILLA, max_actions=2)
    for _ in range(3):
        builder.add_output(BOB, 1)
    with pytest.raises(BundleError) as exc:
        builder.build(rng)
    assert exc.value.code == ErrorCode.TOO_MANY_ACTIONS


def test_value_balance_must_fit_i64(rng) -> None:
    builder = Builder(DEFAULT_VANILLA)
    _spend(builder, rng, I64_MAX + 1)
    with pytest.raises(BundleError) as exc:
        builder.build(rng)
    assert exc.value.code == ErrorCode.VALUE_OVERFLOW


def test_value_sum_overflow(rng) -> None:
    builder = Builder(DEFAULT_VANILLA)
    _spend(builder, rng, MAX_NOTE_VALUE)
    _spend(builder, rng, MAX_NOTE_VALUE)
    with pytest.raises(BundleError) as exc:
        builder.value_balance()
    assert exc.value.code == ErrorCode.VALUE_OVERFLOW
    with pytest.raises(BundleError) as exc:
        builder.build(rng)
    assert exc.value.code == ErrorCode.VALUE_OVERFLOW


def test_output_value_out_of_range() -> None:
    with pytest.raises(BundleError) as exc:
        Builder(DEFAULT_VANILLA).add_output(BOB, MAX_NOTE_VALUE + 1)
    assert exc.value.code == ErrorCode.VALUE_OVERFLOW


def test_value_balance_tracks_native_requests(rng) -> None:
    builder = Builder(DEFAULT_ZSA)
    _spend(builder, rng, 10)
    _spend(builder, rng, 7, ASSET_A)
    builder.add_output(BOB, 4)
    builder.add_output(BOB, 7, ASSET_A)
    assert builder.value_balance() == 6


def test_num_actions() -> None:
    assert DEFAULT_VANILLA.num_actions(0) == 0
    assert DEFAULT_VANILLA.num_actions(1) == MIN_ACTIONS
    assert DEFAULT_VANILLA.num_actions(5) == 5
    assert BundleType(ENABLED_WITHOUT_ZSA, bundle_required=True).num_actions(0) == MIN_ACTIONS
    assert COINBASE.num_actions(1) == 1
    assert COINBASE.num_actions(0) == 0


@pytest.mark.parametrize("bundle_type", [DEFAULT_VANILLA, COINBASE, BundleType(DEFAULT_ZSA.flags, coinbase=True)])
def test_build_pads_to_bundle_type_action_count(bundle_type, rng) -> None:
    builder = Builder(bundle_type)
    builder.add_output(BOB, 3)
    bundle, _, _ = builder.build(rng)
    assert len(bundle.actions) == bundle_type.num_actions(1)
