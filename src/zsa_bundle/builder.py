"""Bundle builder.

Collects spend and output requests, partitions them by asset, pads every
partition to equal numbers of spends and outputs, and builds one action per
pair. Padding follows the asset:

* native asset: dummy spends and zero-valued dummy outputs; the residual
  value becomes the bundle's declared value balance;
* custom assets: extra outputs are paired with split copies of the first
  real spend of that asset, extra spends with zero-valued dummy outputs.
  The net value of a custom asset must equal its declared burn.

Partitions are emitted in first-appearance order (spends, then outputs),
each in request order with padding last unless `shuffle` is set, followed
by native dummy pairs up to MIN_ACTIONS.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from secrets import SystemRandom
from typing import Any, Optional

from .action import OutputInfo, SpendInfo, SpendKind, build_action
from .asset_base import AssetBase
from .bundle import (
    DISABLED_FLAGS,
    ENABLED_WITH_ZSA,
    ENABLED_WITHOUT_ZSA,
    SPENDS_DISABLED,
    Bundle,
    Flags,
    Unauthorized,
    check_distinct_nullifiers,
    validate_bundle_burn,
)
from .config import I64_MAX, I64_MIN, MAX_ACTIONS, MAX_NOTE_VALUE, MIN_ACTIONS
from .encryption import DEFAULT_MEMO, ChaChaNoteEncryption, NoteEncryption
from .errors import BundleError, ErrorCode
from .keys import Address, FullViewingKey
from .note import Note
from .transient import ActionSecrets, BundleSecrets
from .value import BindingSigningKey, check_note_value, check_value_sum, value_sum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BundleType:
    flags: Flags
    # Produce an all-dummy bundle even when nothing was requested.
    bundle_required: bool = False
    # Coinbase bundles have spends disabled and are never padded.
    coinbase: bool = False

    def num_actions(self, requested: int) -> int:
        """Action count for `requested` padded spend/output pairs across all assets."""
        if self.coinbase:
            return requested
        if self.bundle_required or requested > 0:
            return max(requested, MIN_ACTIONS)
        return 0


DEFAULT_VANILLA = BundleType(ENABLED_WITHOUT_ZSA)
DEFAULT_ZSA = BundleType(ENABLED_WITH_ZSA)
COINBASE = BundleType(SPENDS_DISABLED, coinbase=True)
DISABLED = BundleType(DISABLED_FLAGS)


@dataclass
class BundleMetadata:
    """Where each requested spend and output ended up in the bundle."""

    spend_indices: list[Optional[int]]
    output_indices: list[Optional[int]]

    def spend_action_index(self, n: int) -> Optional[int]:
        return self.spend_indices[n]

    def output_action_index(self, n: int) -> Optional[int]:
        return self.output_indices[n]


@dataclass
class _Partition:
    spends: list[tuple[SpendInfo, Optional[int]]] = field(default_factory=list)
    outputs: list[tuple[OutputInfo, Optional[int]]] = field(default_factory=list)

    @property
    def size(self) -> int:
        return max(len(self.spends), len(self.outputs))

    def net_value(self) -> int:
        total = sum(spend.counted_value for spend, _ in self.spends)
        total -= sum(output.value for output, _ in self.outputs)
        return total


class Builder:
    def __init__(
        self,
        bundle_type: BundleType = DEFAULT_VANILLA,
        note_encryption: Optional[NoteEncryption] = None,
        max_actions: int = MAX_ACTIONS,
        shuffle: bool = False,
    ):
        self.bundle_type = bundle_type
        self.note_encryption = note_encryption if note_encryption is not None else ChaChaNoteEncryption()
        self.max_actions = max_actions
        self.shuffle = shuffle
        self.spends: list[SpendInfo] = []
        self.outputs: list[OutputInfo] = []
        self.burn: dict[AssetBase, int] = {}

    @property
    def flags(self) -> Flags:
        return self.bundle_type.flags

    def add_spend(self, fvk: FullViewingKey, note: Note, merkle_path: Any = None) -> None:
        if not self.flags.spends_enabled:
            raise BundleError(ErrorCode.SPENDS_DISABLED, "spends are disabled for this bundle type")
        self.spends.append(SpendInfo.real(fvk, note, merkle_path))

    def add_output(
        self,
        recipient: Address,
        value: int,
        asset: Optional[AssetBase] = None,
        memo: Optional[bytes] = None,
        ovk: Optional[bytes] = None,
    ) -> None:
        if not self.flags.outputs_enabled:
            raise BundleError(ErrorCode.OUTPUTS_DISABLED, "outputs are disabled for this bundle type")
        asset = AssetBase.native() if asset is None else asset
        memo = DEFAULT_MEMO if memo is None else memo
        self.outputs.append(OutputInfo(recipient, value, asset, memo, ovk))

    def add_burn(self, asset: AssetBase, value: int) -> None:
        if asset.is_native():
            raise BundleError(ErrorCode.BURN_NATIVE_ASSET, "the native asset cannot be burned")
        if value <= 0:
            raise BundleError(ErrorCode.BURN_ZERO_VALUE, f"burn amount must be positive, got {value}")
        check_note_value(value)
        total = self.burn.get(asset, 0) + value
        if total > MAX_NOTE_VALUE:
            raise BundleError(ErrorCode.VALUE_OVERFLOW, f"total burn of {asset!r} overflows u64")
        self.burn[asset] = total

    def value_balance(self) -> int:
        """Native value entering (positive) or leaving the shielded pool."""
        total = 0
        for spend in self.spends:
            if spend.asset.is_native():
                total = check_value_sum(total + spend.note.value)
        for output in self.outputs:
            if output.asset.is_native():
                total = check_value_sum(total - output.value)
        return total

    def _partition(self) -> dict[AssetBase, _Partition]:
        partitions: dict[AssetBase, _Partition] = {}
        for index, spend in enumerate(self.spends):
            partitions.setdefault(spend.asset, _Partition()).spends.append((spend, index))
        for index, output in enumerate(self.outputs):
            partitions.setdefault(output.asset, _Partition()).outputs.append((output, index))
        return partitions

    def _check_balances(self, partitions: dict[AssetBase, _Partition]) -> None:
        for asset, part in partitions.items():
            if asset.is_native():
                net = check_value_sum(part.net_value())
                if net < I64_MIN or net > I64_MAX:
                    raise BundleError(ErrorCode.VALUE_OVERFLOW, f"value balance {net} does not fit i64")
                continue
            if not self.flags.zsa_enabled:
                raise BundleError(ErrorCode.ZSA_DISABLED, f"custom asset {asset!r} needs ZSA enabled")
            if len(part.outputs) > len(part.spends) and not part.spends:
                raise BundleError(ErrorCode.NO_SPEND_TO_SPLIT, f"no spend of {asset!r} to split for padding")
            net = check_value_sum(part.net_value())
            declared = self.burn.get(asset, 0)
            if net != declared:
                raise BundleError(
                    ErrorCode.BURN_EXCEEDS_BALANCE,
                    f"asset {asset!r} has net value {net} but burn {declared} was declared",
                )
        for asset, amount in self.burn.items():
            if asset not in partitions:
                raise BundleError(
                    ErrorCode.BURN_EXCEEDS_BALANCE, f"burn of {amount} {asset!r} with no spends of that asset"
                )

    def _pad(self, asset: AssetBase, part: _Partition, rng) -> list:
        count = part.size
        spends = list(part.spends)
        outputs = list(part.outputs)
        if asset.is_native():
            while len(spends) < count:
                spends.append((SpendInfo.dummy(rng, asset), None))
        else:
            source, source_index = part.spends[0] if part.spends else (None, None)
            while len(spends) < count:
                spends.append((source.split(rng, source_index), None))
        while len(outputs) < count:
            outputs.append((OutputInfo.dummy(rng, asset), None))
        if self.shuffle:
            rng.shuffle(spends)
            rng.shuffle(outputs)
        logger.debug(
            f"Asset {asset!r}: {len(part.spends)} spends, {len(part.outputs)} outputs, padded to {count}"
        )
        return list(zip(spends, outputs))

    def build(self, rng=None) -> Optional[tuple[Bundle, BundleSecrets, BundleMetadata]]:
        """Build an unauthorized bundle, or None if there is nothing to build."""
        if rng is None:
            rng = SystemRandom()
        partitions = self._partition()
        if not partitions and not self.bundle_type.bundle_required and not self.burn:
            return None

        validate_bundle_burn(list(self.burn.items()))
        self._check_balances(partitions)

        n_actions = self.bundle_type.num_actions(sum(part.size for part in partitions.values()))
        if n_actions > self.max_actions:
            raise BundleError(
                ErrorCode.TOO_MANY_ACTIONS, f"{n_actions} actions exceed the maximum of {self.max_actions}"
            )

        pairs = []
        for asset, part in partitions.items():
            pairs.extend(self._pad(asset, part, rng))
        native = AssetBase.native()
        while len(pairs) < n_actions:
            pairs.append(((SpendInfo.dummy(rng, native), None), (OutputInfo.dummy(rng, native), None)))
        if not pairs:
            return None

        metadata = BundleMetadata([None] * len(self.spends), [None] * len(self.outputs))
        actions = []
        witnesses = []
        secrets = BundleSecrets()
        value_balance = 0
        for action_index, ((spend, spend_index), (output, output_index)) in enumerate(pairs):
            if spend_index is not None:
                metadata.spend_indices[spend_index] = action_index
            if output_index is not None:
                metadata.output_indices[output_index] = action_index
            if spend.asset.is_native():
                value_balance = check_value_sum(
                    value_balance + value_sum(spend.note.value, output.value, spend.kind is SpendKind.SPLIT)
                )

            built = build_action(spend, output, rng, self.note_encryption)
            actions.append(built.action)
            witnesses.append(built.witness)
            is_dummy = spend.kind is SpendKind.DUMMY
            secrets.actions.append(
                ActionSecrets(
                    rcv=built.rcv,
                    alpha=built.alpha,
                    kind=spend.kind,
                    ak=None if is_dummy else spend.fvk.ak,
                    dummy_ask=spend.dummy_sk.authorizing_key() if is_dummy else None,
                )
            )

        if value_balance < I64_MIN or value_balance > I64_MAX:
            raise BundleError(ErrorCode.VALUE_OVERFLOW, f"value balance {value_balance} does not fit i64")

        check_distinct_nullifiers(actions)
        bundle = Bundle(
            actions=tuple(actions),
            flags=self.flags,
            value_balance=value_balance,
            burn=tuple(self.burn.items()),
            authorization=Unauthorized(tuple(witnesses)),
        )

        with BindingSigningKey(secrets.rcvs()) as bsk:
            if bsk.verification_key() != bundle.binding_validating_key().into_bvk():
                raise BundleError(ErrorCode.UNBALANCED_BUNDLE, "binding key does not match value commitments")

        logger.debug(
            f"Built bundle: {len(actions)} actions, value_balance={value_balance}, "
            f"{len(bundle.burn)} burn entries"
        )
        return bundle, secrets, metadata
