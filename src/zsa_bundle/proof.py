"""Proof-system boundary.

The core hands a `ProofSystem` the public instances of a bundle plus one
`ActionWitness` per action and attaches whatever opaque proof comes back.
`TranscriptProofSystem` is a reference implementation with no zero-knowledge
or soundness: it re-derives every public instance from its witness, refuses
to prove inconsistent ones, and binds a BLAKE3 transcript to the public
inputs. It is meant for tests and vector generation.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from .config import DOMAIN_PROOF_TRANSCRIPT
from .crypto.hashes import hasher
from .crypto.redpallas import SigType, randomize_vk
from .keys import FullViewingKey
from .note import Note, Rho
from .value import commit, value_sum

logger = logging.getLogger(__name__)


class ProvingError(Exception):
    """Raised by a proof system that cannot produce a proof."""


@dataclass(frozen=True)
class Instance:
    nf: bytes
    rk: bytes
    cmx: bytes
    cv_net: bytes
    epk: bytes
    enable_spend: bool
    enable_output: bool
    enable_zsa: bool

    def to_bytes(self) -> bytes:
        bits = int(self.enable_spend) | int(self.enable_output) << 1 | int(self.enable_zsa) << 2
        return self.nf + self.rk + self.cmx + self.cv_net + self.epk + bytes([bits])


@dataclass(frozen=True)
class PublicInputs:
    instances: tuple[Instance, ...]
    flags: int
    value_balance: int

    def to_bytes(self) -> bytes:
        buf = bytearray()
        buf += self.flags.to_bytes(1, "big")
        buf += len(self.instances).to_bytes(2, "big")
        for instance in self.instances:
            buf += instance.to_bytes()
        buf += self.value_balance.to_bytes(8, "big", signed=True)
        return bytes(buf)


@dataclass(frozen=True)
class ActionWitness:
    """Private inputs for one action, forwarded to the prover unmodified."""

    spend_note: Note
    fvk: FullViewingKey
    merkle_path: Any
    output_note: Note
    alpha: int
    rcv: int


@dataclass(frozen=True)
class Proof:
    data: bytes

    def __len__(self) -> int:
        return len(self.data)


class ProofSystem(Protocol):
    def create(self, public_inputs: PublicInputs, witnesses: Sequence[ActionWitness]) -> Proof:
        ...

    def verify(self, proof: Proof, public_inputs: PublicInputs) -> bool:
        ...


def _check_instance(index: int, instance: Instance, witness: ActionWitness) -> None:
    spend = witness.spend_note
    output = witness.output_note

    def fail(reason: str) -> None:
        raise ProvingError(f"action {index}: {reason}")

    if spend.asset != output.asset:
        fail("spend and output assets differ")
    if not witness.fvk.owns(spend.recipient):
        fail("spend note is not owned by the witness key")
    nf = spend.nullifier(witness.fvk.nk)
    if nf.data != instance.nf:
        fail("nullifier mismatch")
    if output.rho != Rho.from_nf_old(nf):
        fail("output rho is not the spent nullifier")
    if output.cmx() != instance.cmx:
        fail("note commitment mismatch")
    rk = randomize_vk(SigType.SPEND_AUTH, witness.fvk.ak.point, witness.alpha)
    if rk.to_bytes() != instance.rk:
        fail("randomized key mismatch")
    counted = 0 if spend.is_split else spend.value
    cv_net = commit(value_sum(spend.value, output.value, spend.is_split), output.asset, witness.rcv)
    if cv_net.to_bytes() != instance.cv_net:
        fail("value commitment mismatch")
    if (output.recipient.g_d * output.esk()).to_bytes() != instance.epk:
        fail("ephemeral key mismatch")
    if not instance.enable_spend and counted != 0:
        fail("spends disabled but a nonzero value is spent")
    if not instance.enable_output and output.value != 0:
        fail("outputs disabled but a nonzero value is output")
    if not instance.enable_zsa and not output.asset.is_native():
        fail("custom asset in a bundle without ZSA enabled")


class TranscriptProofSystem:
    def _transcript(self, public_inputs: PublicInputs) -> bytes:
        h = hasher(DOMAIN_PROOF_TRANSCRIPT)
        h.update(public_inputs.to_bytes())
        return h.digest()

    def create(self, public_inputs: PublicInputs, witnesses: Sequence[ActionWitness]) -> Proof:
        if len(witnesses) != len(public_inputs.instances):
            raise ProvingError(
                f"{len(witnesses)} witnesses for {len(public_inputs.instances)} instances"
            )
        for index, (instance, witness) in enumerate(zip(public_inputs.instances, witnesses)):
            _check_instance(index, instance, witness)
        logger.debug(f"Transcript proof over {len(witnesses)} actions")
        return Proof(self._transcript(public_inputs))

    def verify(self, proof: Proof, public_inputs: PublicInputs) -> bool:
        return hmac.compare_digest(proof.data, self._transcript(public_inputs))
