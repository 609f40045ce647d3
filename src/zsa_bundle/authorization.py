"""Authorization pipeline: Unauthorized -> Proven -> PartiallyAuthorized -> Authorized.

Every transition returns a new `Bundle`; the input bundle is never modified.
Signer secrets (`BundleSecrets`) travel beside the bundle and are wiped by
`finalize` whatever its outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .bundle import (
    Authorized,
    Bundle,
    BundleState,
    PartiallyAuthorized,
    Proven,
)
from .crypto import redpallas
from .crypto.redpallas import SigType, Signature
from .errors import BundleError, ErrorCode
from .keys import SpendAuthorizingKey
from .proof import ProofSystem
from .transient import BundleSecrets, scoped
from .value import BindingSigningKey, verify_binding

logger = logging.getLogger(__name__)


def _check_secrets(bundle: Bundle, secrets: BundleSecrets) -> None:
    if secrets.wiped:
        raise BundleError(ErrorCode.MISSING_RANDOMNESS, "bundle secrets were already wiped")
    if len(secrets) != len(bundle.actions):
        raise BundleError(
            ErrorCode.INVALID_STATE,
            f"secrets cover {len(secrets)} actions, bundle has {len(bundle.actions)}",
        )


def _sign_action(ask: SpendAuthorizingKey, alpha: int, sighash: bytes, rng) -> Signature:
    rsk = redpallas.randomize_sk(ask.scalar, alpha)
    return redpallas.sign(SigType.SPEND_AUTH, rsk, sighash, rng)


def create_proof(bundle: Bundle, proof_system: ProofSystem) -> Bundle:
    bundle.expect_state(BundleState.UNAUTHORIZED)
    try:
        proof = proof_system.create(bundle.to_public_inputs(), bundle.authorization.witnesses)
    except Exception as exc:
        raise BundleError(ErrorCode.PROVING_FAILED, f"proof generation failed: {exc}") from exc
    logger.debug(f"Attached proof of {len(proof)} bytes to {len(bundle.actions)} actions")
    return bundle.with_authorization(Proven(proof))


def prepare(bundle: Bundle, secrets: BundleSecrets, sighash: bytes, rng) -> Bundle:
    """Fix the sighash and sign every dummy spend with its throwaway key."""
    bundle.expect_state(BundleState.PROVEN)
    _check_secrets(bundle, secrets)
    actions = list(bundle.actions)
    for index, action_secrets in enumerate(secrets.actions):
        if action_secrets.dummy_ask is None or actions[index].spend_auth_sig is not None:
            continue
        sig = _sign_action(action_secrets.dummy_ask, secrets.alpha(index), sighash, rng)
        actions[index] = actions[index].with_signature(sig)
    return bundle.with_actions(actions).with_authorization(
        PartiallyAuthorized(bundle.authorization.proof, bytes(sighash))
    )


def sign(bundle: Bundle, secrets: BundleSecrets, ask: SpendAuthorizingKey, rng) -> Bundle:
    """Sign every unsigned action spent under `ask`."""
    bundle.expect_state(BundleState.PARTIALLY_AUTHORIZED)
    _check_secrets(bundle, secrets)
    expected_ak = ask.validating_key()
    sighash = bundle.authorization.sighash
    actions = list(bundle.actions)
    signed = 0
    for index, action_secrets in enumerate(secrets.actions):
        if actions[index].spend_auth_sig is not None or action_secrets.ak != expected_ak:
            continue
        actions[index] = actions[index].with_signature(_sign_action(ask, secrets.alpha(index), sighash, rng))
        signed += 1
    logger.debug(f"Signed {signed} actions with one authorizing key")
    return bundle.with_actions(actions)


def append_signatures(bundle: Bundle, signatures: Sequence[Signature]) -> Bundle:
    """Attach externally computed signatures, each to the one action it verifies for."""
    bundle.expect_state(BundleState.PARTIALLY_AUTHORIZED)
    sighash = bundle.authorization.sighash
    actions = list(bundle.actions)
    for sig in signatures:
        valid_for = [
            index
            for index, action in enumerate(actions)
            if action.spend_auth_sig is None
            and redpallas.verify(SigType.SPEND_AUTH, action.rk.point, sighash, sig)
        ]
        if not valid_for:
            raise BundleError(ErrorCode.INVALID_EXTERNAL_SIGNATURE, "signature is not valid for any unsigned action")
        if len(valid_for) > 1:
            raise BundleError(ErrorCode.DUPLICATE_SIGNATURE, f"signature is valid for actions {valid_for}")
        actions[valid_for[0]] = actions[valid_for[0]].with_signature(sig)
    return bundle.with_actions(actions)


def finalize(bundle: Bundle, secrets: BundleSecrets, rng) -> Bundle:
    """Check balance, add the binding signature and drop all signer secrets."""
    bundle.expect_state(BundleState.PARTIALLY_AUTHORIZED)
    with scoped(secrets):
        if secrets.wiped:
            raise BundleError(ErrorCode.MISSING_RANDOMNESS, "bundle secrets were already wiped")
        unsigned = [index for index, action in enumerate(bundle.actions) if action.spend_auth_sig is None]
        if unsigned:
            raise BundleError(ErrorCode.MISSING_AUTHORIZING_KEY, f"actions {unsigned} are not signed")
        with BindingSigningKey(secrets.rcvs()) as bsk:
            if bsk.verification_key() != bundle.binding_validating_key().into_bvk():
                raise BundleError(ErrorCode.UNBALANCED_BUNDLE, "binding key does not match value commitments")
            binding_signature = bsk.sign(bundle.authorization.sighash, rng)
    logger.debug(f"Finalized bundle with {len(bundle.actions)} actions")
    return bundle.with_authorization(Authorized(bundle.authorization.proof, binding_signature))


def apply_signatures(
    bundle: Bundle,
    secrets: BundleSecrets,
    sighash: bytes,
    keys: Sequence[SpendAuthorizingKey],
    rng,
) -> Bundle:
    partial = prepare(bundle, secrets, sighash, rng)
    for ask in keys:
        partial = sign(partial, secrets, ask, rng)
    return finalize(partial, secrets, rng)


@dataclass(frozen=True)
class CheckFailure:
    code: ErrorCode
    message: str
    action_index: Optional[int] = None


class VerificationResult:
    """Outcome of every verification check; failures are never short-circuited."""

    def __init__(self, failures: Optional[list[CheckFailure]] = None):
        self.failures = list(failures or [])

    @property
    def ok(self) -> bool:
        return not self.failures

    def codes(self) -> set[ErrorCode]:
        return {failure.code for failure in self.failures}

    def failed_actions(self) -> list[int]:
        return [f.action_index for f in self.failures if f.action_index is not None]


def verify_bundle(bundle: Bundle, proof_system: ProofSystem, sighash: bytes) -> VerificationResult:
    bundle.expect_state(BundleState.AUTHORIZED)
    failures: list[CheckFailure] = []

    try:
        proof_ok = proof_system.verify(bundle.authorization.proof, bundle.to_public_inputs())
        reason = "proof does not verify"
    except Exception as exc:
        proof_ok = False
        reason = f"proof verification raised: {exc}"
    if not proof_ok:
        failures.append(CheckFailure(ErrorCode.PROOF_INVALID, reason))

    bvk = bundle.binding_validating_key()
    if not verify_binding(bvk, sighash, bundle.authorization.binding_signature):
        failures.append(CheckFailure(ErrorCode.BINDING_SIGNATURE_INVALID, "binding signature does not verify"))

    for index, action in enumerate(bundle.actions):
        sig = action.spend_auth_sig
        if sig is None or not redpallas.verify(SigType.SPEND_AUTH, action.rk.point, sighash, sig):
            failures.append(
                CheckFailure(
                    ErrorCode.SPEND_AUTH_SIGNATURE_INVALID,
                    f"spend authorization signature of action {index} does not verify",
                    action_index=index,
                )
            )

    for failure in failures:
        logger.warning(f"Bundle verification failed: {failure.code.name}: {failure.message}")
    return VerificationResult(failures)
