"""ZSA bundle error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    CONSTRUCTION = 0x01
    AUTHORIZATION = 0x02
    EXTERNAL = 0x03
    VERIFICATION = 0x04
    FORMAT = 0x05
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Construction
    INVALID_SEED = 0x0100
    NO_SPEND_TO_SPLIT = 0x0101
    BURN_EXCEEDS_BALANCE = 0x0102
    TOO_MANY_ACTIONS = 0x0103
    VALUE_OVERFLOW = 0x0104
    SPENDS_DISABLED = 0x0105
    OUTPUTS_DISABLED = 0x0106
    ZSA_DISABLED = 0x0107
    FVK_MISMATCH = 0x0108
    BURN_NATIVE_ASSET = 0x0109
    BURN_ZERO_VALUE = 0x010A
    DUPLICATE_BURN_ASSET = 0x010B
    DUPLICATE_NULLIFIER = 0x010C
    ASSET_MISMATCH = 0x010D
    INVALID_ASSET_DESCRIPTION = 0x010E

    # Authorization
    MISSING_AUTHORIZING_KEY = 0x0200
    MISSING_RANDOMNESS = 0x0201
    UNBALANCED_BUNDLE = 0x0202
    INVALID_STATE = 0x0203
    INVALID_EXTERNAL_SIGNATURE = 0x0204
    DUPLICATE_SIGNATURE = 0x0205

    # External collaborators
    PROVING_FAILED = 0x0300

    # Verification
    PROOF_INVALID = 0x0400
    BINDING_SIGNATURE_INVALID = 0x0401
    SPEND_AUTH_SIGNATURE_INVALID = 0x0402

    # Format
    INVALID_FORMAT = 0x0500
    INVALID_ENCODING = 0x0501

    # Internal
    INTERNAL_ERROR = 0xFF00
    UNKNOWN = 0xFFFF

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class BundleError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__", "__suppress_context__"))
_frozen_setattr = BundleError.__setattr__


def _bundle_error_setattr(self: BundleError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


BundleError.__setattr__ = _bundle_error_setattr  # type: ignore[method-assign]
