"""Signer-side secret state kept between building and finalizing a bundle.

Nothing here is ever serialized. `BundleSecrets.wipe()` drops every scalar;
`scoped()` guarantees the wipe on every exit path of a `with` block.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .action import SpendKind
from .errors import BundleError, ErrorCode
from .keys import SpendAuthorizingKey, SpendValidatingKey


@dataclass
class ActionSecrets:
    rcv: Optional[int] = field(repr=False)
    alpha: Optional[int] = field(repr=False)
    kind: SpendKind
    # Validating key of the spend; None for dummy spends.
    ak: Optional[SpendValidatingKey] = None
    dummy_ask: Optional[SpendAuthorizingKey] = field(default=None, repr=False)

    def wipe(self) -> None:
        self.rcv = None
        self.alpha = None
        self.dummy_ask = None


@dataclass
class BundleSecrets:
    actions: list[ActionSecrets] = field(default_factory=list)
    wiped: bool = False

    def __len__(self) -> int:
        return len(self.actions)

    def rcvs(self) -> list[int]:
        out = []
        for index, secrets in enumerate(self.actions):
            if secrets.rcv is None:
                raise BundleError(
                    ErrorCode.MISSING_RANDOMNESS, f"no value commitment randomness for action {index}"
                )
            out.append(secrets.rcv)
        return out

    def alpha(self, index: int) -> int:
        alpha = self.actions[index].alpha
        if alpha is None:
            raise BundleError(ErrorCode.MISSING_RANDOMNESS, f"no spend randomizer for action {index}")
        return alpha

    def wipe(self) -> None:
        for secrets in self.actions:
            secrets.wipe()
        self.wiped = True


@contextmanager
def scoped(secrets: BundleSecrets) -> Iterator[BundleSecrets]:
    try:
        yield secrets
    finally:
        secrets.wipe()
