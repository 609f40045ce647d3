"""Asset identifiers.

An asset is identified by a group element: the fixed native base, or a base
derived by hashing an issuer key and an asset description to the curve.
"""

from __future__ import annotations

from dataclasses import dataclass

from blake3 import blake3

from .config import DOMAIN_ASSET_DIGEST, GEN_ZSA_ASSET, MAX_ASSET_DESCRIPTION_SIZE
from .crypto.pallas import NATIVE_ASSET_V, Point, hash_to_curve
from .errors import BundleError, ErrorCode


def asset_digest(encoded_asset_id: bytes) -> bytes:
    return blake3(encoded_asset_id, derive_key_context=DOMAIN_ASSET_DIGEST).digest(length=64)


def is_asset_desc_of_valid_size(asset_desc: str) -> bool:
    return 0 < len(asset_desc.encode("utf-8")) <= MAX_ASSET_DESCRIPTION_SIZE


@dataclass(frozen=True)
class AssetBase:
    point: Point

    @classmethod
    def native(cls) -> "AssetBase":
        return _NATIVE

    @classmethod
    def derive(cls, issuer_key: bytes, asset_desc: str) -> "AssetBase":
        """Derive a custom asset base from the issuer key and description."""
        if not is_asset_desc_of_valid_size(asset_desc):
            raise BundleError(
                ErrorCode.INVALID_ASSET_DESCRIPTION,
                f"asset description must be 1..{MAX_ASSET_DESCRIPTION_SIZE} bytes",
            )
        # version_byte || ik || asset_desc
        encoded = b"\x00" + bytes(issuer_key) + asset_desc.encode("utf-8")
        return cls(hash_to_curve(GEN_ZSA_ASSET, asset_digest(encoded)))

    def is_native(self) -> bool:
        return self.point == NATIVE_ASSET_V

    def to_bytes(self) -> bytes:
        return self.point.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "AssetBase":
        point = Point.from_bytes(data)
        if point.is_identity():
            raise BundleError(ErrorCode.INVALID_ENCODING, "asset base must not be the identity")
        return cls(point)

    def __repr__(self) -> str:
        if self.is_native():
            return "AssetBase(native)"
        return f"AssetBase({self.to_bytes().hex()[:16]})"


_NATIVE = AssetBase(NATIVE_ASSET_V)
