# ClaimProof - encoding.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""Packed encoding and hashing shared with the on-chain verifiers.

Every byte string that gets hashed for a contract goes through one
``PackedEncoding`` instance. The contracts hash with
``keccak256(abi.encodePacked(...))``, so a layout change on-chain means a
new encoding version here and nowhere else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from eth_abi.exceptions import EncodingError
from eth_abi.packed import encode_packed
from eth_utils import keccak, to_checksum_address

from claimproof_server.common import ADDRESS_SIZE, HASH_SIZE
from claimproof_server.errors import EncodingFault, InvalidWalletAddress

WALLET_PATTERN: Final = re.compile(r"0x[0-9a-fA-F]{40}")
HEX_SECRET_PATTERN: Final = re.compile(r"0x([0-9a-fA-F]*)")


def keccak256(data: bytes) -> bytes:
    """Return the Ethereum Keccak-256 digest of ``data``."""
    return keccak(data)


def to_hex(value: bytes) -> str:
    """Render bytes as 0x-prefixed lowercase hex."""
    return "0x" + value.hex()


def from_hex(value: str) -> bytes:
    """Parse hex with or without a 0x prefix."""
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    return bytes.fromhex(value)


def ensure_bytes32(value: bytes, label: str = "value") -> bytes:
    """Return ``value`` if it is exactly 32 bytes, else raise EncodingFault."""
    if not isinstance(value, (bytes, bytearray)) or len(value) != HASH_SIZE:
        raise EncodingFault(f"{label} is not a 32-byte value: {value!r}")
    return bytes(value)


def ensure_address(value: bytes, label: str = "address") -> bytes:
    """Return ``value`` if it is exactly 20 bytes, else raise EncodingFault."""
    if not isinstance(value, (bytes, bytearray)) or len(value) != ADDRESS_SIZE:
        raise EncodingFault(f"{label} is not a 20-byte value: {value!r}")
    return bytes(value)


def normalize_wallet(wallet: str | None) -> str:
    """Validate a wallet address in any case and return it lowercased."""
    if not isinstance(wallet, str) or not WALLET_PATTERN.fullmatch(wallet.strip()):
        raise InvalidWalletAddress(
            f"invalid wallet address: {wallet!r}",
            public_message="Invalid wallet address",
        )
    return wallet.strip().lower()


def checksum_wallet(wallet: str) -> str:
    """Return the EIP-55 checksummed form of a wallet address."""
    return to_checksum_address(normalize_wallet(wallet))


def _packed_address(wallet: str) -> str:
    address = checksum_wallet(wallet)
    ensure_address(from_hex(address), "wallet")
    return address


@dataclass(frozen=True)
class PackedEncoding:
    """One version of the contracts' ``abi.encodePacked`` layouts."""

    version: int
    stat_leaf_types: tuple[str, ...]
    claim_leaf_types: tuple[str, ...]
    commitment_types: tuple[str, ...]

    def _pack(self, types: tuple[str, ...], values: list[object]) -> bytes:
        try:
            return encode_packed(list(types), values)
        except (EncodingError, TypeError, ValueError) as exc:
            raise EncodingFault(
                f"cannot pack {values!r} as {types} (v{self.version}): {exc}",
            ) from exc

    def pair(self, left: bytes, right: bytes) -> bytes:
        """Hash two sibling nodes after ordering them numerically."""
        if right < left:
            left, right = right, left
        return keccak256(left + right)

    def stat_leaf(self, asset_id: int, hit_points: int, attack: int) -> bytes:
        """Leaf for one asset stat record."""
        packed = self._pack(
            self.stat_leaf_types,
            [asset_id, hit_points, attack],
        )
        return keccak256(packed)

    def claim_leaf(self, wallet: str, amount: int, claim_id: bytes) -> bytes:
        """Leaf for one settled payment claim."""
        packed = self._pack(
            self.claim_leaf_types,
            [
                _packed_address(wallet),
                amount,
                ensure_bytes32(claim_id, "claim_id"),
            ],
        )
        return keccak256(packed)

    def secret_hash(self, secret: str) -> bytes:
        """Digest of the server secret published to the claim contract.

        A 0x-prefixed hex secret is hashed as the bytes it spells, with an
        odd digit count left-padded by one zero. Any other secret is hashed
        as UTF-8 text.
        """
        match = HEX_SECRET_PATTERN.fullmatch(secret)
        if match:
            digits = match.group(1)
            if len(digits) % 2:
                digits = "0" + digits
            return keccak256(bytes.fromhex(digits))
        return keccak256(secret.encode("utf-8"))

    def commitment(
        self,
        wallet: str,
        claim_id: bytes,
        secret_hash: bytes,
    ) -> bytes:
        """Proof hash binding a wallet to a claim id under the secret hash."""
        packed = self._pack(
            self.commitment_types,
            [
                _packed_address(wallet),
                ensure_bytes32(claim_id, "claim_id"),
                ensure_bytes32(secret_hash, "secret_hash"),
            ],
        )
        return keccak256(packed)


PACKED_ENCODING_V1: Final = PackedEncoding(
    version=1,
    stat_leaf_types=("uint256", "uint256", "uint256"),
    claim_leaf_types=("address", "uint256", "bytes32"),
    commitment_types=("address", "bytes32", "bytes32"),
)

# The encoding every component uses unless told otherwise.
CURRENT_ENCODING: Final = PACKED_ENCODING_V1
