# ClaimProof - claim_id.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""Canonical 32-byte claim identifiers for payment order references."""

from __future__ import annotations

import re
from typing import Final

from claimproof_server.encoding import keccak256, to_hex

BYTES32_HEX_PATTERN: Final = re.compile(r"(?:0[xX])?([0-9a-fA-F]{64})")


def normalize_claim_id(reference: str) -> bytes:
    """Map an order reference onto the claim contract's bytes32 space.

    A reference that already looks like a bytes32 hex string is used as-is
    (lowercased, prefix dropped). Anything else is hashed from its UTF-8
    bytes, which is what ``ethers.id`` does for gateway order ids.
    """
    match = BYTES32_HEX_PATTERN.fullmatch(reference)
    if match:
        return bytes.fromhex(match.group(1).lower())
    return keccak256(reference.encode("utf-8"))


def normalize_claim_id_hex(reference: str) -> str:
    """Return the normalized claim id as 0x-prefixed lowercase hex."""
    return to_hex(normalize_claim_id(reference))
