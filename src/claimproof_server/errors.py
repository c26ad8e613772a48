"""Errors - Failure kinds surfaced by proof generation."""
# ClaimProof - errors.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.

from __future__ import annotations

from typing import ClassVar


class ClaimProofError(Exception):
    """Base class for every error a caller of this package may see.

    ``public_message`` is what may be returned over the wire. The
    exception's own message can carry internal detail and is only logged.
    """

    kind: ClassVar[str] = "claim_proof_error"
    http_status: ClassVar[int] = 500

    def __init__(self, message: str, public_message: str | None = None) -> None:
        super().__init__(message)
        self.public_message = public_message or message

    def to_dict(self) -> dict[str, str]:
        """Serialize to the JSON error body."""
        return {"error": self.public_message, "error_kind": self.kind}


class DatasetAssetNotFound(ClaimProofError):
    """The requested asset id is not part of the published dataset."""

    kind = "dataset_asset_not_found"
    http_status = 404


class NoEligibleClaim(ClaimProofError):
    """The wallet (or claim id) has no settled payment to prove."""

    kind = "no_eligible_claim"
    http_status = 404


class InvalidWalletAddress(ClaimProofError):
    """A wallet string is not a 0x-prefixed 20-byte hex address."""

    kind = "invalid_wallet_address"
    http_status = 400


class ConfigurationFault(ClaimProofError):
    """Deployment is misconfigured; the service must not serve traffic."""

    kind = "configuration_fault"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message, public_message="Service is misconfigured")


class EncodingFault(ClaimProofError):
    """A value does not have the byte shape the on-chain verifier expects."""

    kind = "encoding_fault"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message, public_message="Failed to encode proof")
