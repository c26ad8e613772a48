# ClaimProof - service.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""Proof serving: from a wallet to the proof for its latest settled payment."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from claimproof_server.artifacts import ClaimProofArtifact
from claimproof_server.claim_id import normalize_claim_id, normalize_claim_id_hex
from claimproof_server.common import get_logger
from claimproof_server.encoding import normalize_wallet
from claimproof_server.errors import NoEligibleClaim
from claimproof_server.ledger import get_latest_success_claim

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from claimproof_server.strategies import ClaimProofStrategy

logger = get_logger("service")


class ProofService:
    """Read-only proof derivation layered over the payment ledger."""

    def __init__(self, strategy: ClaimProofStrategy) -> None:
        self.strategy = strategy

    @property
    def amount(self) -> int:
        return self.strategy.amount

    def proof_for_wallet(
        self,
        session: Session,
        wallet: str | None,
    ) -> ClaimProofArtifact:
        """Return the claim proof for the wallet's latest settled payment.

        Nothing is written. A payment that was already claimed on-chain
        still yields a proof; the claim contract rejects the second use.

        Raises:
            InvalidWalletAddress: If ``wallet`` is not a hex address.
            NoEligibleClaim: If the wallet has no settled payment.

        """
        address = normalize_wallet(wallet)
        record = get_latest_success_claim(session, address)
        if record is None:
            raise NoEligibleClaim(
                f"no settled payment for {address}",
                public_message="No eligible payment found",
            )
        claim_id = normalize_claim_id(record.order_id)
        return self.strategy.artifact_for(session, address, claim_id)

    def eligibility(self, session: Session, wallet: str | None) -> dict[str, Any]:
        """Report whether the wallet has a settled payment to claim."""
        address = normalize_wallet(wallet)
        record = get_latest_success_claim(session, address)
        if record is None:
            return {"eligible": False, "message": "No eligible payment found"}
        return {
            "eligible": True,
            "order_id": record.order_id,
            "claim_id": normalize_claim_id_hex(record.order_id),
            "amount": self.amount,
        }
