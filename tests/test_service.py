# ClaimProof - test_service.py

import pytest
from sqlalchemy.orm import Session

from claimproof_server.claim_id import normalize_claim_id, normalize_claim_id_hex
from claimproof_server.errors import InvalidWalletAddress, NoEligibleClaim
from claimproof_server.ledger import ClaimStatus
from claimproof_server.service import ProofService
from claimproof_server.strategies import (
    HashCommitmentStrategy,
    InclusionProofStrategy,
)

from conftest import SECRET, WALLET_A, WALLET_B, add_claim


@pytest.fixture
def hash_service() -> ProofService:
    return ProofService(HashCommitmentStrategy(SECRET))


def test_only_settled_payment_is_selected(
    db_session: Session,
    hash_service: ProofService,
) -> None:
    add_claim(db_session, "PENDING", WALLET_A, ClaimStatus.PENDING, minutes=30)
    add_claim(db_session, "FAILED", WALLET_A, ClaimStatus.FAILED, minutes=20)
    add_claim(db_session, "SETTLED", WALLET_A, ClaimStatus.SUCCESS, minutes=10)

    artifact = hash_service.proof_for_wallet(db_session, WALLET_A)

    assert artifact.claim_id == normalize_claim_id_hex("SETTLED")


def test_most_recent_settled_payment_wins(
    db_session: Session,
    hash_service: ProofService,
) -> None:
    add_claim(db_session, "OLD", WALLET_A, ClaimStatus.SUCCESS, minutes=1)
    add_claim(db_session, "NEW", WALLET_A, ClaimStatus.SUCCESS, minutes=2)
    artifact = hash_service.proof_for_wallet(db_session, WALLET_A)
    assert artifact.claim_id == normalize_claim_id_hex("NEW")


def test_payment_settled_late_is_not_served_over_newer_one(
    db_session: Session,
    hash_service: ProofService,
) -> None:
    add_claim(db_session, "A", WALLET_A, ClaimStatus.SUCCESS, minutes=0, settled_minutes=120)
    add_claim(db_session, "B", WALLET_A, ClaimStatus.SUCCESS, minutes=5, settled_minutes=6)
    artifact = hash_service.proof_for_wallet(db_session, WALLET_A)
    assert artifact.claim_id == normalize_claim_id_hex("B")


def test_no_eligible_claim(db_session: Session, hash_service: ProofService) -> None:
    add_claim(db_session, "PENDING", WALLET_B, ClaimStatus.PENDING)
    with pytest.raises(NoEligibleClaim):
        hash_service.proof_for_wallet(db_session, WALLET_B)


def test_invalid_wallet(db_session: Session, hash_service: ProofService) -> None:
    with pytest.raises(InvalidWalletAddress):
        hash_service.proof_for_wallet(db_session, "not-a-wallet")
    with pytest.raises(InvalidWalletAddress):
        hash_service.eligibility(db_session, None)


def test_repeated_queries_return_the_same_proof(
    db_session: Session,
    hash_service: ProofService,
) -> None:
    add_claim(db_session, "ORDER", WALLET_A, ClaimStatus.SUCCESS)
    first = hash_service.proof_for_wallet(db_session, WALLET_A)
    second = hash_service.proof_for_wallet(db_session, WALLET_A)
    assert first == second


def test_inclusion_mode_service(db_session: Session) -> None:
    add_claim(db_session, "A", WALLET_A, ClaimStatus.SUCCESS)
    add_claim(db_session, "B", WALLET_B, ClaimStatus.SUCCESS, minutes=1)
    service = ProofService(InclusionProofStrategy())
    artifact = service.proof_for_wallet(db_session, WALLET_B)
    assert artifact.mode == "inclusion"
    assert artifact.claim_id == "0x" + normalize_claim_id("B").hex()
    assert len(artifact.proof) == 1


def test_eligibility(db_session: Session, hash_service: ProofService) -> None:
    assert hash_service.eligibility(db_session, WALLET_A)["eligible"] is False
    add_claim(db_session, "ORDER-9", WALLET_A, ClaimStatus.SUCCESS)
    result = hash_service.eligibility(db_session, WALLET_A)
    assert result == {
        "eligible": True,
        "order_id": "ORDER-9",
        "claim_id": normalize_claim_id_hex("ORDER-9"),
        "amount": 1000,
    }
