# ClaimProof - strategies.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""Claim proof strategies over the QRIS payment ledger.

Two strategies prove that a wallet is entitled to a claim id:

* ``InclusionProofStrategy`` rebuilds a Merkle tree from every settled
  payment and returns an inclusion path against its root. The root has to
  be published to the claim contract before proofs against it verify.
* ``HashCommitmentStrategy`` returns
  ``keccak256(abi.encodePacked(wallet, claim_id, keccak256(secret)))``.
  Only the secret hash is ever published.

The claim contract, not this module, enforces one payout per claim id.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from pydantic import SecretStr

from claimproof_server.artifacts import (
    ClaimProofArtifact,
    CommitmentProofArtifact,
    InclusionProofArtifact,
)
from claimproof_server.claim_id import normalize_claim_id
from claimproof_server.common import REWARD_AMOUNT, ZERO_HASH, get_logger
from claimproof_server.encoding import (
    CURRENT_ENCODING,
    PackedEncoding,
    ensure_bytes32,
    normalize_wallet,
    to_hex,
)
from claimproof_server.errors import ConfigurationFault, NoEligibleClaim
from claimproof_server.ledger import get_success_claims
from claimproof_server.merkle import MerkleTree

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from claimproof_server.config import Config

logger = get_logger("strategies")


class ProofMode(str, enum.Enum):
    """Deployment-wide choice of claim proof strategy."""

    INCLUSION = "inclusion"
    HASH = "hash"


class ClaimProofStrategy(ABC):
    """Produces the proof artifact the claim contract verifies."""

    mode: ClassVar[ProofMode]

    def __init__(
        self,
        amount: int = REWARD_AMOUNT,
        encoding: PackedEncoding = CURRENT_ENCODING,
    ) -> None:
        self.amount = amount
        self.encoding = encoding

    @abstractmethod
    def artifact_for(
        self,
        session: Session,
        wallet: str,
        claim_id: bytes,
    ) -> ClaimProofArtifact:
        """Return the proof that ``wallet`` may claim ``claim_id``."""


class InclusionProofStrategy(ClaimProofStrategy):
    """Merkle inclusion proofs over all settled payments."""

    mode = ProofMode.INCLUSION

    def leaf_for(self, wallet: str, claim_id: bytes) -> bytes:
        """Return the claim leaf for a wallet and claim id."""
        return self.encoding.claim_leaf(wallet, self.amount, claim_id)

    def _claim_leaves(self, session: Session) -> list[tuple[bytes, bytes]]:
        """Return ``(claim_id, leaf)`` for every settled payment."""
        entries = []
        for record in get_success_claims(session):
            claim_id = normalize_claim_id(record.order_id)
            entries.append((claim_id, self.leaf_for(record.wallet_address, claim_id)))
        return entries

    def build_tree(self, session: Session) -> MerkleTree | None:
        """Rebuild the claim tree from the current ledger snapshot.

        Returns None when no payment has settled yet.
        """
        leaves = [leaf for _, leaf in self._claim_leaves(session)]
        if not leaves:
            return None
        return MerkleTree(leaves, encoding=self.encoding)

    def root(self, session: Session) -> bytes:
        """Return the root to publish; the zero hash for an empty ledger."""
        tree = self.build_tree(session)
        return tree.root if tree is not None else ZERO_HASH

    def _artifact(
        self,
        tree: MerkleTree,
        claim_id: bytes,
        position: int,
    ) -> InclusionProofArtifact:
        return InclusionProofArtifact.from_bytes(
            claim_id=claim_id,
            leaf=tree.leaves[position],
            proof=tree.get_proof(position),
            root=tree.root,
            amount=self.amount,
        )

    def proof_for(self, session: Session, claim_id: bytes) -> InclusionProofArtifact:
        """Return the inclusion proof of the settled claim ``claim_id``.

        Raises:
            NoEligibleClaim: If no settled payment normalizes to the id.

        """
        claim_id = ensure_bytes32(claim_id, "claim_id")
        entries = self._claim_leaves(session)
        for position, (entry_claim_id, _) in enumerate(entries):
            if entry_claim_id == claim_id:
                tree = MerkleTree([leaf for _, leaf in entries], encoding=self.encoding)
                return self._artifact(tree, claim_id, position)
        raise NoEligibleClaim(
            f"no settled claim with id {to_hex(claim_id)}",
            public_message="No eligible payment found",
        )

    def artifact_for(
        self,
        session: Session,
        wallet: str,
        claim_id: bytes,
    ) -> InclusionProofArtifact:
        """Prove the leaf of this wallet, whichever order produced the id."""
        leaf = self.leaf_for(wallet, claim_id)
        tree = self.build_tree(session)
        if tree is None or leaf not in tree.leaves:
            raise NoEligibleClaim(
                f"claim {to_hex(claim_id)} is not settled for {wallet}",
                public_message="No eligible payment found",
            )
        return self._artifact(tree, claim_id, tree.leaf_index(leaf))


class HashCommitmentStrategy(ClaimProofStrategy):
    """Single-hash commitments keyed by the server secret."""

    mode = ProofMode.HASH

    def __init__(
        self,
        secret: SecretStr | str,
        amount: int = REWARD_AMOUNT,
        encoding: PackedEncoding = CURRENT_ENCODING,
    ) -> None:
        super().__init__(amount=amount, encoding=encoding)
        if isinstance(secret, str):
            secret = SecretStr(secret)
        if not secret.get_secret_value():
            raise ConfigurationFault("claim secret must not be empty")
        self._secret = secret
        self._secret_hash = self.encoding.secret_hash(secret.get_secret_value())

    def __repr__(self) -> str:
        return f"HashCommitmentStrategy(secret_hash={to_hex(self._secret_hash)})"

    @property
    def secret_hash(self) -> bytes:
        """Hash of the secret, as stored by the claim contract."""
        return self._secret_hash

    def proof_hash(self, wallet: str, claim_id: bytes) -> bytes:
        """Return the commitment for one wallet and claim id."""
        return self.encoding.commitment(wallet, claim_id, self._secret_hash)

    def artifact_for(
        self,
        session: Session,
        wallet: str,
        claim_id: bytes,
    ) -> CommitmentProofArtifact:
        proof_hash = self.proof_hash(wallet, claim_id)
        logger.info(
            f"Hash mode proof for {normalize_wallet(wallet)}: claim {to_hex(claim_id)}, "
            f"proof {to_hex(proof_hash)[:18]}...",
        )
        return CommitmentProofArtifact.from_bytes(
            claim_id=claim_id,
            proof_hash=proof_hash,
            amount=self.amount,
        )


def build_strategy(config: Config) -> ClaimProofStrategy:
    """Select the one strategy this deployment runs with.

    Raises:
        ConfigurationFault: If hash mode is selected without a secret.

    """
    if config.proof_mode is ProofMode.INCLUSION:
        return InclusionProofStrategy()
    if config.claim_secret is None:
        raise ConfigurationFault("QRIS_CLAIM_SECRET not set in env")
    return HashCommitmentStrategy(config.claim_secret)
