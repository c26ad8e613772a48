# ClaimProof - artifacts.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""Serialized proof artifacts returned to clients.

Artifacts are rebuilt on every request and never persisted. All byte
values are rendered as 0x-prefixed lowercase hex after their shape has
been checked, so a malformed value never reaches a contract call.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
)
from typing_extensions import Self

from claimproof_server.encoding import ensure_bytes32, to_hex


class AssetStats(BaseModel):
    """Combat stats of one NFT, as published in the stats dataset."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    asset_id: StrictInt = Field(
        ge=1,
        validation_alias=AliasChoices("asset_id", "tokenId", "assetId"),
    )
    hit_points: StrictInt = Field(
        ge=0,
        validation_alias=AliasChoices("hit_points", "hp", "hitPoints"),
    )
    attack: StrictInt = Field(ge=0)


class StatProofArtifact(BaseModel):
    """Inclusion proof of one stat record in the attestation tree."""

    leaf: str
    proof: list[str]
    root: str
    stats: AssetStats

    @classmethod
    def from_bytes(
        cls,
        leaf: bytes,
        proof: list[bytes],
        root: bytes,
        stats: AssetStats,
    ) -> Self:
        """Check shapes and build the serialized artifact."""
        return cls(
            leaf=to_hex(ensure_bytes32(leaf, "leaf")),
            proof=[to_hex(ensure_bytes32(p, "proof node")) for p in proof],
            root=to_hex(ensure_bytes32(root, "root")),
            stats=stats,
        )


class InclusionProofArtifact(BaseModel):
    """Claim proof against a published Merkle root."""

    mode: Literal["inclusion"] = "inclusion"
    claim_id: str
    leaf: str
    proof: list[str]
    root: str
    amount: int

    @classmethod
    def from_bytes(
        cls,
        claim_id: bytes,
        leaf: bytes,
        proof: list[bytes],
        root: bytes,
        amount: int,
    ) -> Self:
        """Check shapes and build the serialized artifact."""
        return cls(
            claim_id=to_hex(ensure_bytes32(claim_id, "claim_id")),
            leaf=to_hex(ensure_bytes32(leaf, "leaf")),
            proof=[to_hex(ensure_bytes32(p, "proof node")) for p in proof],
            root=to_hex(ensure_bytes32(root, "root")),
            amount=amount,
        )


class CommitmentProofArtifact(BaseModel):
    """Claim proof bound to the hash of the server secret."""

    mode: Literal["hash"] = "hash"
    claim_id: str
    proof_hash: str
    amount: int

    @classmethod
    def from_bytes(cls, claim_id: bytes, proof_hash: bytes, amount: int) -> Self:
        """Check shapes and build the serialized artifact."""
        return cls(
            claim_id=to_hex(ensure_bytes32(claim_id, "claim_id")),
            proof_hash=to_hex(ensure_bytes32(proof_hash, "proof_hash")),
            amount=amount,
        )


ClaimProofArtifact = Annotated[
    Union[InclusionProofArtifact, CommitmentProofArtifact],
    Field(discriminator="mode"),
]
