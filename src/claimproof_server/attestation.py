# ClaimProof - attestation.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""Static attestation tree over the published NFT battle stats.

The battle contract stores the root of this tree. At battle time the
client sends ``(asset_id, hit_points, attack, proof)`` and the contract
recomputes ``keccak256(abi.encodePacked(asset_id, hit_points, attack))``
and folds the proof onto it. The dataset and its root are fixed for the
lifetime of a deployment.
"""

from __future__ import annotations

import json
from functools import cached_property
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from claimproof_server.artifacts import AssetStats, StatProofArtifact
from claimproof_server.common import get_logger
from claimproof_server.encoding import (
    CURRENT_ENCODING,
    PackedEncoding,
    from_hex,
    to_hex,
)
from claimproof_server.errors import (
    ConfigurationFault,
    DatasetAssetNotFound,
    EncodingFault,
)
from claimproof_server.merkle import MerkleTree

logger = get_logger("attestation")

_DATASET_ADAPTER = TypeAdapter(list[AssetStats])


def load_dataset(path: str | Path) -> list[AssetStats]:
    """Load and validate the stats dataset from a JSON file.

    Raises:
        ConfigurationFault: If the file is missing, is not valid JSON, or
            holds records that fail validation.

    """
    dataset_path = Path(path)
    try:
        raw = json.loads(dataset_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationFault(f"stats dataset not found: {dataset_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationFault(
            f"stats dataset is unreadable: {dataset_path}: {exc}",
        ) from exc

    try:
        records = _DATASET_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise ConfigurationFault(
            f"stats dataset is malformed: {dataset_path}: {exc}",
        ) from exc

    logger.info(f"Loaded {len(records)} stat records from {dataset_path}")
    return records


class StatAttestationTree:
    """Serve roots, stats and inclusion proofs for the stats dataset."""

    def __init__(
        self,
        records: list[AssetStats],
        encoding: PackedEncoding = CURRENT_ENCODING,
    ) -> None:
        """Index the dataset; the tree itself is built on first use.

        Raises:
            ConfigurationFault: If the dataset is empty or repeats an
                asset id.

        """
        if not records:
            raise ConfigurationFault("stats dataset is empty")

        self.encoding = encoding
        self._records: list[AssetStats] = list(records)
        self._positions: dict[int, int] = {}
        for position, record in enumerate(self._records):
            if record.asset_id in self._positions:
                raise ConfigurationFault(
                    f"duplicate asset id in stats dataset: {record.asset_id}",
                )
            self._positions[record.asset_id] = position

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        encoding: PackedEncoding = CURRENT_ENCODING,
    ) -> StatAttestationTree:
        """Load the dataset at ``path`` and wrap it."""
        return cls(load_dataset(path), encoding=encoding)

    def __len__(self) -> int:
        return len(self._records)

    def leaf_for_record(self, record: AssetStats) -> bytes:
        """Return the leaf hash the battle contract derives for a record."""
        return self.encoding.stat_leaf(
            record.asset_id,
            record.hit_points,
            record.attack,
        )

    @cached_property
    def tree(self) -> MerkleTree:
        """The Merkle tree over every record, in dataset order."""
        tree = MerkleTree(
            [self.leaf_for_record(r) for r in self._records],
            encoding=self.encoding,
        )
        logger.info(
            f"Built stats tree over {len(tree)} records, root {to_hex(tree.root)}",
        )
        return tree

    def root(self) -> bytes:
        """Return the root that must match the battle contract."""
        return self.tree.root

    def root_hex(self) -> str:
        """Return the root as 0x-prefixed hex."""
        return to_hex(self.root())

    def asset_ids(self) -> list[int]:
        """Return every asset id in dataset order."""
        return [record.asset_id for record in self._records]

    def has_asset(self, asset_id: int) -> bool:
        """Return True if ``asset_id`` is in the dataset."""
        return asset_id in self._positions

    def stats_for(self, asset_id: int) -> AssetStats:
        """Return the published stats of one asset.

        Raises:
            DatasetAssetNotFound: If the asset id is not in the dataset.

        """
        if not self.has_asset(asset_id):
            raise DatasetAssetNotFound(
                f"asset {asset_id} not found in stats dataset",
                public_message=f"Asset {asset_id} not found",
            )
        return self._records[self._positions[asset_id]]

    def proof_for(self, asset_id: int) -> StatProofArtifact:
        """Return the leaf, sibling path and root for one asset.

        Raises:
            DatasetAssetNotFound: If the asset id is not in the dataset.

        """
        stats = self.stats_for(asset_id)
        position = self._positions[asset_id]
        tree = self.tree
        return StatProofArtifact.from_bytes(
            leaf=tree.leaves[position],
            proof=tree.get_proof(position),
            root=tree.root,
            stats=stats,
        )

    def verify(
        self,
        asset_id: int,
        hit_points: int,
        attack: int,
        proof: list[str],
    ) -> bool:
        """Check a stat tuple and hex proof against the current root."""
        try:
            leaf = self.encoding.stat_leaf(asset_id, hit_points, attack)
            nodes = [from_hex(node) for node in proof]
        except (ValueError, TypeError, EncodingFault) as exc:
            logger.warning(f"Rejecting stats proof for asset {asset_id}: {exc}")
            return False
        return MerkleTree.verify_proof(nodes, leaf, self.root(), self.encoding)

    def validate_root(self, expected_root: str) -> None:
        """Compare the built root with the root deployed on-chain.

        Raises:
            ConfigurationFault: If the roots differ or the expected root
                is not hex.

        """
        actual = self.root_hex()
        try:
            expected = to_hex(from_hex(expected_root.strip()))
        except ValueError:
            raise ConfigurationFault(
                f"expected stats root is not hex: {expected_root!r}",
            ) from None
        if actual != expected:
            logger.critical("Stats Merkle root mismatch!")
            logger.critical(f"Expected: {expected_root}")
            logger.critical(f"Actual:   {actual}")
            raise ConfigurationFault(
                f"stats root {actual} does not match deployed root {expected_root}",
            )
        logger.info(f"Stats Merkle root matches deployed root {actual}")
