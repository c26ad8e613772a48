# ClaimProof - merkle.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""A sorted-pair Merkle Tree engine for generating inclusion proofs."""

from __future__ import annotations

from claimproof_server.encoding import CURRENT_ENCODING, PackedEncoding


class MerkleTree:
    """A binary Keccak tree whose node hashes ignore left/right position.

    Leaves keep the order they are given in. A level with an odd number of
    nodes promotes its last node unchanged, so proofs never contain a
    duplicated sibling.
    """

    def __init__(
        self,
        leaves: list[bytes],
        encoding: PackedEncoding = CURRENT_ENCODING,
    ) -> None:
        """Build every level of the tree from already-hashed leaves."""
        if not leaves:
            raise ValueError("Cannot create a Merkle Tree with no leaves.")

        self.encoding = encoding
        # --- Leaves are ALREADY hashes. Do NOT re-hash them. ---
        self.leaves: list[bytes] = list(leaves)
        self.levels: list[list[bytes]] = [self.leaves]
        while len(self.levels[-1]) > 1:
            self._build_next_level()

        self.root: bytes = self.levels[-1][0]

    def _build_next_level(self) -> None:
        """Take the last level of the tree and build the next level up."""
        last_level = self.levels[-1]
        next_level: list[bytes] = []
        for i in range(0, len(last_level) - 1, 2):
            next_level.append(
                self.encoding.pair(last_level[i], last_level[i + 1]),
            )
        if len(last_level) % 2 == 1:
            next_level.append(last_level[-1])
        self.levels.append(next_level)

    def __len__(self) -> int:
        return len(self.leaves)

    def leaf_index(self, leaf: bytes) -> int:
        """Return the position of the first matching leaf.

        Raises:
            ValueError: If the leaf is not part of the tree.

        """
        return self.leaves.index(leaf)

    def get_proof(self, index: int) -> list[bytes]:
        """Generate the proof of inclusion for a leaf at a given index.

        The proof is the list of sibling hashes from the leaf level up to,
        but not including, the root.
        """
        if index < 0 or index >= len(self.leaves):
            raise IndexError("Leaf index out of range.")

        proof: list[bytes] = []
        for level in self.levels[:-1]:
            is_right_node = index % 2 == 1
            sibling_index = index - 1 if is_right_node else index + 1
            if sibling_index < len(level):
                proof.append(level[sibling_index])
            index //= 2
        return proof

    @staticmethod
    def compute_root(
        proof: list[bytes],
        leaf: bytes,
        encoding: PackedEncoding = CURRENT_ENCODING,
    ) -> bytes:
        """Fold a proof onto a leaf the way the on-chain verifier does."""
        current_hash = leaf
        for sibling in proof:
            current_hash = encoding.pair(current_hash, sibling)
        return current_hash

    @staticmethod
    def verify_proof(
        proof: list[bytes],
        leaf: bytes,
        root: bytes,
        encoding: PackedEncoding = CURRENT_ENCODING,
    ) -> bool:
        """Verify a proof without needing the entire tree."""
        return MerkleTree.compute_root(proof, leaf, encoding) == root
