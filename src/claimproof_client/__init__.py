"""ClaimProof Client - fetch and check proofs from a ClaimProof server."""
