"""ClaimProof Server - off-chain proofs for on-chain claims."""

# ClaimProof - __init__.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.

__version__ = "0.3.0"
