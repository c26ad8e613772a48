# ClaimProof - tools.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""Deployment helpers: compute the values the contracts are deployed with."""

from __future__ import annotations

import os
import sys
from argparse import ArgumentParser, Namespace

from claimproof_server.attestation import StatAttestationTree
from claimproof_server.common import DEFAULT_DATABASE_URL, get_logger
from claimproof_server.config import ENV_CLAIM_SECRET, ENV_DATABASE_URL
from claimproof_server.encoding import CURRENT_ENCODING, to_hex
from claimproof_server.errors import ConfigurationFault
from claimproof_server.ledger import make_session_maker
from claimproof_server.strategies import InclusionProofStrategy

logger = get_logger("claimproof-tools")


def cmd_stats_root(args: Namespace) -> int:
    """Print the attestation root of a stats dataset."""
    attestation = StatAttestationTree.from_file(args.dataset)
    print(attestation.root_hex())
    if args.check_all:
        failed = [
            asset_id
            for asset_id in attestation.asset_ids()
            if not attestation.verify(
                asset_id,
                attestation.stats_for(asset_id).hit_points,
                attestation.stats_for(asset_id).attack,
                attestation.proof_for(asset_id).proof,
            )
        ]
        if failed:
            logger.error(f"{len(failed)} proofs failed to verify: {failed[:10]}")
            return 1
        logger.info(f"All {len(attestation)} proofs verify against the root.")
    return 0


def cmd_secret_hash(args: Namespace) -> int:
    """Print keccak256 of the claim secret for the contract constructor."""
    secret = os.environ.get(ENV_CLAIM_SECRET)
    if not secret:
        raise ConfigurationFault(f"{ENV_CLAIM_SECRET} not set in env")
    print(to_hex(CURRENT_ENCODING.secret_hash(secret)))
    return 0


def cmd_claims_root(args: Namespace) -> int:
    """Print the current claim tree root of the payment ledger."""
    session_maker = make_session_maker(args.database_url)
    with session_maker() as session:
        print(to_hex(InclusionProofStrategy().root(session)))
    return 0


parser = ArgumentParser(
    prog="claimproof-tools",
    description="Compute roots and hashes the claim and battle contracts are deployed with.",
)
subparsers = parser.add_subparsers(dest="command", required=True)

stats_parser = subparsers.add_parser("stats-root", help="root of a stats dataset")
stats_parser.add_argument("dataset", help="path to the stats dataset JSON")
stats_parser.add_argument(
    "--check-all",
    default=False,
    action="store_true",
    help="also verify the proof of every asset against the root",
)
stats_parser.set_defaults(handler=cmd_stats_root)

secret_parser = subparsers.add_parser(
    "secret-hash",
    help=f"hash of {ENV_CLAIM_SECRET} for the claim contract",
)
secret_parser.set_defaults(handler=cmd_secret_hash)

claims_parser = subparsers.add_parser("claims-root", help="root of settled claims")
claims_parser.add_argument(
    "--database-url",
    default=os.environ.get(ENV_DATABASE_URL, DEFAULT_DATABASE_URL),
    help="SQLAlchemy URL of the payment ledger",
)
claims_parser.set_defaults(handler=cmd_claims_root)


def main(argv: list[str] | None = None) -> int:
    """Run one tool command and return its exit status."""
    args = parser.parse_args(argv)
    try:
        return args.handler(args)
    except ConfigurationFault as exc:
        logger.critical(str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
