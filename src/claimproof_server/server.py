# ClaimProof - server.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""HTTP API serving battle-stat and QRIS claim proofs."""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from claimproof_server import __version__
from claimproof_server.attestation import StatAttestationTree
from claimproof_server.common import get_logger
from claimproof_server.config import Config, load_config
from claimproof_server.encoding import to_hex
from claimproof_server.errors import ClaimProofError, ConfigurationFault
from claimproof_server.ledger import make_session_maker
from claimproof_server.service import ProofService
from claimproof_server.strategies import (
    HashCommitmentStrategy,
    InclusionProofStrategy,
    ProofMode,
    build_strategy,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

logger = get_logger("claimproof-server")

WALLET_HEADER = "X-Wallet-Address"


def _bad_request(message: str) -> tuple[Response, int]:
    return jsonify({"error": message, "error_kind": "bad_request"}), 400


def _wrong_mode(mode: ProofMode) -> tuple[Response, int]:
    return jsonify(
        {
            "error": f"Not available in {mode.value} proof mode",
            "error_kind": "wrong_proof_mode",
        },
    ), 409


def create_app(
    config: Config,
    session_maker: sessionmaker[Session],
    attestation: StatAttestationTree,
    proof_service: ProofService,
) -> Flask:
    """Create the Flask application around already-validated components."""
    app = Flask(__name__)
    CORS(app)
    strategy = proof_service.strategy

    @app.errorhandler(ClaimProofError)
    def handle_claim_proof_error(exc: ClaimProofError) -> tuple[Response, int]:
        if exc.http_status >= 500:
            logger.error(f"{exc.kind}: {exc}")
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException) -> tuple[Response, int]:
        return jsonify({"error": exc.description, "error_kind": "http"}), exc.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception) -> tuple[Response, int]:
        logger.error(f"Unhandled error serving {request.path}", exc_info=exc)
        return jsonify(
            {"error": "Internal server error", "error_kind": "internal"},
        ), 500

    def wallet_from_request() -> str | None:
        return request.headers.get(WALLET_HEADER) or request.args.get("wallet")

    @app.route("/status", methods=["GET"])
    def handle_get_status() -> Response:
        """Handle status request."""
        return jsonify(
            {
                "status": "ok",
                "version": __version__,
                "proof_mode": config.proof_mode.value,
                "stats_root": attestation.root_hex(),
            },
        )

    @app.route("/stats/root", methods=["GET"])
    def handle_get_stats_root() -> Response:
        """Handle stats root request."""
        return jsonify(
            {"root": attestation.root_hex(), "count": len(attestation)},
        )

    @app.route("/stats/<asset_id>", methods=["GET"])
    def handle_get_stats(asset_id: str) -> Response | tuple[Response, int]:
        """Return the published stats of one asset."""
        try:
            parsed_id = int(asset_id)
        except ValueError:
            return _bad_request("asset_id must be an integer")
        return jsonify(attestation.stats_for(parsed_id).model_dump())

    @app.route("/stats/<asset_id>/proof", methods=["GET"])
    def handle_get_stats_proof(asset_id: str) -> Response | tuple[Response, int]:
        """Return the inclusion proof of one asset's stats."""
        try:
            parsed_id = int(asset_id)
        except ValueError:
            return _bad_request("asset_id must be an integer")
        return jsonify(attestation.proof_for(parsed_id).model_dump())

    @app.route("/qris/eligibility", methods=["GET"])
    def handle_get_eligibility() -> Response:
        """Report whether the wallet has a settled payment."""
        with session_maker() as session:
            return jsonify(
                proof_service.eligibility(session, wallet_from_request()),
            )

    @app.route("/qris/proof", methods=["GET"])
    def handle_get_claim_proof() -> Response:
        """Return the claim proof for the wallet's latest settled payment."""
        with session_maker() as session:
            artifact = proof_service.proof_for_wallet(
                session,
                wallet_from_request(),
            )
            return jsonify(artifact.model_dump())

    @app.route("/qris/root", methods=["GET"])
    def handle_get_claims_root() -> Response | tuple[Response, int]:
        """Return the current claim tree root for publication."""
        if not isinstance(strategy, InclusionProofStrategy):
            return _wrong_mode(strategy.mode)
        with session_maker() as session:
            return jsonify({"root": to_hex(strategy.root(session))})

    @app.route("/qris/secret-hash", methods=["GET"])
    def handle_get_secret_hash() -> Response | tuple[Response, int]:
        """Return the hash of the claim secret stored by the contract."""
        if not isinstance(strategy, HashCommitmentStrategy):
            return _wrong_mode(strategy.mode)
        return jsonify({"secret_hash": to_hex(strategy.secret_hash)})

    return app


def build_components(
    config: Config,
) -> tuple[sessionmaker[Session], StatAttestationTree, ProofService]:
    """Load and check everything the API needs before it takes traffic.

    Raises:
        ConfigurationFault: On a bad dataset, root mismatch or missing
            secret.

    """
    attestation = StatAttestationTree.from_file(config.dataset_path)
    if config.expected_stats_root:
        attestation.validate_root(config.expected_stats_root)
    else:
        logger.warning(
            "No expected stats root configured; serving root "
            f"{attestation.root_hex()} unchecked.",
        )

    proof_service = ProofService(build_strategy(config))
    session_maker = make_session_maker(config.database_url)
    return session_maker, attestation, proof_service


def main() -> None:
    """Handle running the proof API from the command line."""
    parser = argparse.ArgumentParser(description="Run the ClaimProof API.")
    parser.add_argument("--host", type=str, default=None, help="Host IP to bind to.")
    parser.add_argument("--port", type=int, default=None, help="API port.")
    parser.add_argument(
        "--dataset",
        type=str,
        default=None,
        help="Path to the stats dataset JSON.",
    )
    parser.add_argument(
        "--expected-stats-root",
        type=str,
        default=None,
        help="Stats root deployed on-chain (0x-prefixed).",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ProofMode],
        default=None,
        help="Claim proof mode.",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL of the payment ledger.",
    )
    args = parser.parse_args()

    try:
        config = load_config(
            host=args.host,
            port=args.port,
            dataset_path=args.dataset,
            expected_stats_root=args.expected_stats_root,
            proof_mode=args.mode,
            database_url=args.database_url,
        )
        logger.info(
            f"Starting with dataset {config.dataset_path}, "
            f"proof mode {config.proof_mode.value}",
        )
        session_maker, attestation, proof_service = build_components(config)
    except ConfigurationFault as exc:
        logger.critical(f"Refusing to start: {exc}")
        sys.exit(1)

    app = create_app(config, session_maker, attestation, proof_service)
    logger.info(f"API server starting on http://{config.host}:{config.port}")
    try:
        app.run(host=config.host, port=config.port, debug=False, use_reloader=False)
    except KeyboardInterrupt:
        logger.info("Shutdown signal received. Exiting.")


if __name__ == "__main__":
    main()
