"""ClaimProof Client - Fetch claim and stat proofs and verify them locally."""

from __future__ import annotations

import argparse
import json
import random
import sys
from typing import Any, TypedDict, cast

import requests
from eth_utils import keccak

# A list of known servers for resilience.
DEFAULT_SERVERS = [
    "http://127.0.0.1:8000",
]

WALLET_HEADER = "X-Wallet-Address"


# --- Data models to match the server's API responses ---
class AssetStatsResult(TypedDict):
    """Stats block inside a stat proof."""

    asset_id: int
    hit_points: int
    attack: int


class StatProofResponse(TypedDict):
    """The expected JSON response from /stats/<asset_id>/proof."""

    leaf: str
    proof: list[str]
    root: str
    stats: AssetStatsResult


class ClaimProofResponse(TypedDict, total=False):
    """The expected JSON response from /qris/proof.

    ``leaf``, ``proof`` and ``root`` are present in inclusion mode,
    ``proof_hash`` in hash mode.
    """

    mode: str
    claim_id: str
    amount: int
    leaf: str
    proof: list[str]
    root: str
    proof_hash: str


class ErrorResponse(TypedDict):
    """A response containing an error message."""

    error: str
    error_kind: str


class ClaimProofClientError(Exception):
    """Every server failed, or the server answered with an error."""

    def __init__(self, message: str, error_kind: str = "unreachable") -> None:
        super().__init__(message)
        self.error_kind = error_kind


# --- Local Merkle Proof Verification Logic ---
def verify_merkle_proof(
    leaf_hash_hex: str,
    proof: list[str],
    root_hex: str,
) -> bool:
    """Verify a sorted-pair Keccak Merkle proof locally."""
    try:
        current_hash = bytes.fromhex(leaf_hash_hex.removeprefix("0x"))
        for proof_hash_hex in proof:
            proof_hash = bytes.fromhex(proof_hash_hex.removeprefix("0x"))
            # Siblings are concatenated in ascending numeric order
            if current_hash < proof_hash:
                combined = current_hash + proof_hash
            else:
                combined = proof_hash + current_hash
            current_hash = keccak(combined)

        return "0x" + current_hash.hex() == root_hex.lower()
    except (ValueError, TypeError, AttributeError):
        # Handles cases where hex strings are malformed
        return False


class ClaimProofClient:
    """Thin HTTP client for the proof API, trying servers in random order."""

    def __init__(
        self,
        servers: list[str] | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.servers = list(servers or DEFAULT_SERVERS)
        self.timeout = timeout
        self.http = session or requests.Session()

    def _get(
        self,
        path: str,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        last_error: Exception | None = None
        for server_url in random.sample(self.servers, len(self.servers)):
            try:
                response = self.http.get(
                    f"{server_url}{path}",
                    headers=headers,
                    timeout=self.timeout,
                )
                data = response.json()
            except requests.RequestException as exc:
                last_error = exc
                continue
            if response.status_code >= 400:
                error = cast(ErrorResponse, data)
                raise ClaimProofClientError(
                    error.get("error", f"HTTP {response.status_code}"),
                    error.get("error_kind", "http"),
                )
            return cast(dict[str, Any], data)
        raise ClaimProofClientError(f"no server reachable: {last_error}")

    def stats_root(self) -> str:
        """Return the stats root the server is serving."""
        return cast(str, self._get("/stats/root")["root"])

    def stat_proof(self, asset_id: int, verify: bool = True) -> StatProofResponse:
        """Fetch the stat proof of one asset, checking it locally."""
        result = cast(StatProofResponse, self._get(f"/stats/{asset_id}/proof"))
        if verify and not verify_merkle_proof(
            result["leaf"],
            result["proof"],
            result["root"],
        ):
            raise ClaimProofClientError(
                f"stat proof for asset {asset_id} does not match its root",
                "invalid_proof",
            )
        return result

    def claim_proof(self, wallet: str, verify: bool = True) -> ClaimProofResponse:
        """Fetch the claim proof of a wallet.

        Inclusion proofs are checked against the returned root; hash mode
        proofs can only be checked by the contract.
        """
        result = cast(
            ClaimProofResponse,
            self._get("/qris/proof", headers={WALLET_HEADER: wallet}),
        )
        if (
            verify
            and result.get("mode") == "inclusion"
            and not verify_merkle_proof(
                result["leaf"],
                result["proof"],
                result["root"],
            )
        ):
            raise ClaimProofClientError(
                f"claim proof for {wallet} does not match its root",
                "invalid_proof",
            )
        return result

    def eligibility(self, wallet: str) -> dict[str, Any]:
        """Ask whether a wallet has a settled payment."""
        return self._get("/qris/eligibility", headers={WALLET_HEADER: wallet})


def main(argv: list[str] | None = None) -> int:
    """Print a proof from the command line."""
    parser = argparse.ArgumentParser(description="Fetch a ClaimProof proof.")
    parser.add_argument(
        "--server",
        action="append",
        default=None,
        help="server URL (repeatable)",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--asset", type=int, help="asset id of a stat proof")
    target.add_argument("--wallet", type=str, help="wallet of a claim proof")
    args = parser.parse_args(argv)

    client = ClaimProofClient(args.server)
    try:
        if args.asset is not None:
            result: Any = client.stat_proof(args.asset)
        else:
            result = client.claim_proof(args.wallet)
    except ClaimProofClientError as exc:
        print(f"error ({exc.error_kind}): {exc}", file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
