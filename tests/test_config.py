# ClaimProof - test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from claimproof_server.config import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    ENV_CLAIM_SECRET,
    ENV_PORT,
    ENV_PROOF_MODE,
    load_config,
)
from claimproof_server.errors import ConfigurationFault
from claimproof_server.strategies import ProofMode

from conftest import SECRET


def test_defaults_in_inclusion_mode() -> None:
    config = load_config({ENV_PROOF_MODE: "inclusion"})
    assert config.proof_mode is ProofMode.INCLUSION
    assert config.host == DEFAULT_HOST
    assert config.port == DEFAULT_PORT
    assert config.claim_secret is None
    assert config.expected_stats_root is None


def test_hash_mode_requires_secret() -> None:
    with pytest.raises(ConfigurationFault, match=ENV_CLAIM_SECRET):
        load_config({})


def test_secret_is_wrapped() -> None:
    config = load_config({ENV_CLAIM_SECRET: SECRET})
    assert config.proof_mode is ProofMode.HASH
    assert config.claim_secret is not None
    assert config.claim_secret.get_secret_value() == SECRET
    assert SECRET not in repr(config)
    assert SECRET not in str(config.model_dump())


@pytest.mark.parametrize(
    "environ",
    [
        {ENV_PROOF_MODE: "merkle"},
        {ENV_PROOF_MODE: "inclusion", ENV_PORT: "not-a-port"},
        {ENV_PROOF_MODE: "inclusion", ENV_PORT: "70000"},
        {ENV_PROOF_MODE: "inclusion", "CLAIMPROOF_EXPECTED_STATS_ROOT": "0x1234"},
    ],
)
def test_invalid_values_are_rejected(environ: dict[str, str]) -> None:
    with pytest.raises(ConfigurationFault):
        load_config(environ)


def test_error_message_does_not_echo_secret() -> None:
    with pytest.raises(ConfigurationFault) as excinfo:
        load_config({ENV_CLAIM_SECRET: SECRET, ENV_PORT: "bogus"})
    assert SECRET not in str(excinfo.value)
    assert "bogus" not in str(excinfo.value)


def test_overrides_win_over_environment(tmp_path: Path) -> None:
    config = load_config(
        {ENV_PROOF_MODE: "hash", ENV_PORT: "9000"},
        proof_mode="inclusion",
        port=9100,
        dataset_path=str(tmp_path / "stats.json"),
        host=None,
    )
    assert config.proof_mode is ProofMode.INCLUSION
    assert config.port == 9100
    assert config.dataset_path == tmp_path / "stats.json"
    assert config.host == DEFAULT_HOST
