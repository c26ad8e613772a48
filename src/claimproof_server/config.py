# ClaimProof - config.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.
"""Runtime configuration read from the environment and the command line."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from pydantic import BaseModel, Field, SecretStr, ValidationError

from claimproof_server.common import DEFAULT_DATABASE_URL, DEFAULT_DATASET_PATH
from claimproof_server.errors import ConfigurationFault
from claimproof_server.strategies import ProofMode

DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_PORT: Final[int] = 8000
DEFAULT_PROOF_MODE: Final[ProofMode] = ProofMode.HASH

ENV_DATASET_PATH: Final[str] = "CLAIMPROOF_DATASET_PATH"
ENV_EXPECTED_STATS_ROOT: Final[str] = "CLAIMPROOF_EXPECTED_STATS_ROOT"
ENV_PROOF_MODE: Final[str] = "CLAIMPROOF_PROOF_MODE"
ENV_CLAIM_SECRET: Final[str] = "QRIS_CLAIM_SECRET"
ENV_DATABASE_URL: Final[str] = "CLAIMPROOF_DATABASE_URL"
ENV_HOST: Final[str] = "CLAIMPROOF_HOST"
ENV_PORT: Final[str] = "CLAIMPROOF_PORT"


class Config(BaseModel):
    """Used as a checkpoint between user input and software."""

    dataset_path: Path = DEFAULT_DATASET_PATH
    expected_stats_root: str | None = Field(
        default=None,
        pattern=r"^0x[0-9a-fA-F]{64}$",
    )
    proof_mode: ProofMode = DEFAULT_PROOF_MODE
    claim_secret: SecretStr | None = None
    database_url: str = DEFAULT_DATABASE_URL
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)


def _describe(exc: ValidationError) -> str:
    """Summarize validation errors without echoing any input values."""
    return "; ".join(
        f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}"
        for error in exc.errors(include_input=False)
    )


def load_config(
    environ: Mapping[str, str] | None = None,
    **overrides: object,
) -> Config:
    """Build the configuration from environment variables.

    The lookup order is: keyword overrides (from the CLI), then the
    environment, then the defaults above.

    Raises:
        ConfigurationFault: If a value is invalid, or hash mode is
            selected without a claim secret.

    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}
    for field_name, env_name in (
        ("dataset_path", ENV_DATASET_PATH),
        ("expected_stats_root", ENV_EXPECTED_STATS_ROOT),
        ("proof_mode", ENV_PROOF_MODE),
        ("claim_secret", ENV_CLAIM_SECRET),
        ("database_url", ENV_DATABASE_URL),
        ("host", ENV_HOST),
        ("port", ENV_PORT),
    ):
        value = env.get(env_name)
        if value:
            values[field_name] = value.strip() if field_name != "claim_secret" else value
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = Config(**values)
    except ValidationError as exc:
        raise ConfigurationFault(f"invalid configuration: {_describe(exc)}") from None

    if config.proof_mode is ProofMode.HASH and config.claim_secret is None:
        raise ConfigurationFault(f"{ENV_CLAIM_SECRET} not set in env")
    return config
