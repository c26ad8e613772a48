"""Common - Shared constants and logging setup."""
# ClaimProof - common.py
# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Final

# This file is located at: .../src/claimproof_server/common.py
PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parent.parent.parent

DEFAULT_DATASET_PATH: Final[Path] = PROJECT_ROOT / "data" / "stats.json"
DEFAULT_DATABASE_URL: Final[str] = "sqlite:///claimproof_ledger.db"

# --- Protocol Constants ---
# Fixed reward paid by the claim contract for one QRIS payment.
REWARD_AMOUNT: Final[int] = 1000
HASH_SIZE: Final[int] = 32  # in bytes
ADDRESS_SIZE: Final[int] = 20  # in bytes
ZERO_HASH: Final[bytes] = b"\x00" * HASH_SIZE

LOG_FORMAT: Final[str] = (
    "[%(name)s] %(asctime)s | %(levelname)s | %(filename)s:%(lineno)s >>> %(message)s"
)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger writing to stdout in the project format."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        stdout_handler = logging.StreamHandler(stream=sys.stdout)
        stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(stdout_handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger
