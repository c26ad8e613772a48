# ClaimProof - conftest.py

from __future__ import annotations

import json
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from claimproof_server.artifacts import AssetStats
from claimproof_server.ledger import Base, ClaimRecord, ClaimStatus

WALLET_A = "0x1111111111111111111111111111111111111111"
WALLET_B = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
SECRET = "correct-horse-battery-staple"

BASE_TIME = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def session_maker() -> Generator[sessionmaker[Session], None, None]:
    """Return a session factory over one shared in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine)
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(
    session_maker: sessionmaker[Session],
) -> Generator[Session, None, None]:
    """Return a clean, isolated database session."""
    session = session_maker()
    try:
        yield session
    finally:
        session.close()


def add_claim(
    session: Session,
    order_id: str,
    wallet: str,
    status: ClaimStatus,
    minutes: int = 0,
    settled_minutes: int | None = None,
) -> ClaimRecord:
    """Insert a claim created ``minutes`` after BASE_TIME.

    A settled claim is stamped ``settled_minutes`` after BASE_TIME, or at
    its creation time when that is not given.
    """
    stamp = BASE_TIME + timedelta(minutes=minutes)
    settled = stamp
    if settled_minutes is not None:
        settled = BASE_TIME + timedelta(minutes=settled_minutes)
    record = ClaimRecord(
        order_id=order_id,
        wallet_address=wallet.lower(),
        amount=1000,
        status=status,
        created_at=stamp,
        settled_at=settled if status is ClaimStatus.SUCCESS else None,
    )
    session.add(record)
    session.commit()
    return record


@pytest.fixture
def two_asset_records() -> list[AssetStats]:
    return [
        AssetStats(asset_id=1, hit_points=100, attack=20),
        AssetStats(asset_id=2, hit_points=80, attack=30),
    ]


@pytest.fixture
def dataset_file(tmp_path: Path) -> Path:
    """Write a small stats dataset using the published field names."""
    path = tmp_path / "stats.json"
    path.write_text(
        json.dumps(
            [
                {"tokenId": 1, "hp": 100, "attack": 20},
                {"tokenId": 2, "hp": 80, "attack": 30},
                {"tokenId": 3, "hp": 120, "attack": 15},
            ],
        ),
        encoding="utf-8",
    )
    return path
