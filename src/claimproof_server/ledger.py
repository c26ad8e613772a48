"""Ledger - QRIS payment records read by the claim proof strategies."""

# Copyright (C) 2025 The ClaimProof Contributors
# This program is licensed under the Peer Production License (PPL).
# See the LICENSE file for full details.

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Final

from sqlalchemy import (
    DateTime,
    Engine,
    Enum,
    Integer,
    String,
    create_engine,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    sessionmaker,
)

from claimproof_server.common import DEFAULT_DATABASE_URL, get_logger
from claimproof_server.encoding import normalize_wallet

logger = get_logger("ledger")


class LedgerError(Exception):
    """Ledger Error."""

    __slots__ = ()


class Base(DeclarativeBase):
    """DeclarativeBase subclass."""

    __slots__ = ()


class ClaimStatus(str, enum.Enum):
    """Lifecycle of a payment claim."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


# Gateway transaction statuses and the claim status each one settles to.
GATEWAY_STATUS_MAP: Final[dict[str, ClaimStatus]] = {
    "settlement": ClaimStatus.SUCCESS,
    "capture": ClaimStatus.SUCCESS,
    "expire": ClaimStatus.FAILED,
    "deny": ClaimStatus.FAILED,
    "cancel": ClaimStatus.FAILED,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClaimRecord(Base):
    """One QRIS payment and its settlement state."""

    __tablename__ = "qris_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    wallet_address: Mapped[str] = mapped_column(
        String,
        nullable=False,
        index=True,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus),
        default=ClaimStatus.PENDING,
        nullable=False,
    )
    transaction_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    settled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and admin tooling."""
        return {
            "order_id": self.order_id,
            "wallet_address": self.wallet_address,
            "amount": self.amount,
            "status": self.status.value,
            "transaction_id": self.transaction_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "settled_at": self.settled_at.isoformat() if self.settled_at else None,
        }


def initialize_database(engine: Engine) -> None:
    """Ensure the database file and ALL required tables exist."""
    Base.metadata.create_all(engine)
    logger.info("initialized database")


def make_session_maker(database_url: str = DEFAULT_DATABASE_URL) -> sessionmaker[Session]:
    """Return a session factory bound to an initialized database."""
    engine = create_engine(database_url)
    initialize_database(engine)
    return sessionmaker(bind=engine)


def get_claim(session: Session, order_id: str) -> ClaimRecord | None:
    """Return the claim for an order id if it exists."""
    return (
        session.query(ClaimRecord)
        .filter(ClaimRecord.order_id == order_id)
        .one_or_none()
    )


def create_pending_claim(
    session: Session,
    order_id: str,
    wallet_address: str,
    amount: int,
) -> ClaimRecord:
    """Insert a new pending claim for a freshly created payment."""
    if amount <= 0:
        raise LedgerError(f"amount must be a positive integer: {amount=}")
    if get_claim(session, order_id) is not None:
        raise LedgerError(f"order already recorded: {order_id=}")
    record = ClaimRecord(
        order_id=order_id,
        wallet_address=normalize_wallet(wallet_address),
        amount=amount,
        status=ClaimStatus.PENDING,
    )
    session.add(record)
    logger.info(f"inserted pending claim for order {order_id}")
    return record


def apply_gateway_notification(
    session: Session,
    order_id: str,
    transaction_status: str,
    transaction_id: str | None = None,
) -> ClaimRecord:
    """Apply a payment gateway notification to the matching claim.

    Unknown gateway statuses leave the claim as it is. A claim that has
    already succeeded is never moved back.
    """
    record = get_claim(session, order_id)
    if record is None:
        raise LedgerError(f"payment not found: {order_id=}")

    new_status = GATEWAY_STATUS_MAP.get(transaction_status, record.status)
    if record.status is ClaimStatus.SUCCESS and new_status is not ClaimStatus.SUCCESS:
        logger.warning(
            f"ignoring {transaction_status} for settled order {order_id}",
        )
        return record

    if new_status is ClaimStatus.SUCCESS and record.settled_at is None:
        record.settled_at = _utcnow()
    record.status = new_status
    if transaction_id:
        record.transaction_id = transaction_id
    logger.info(f"payment {order_id} updated to {new_status.value}")
    return record


def get_success_claims(session: Session) -> list[ClaimRecord]:
    """Return every settled claim in insertion order."""
    return (
        session.query(ClaimRecord)
        .filter(ClaimRecord.status == ClaimStatus.SUCCESS)
        .order_by(ClaimRecord.id.asc())
        .all()
    )


def get_latest_success_claim(
    session: Session,
    wallet_address: str,
) -> ClaimRecord | None:
    """Return the most recently created settled claim of a wallet, if any.

    Payments created at the same moment fall back to settlement time.
    """
    return (
        session.query(ClaimRecord)
        .filter(ClaimRecord.wallet_address == normalize_wallet(wallet_address))
        .filter(ClaimRecord.status == ClaimStatus.SUCCESS)
        .order_by(
            ClaimRecord.created_at.desc(),
            ClaimRecord.settled_at.desc().nulls_last(),
            ClaimRecord.id.desc(),
        )
        .first()
    )
