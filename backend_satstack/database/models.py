"""
Persistent entities (SQLAlchemy) and the plain records the store hands out.

TrackedAddress owns its ObservedTransactions (cascade delete). Observed
transactions are written once by the reconciliation engine and never updated;
(txid, address_id) is unique at the database level.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _now() -> int:
    return int(time.time())


# -----------------------------------------------------------------------------
# SQLAlchemy models
# -----------------------------------------------------------------------------


class TrackedAddress(Base):
    """A Bitcoin address being tracked; address string is immutable once created."""

    __tablename__ = "tracked_addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(256), nullable=False)
    address = Column(String(128), unique=True, nullable=False, index=True)
    created_at = Column(Integer, nullable=False, default=_now)  # Unix seconds

    transactions = relationship(
        "ObservedTransaction",
        back_populates="owner",
        cascade="all, delete-orphan",
    )


class ObservedTransaction(Base):
    """Net-positive transfer into a tracked address, priced at ingestion."""

    __tablename__ = "observed_transactions"
    __table_args__ = (
        UniqueConstraint("txid", "address_id", name="uq_observed_transactions_txid_address"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    txid = Column(String(128), nullable=False, index=True)
    address_id = Column(
        Integer,
        ForeignKey("tracked_addresses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount_btc = Column(Float, nullable=False)
    timestamp_ms = Column(BigInteger, nullable=False, index=True)
    price_usd = Column(Float, nullable=False)
    created_at = Column(Integer, nullable=False, default=_now)  # Unix seconds

    owner = relationship("TrackedAddress", back_populates="transactions")


# -----------------------------------------------------------------------------
# Records passed across the store boundary
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class AddressRecord:
    id: int
    label: str
    address: str
    created_at: int
    transaction_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "address": self.address,
            "created_at": self.created_at,
            "transaction_count": self.transaction_count,
        }


@dataclass(frozen=True)
class NewTransaction:
    """Priced transaction ready for insert."""

    txid: str
    address_id: int
    amount_btc: float
    timestamp_ms: int
    price_usd: float


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    txid: str
    address_id: int
    amount_btc: float
    timestamp_ms: int
    price_usd: float
    created_at: int

    @property
    def invested_usd(self) -> float:
        """Cost basis of this transaction (amount × price at time)."""
        return self.amount_btc * self.price_usd

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "txid": self.txid,
            "address_id": self.address_id,
            "amount_btc": self.amount_btc,
            "timestamp_ms": self.timestamp_ms,
            "price_usd": self.price_usd,
            "created_at": self.created_at,
        }
