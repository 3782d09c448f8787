"""
Persistent store boundary for the sync core, plus address management.

The sync core only needs TransactionStore (list persisted txids, batch insert
ignoring duplicates, list addresses). SQLAlchemyStore implements it and the
address CRUD used by the API server. The database unique constraint on
(txid, address_id) is what makes concurrent passes for the same address safe;
the engine's "already persisted" check is only an optimization.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Iterator, Sequence

from sqlalchemy import func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from backend_satstack.core.exceptions import AddressNotFound, DuplicateAddress, PersistenceError
from backend_satstack.database.connection import get_session_factory, session_scope
from backend_satstack.database.models import (
    AddressRecord,
    NewTransaction,
    ObservedTransaction,
    TrackedAddress,
    TransactionRecord,
)
from backend_satstack.satstack_logging import get_logger

logger = get_logger(__name__)

# 6 bound parameters per row; stays under SQLite's legacy 999-variable limit
INSERT_CHUNK_SIZE = 150

_CONFLICT_COLUMNS = ["txid", "address_id"]


class TransactionStore(ABC):
    """What the reconciliation engine and orchestrator need from persistence."""

    @abstractmethod
    def list_transaction_identifiers(self, address_id: int) -> set[str]:
        """Return txids already persisted for the address."""
        ...

    @abstractmethod
    def insert_transactions_ignoring_duplicates(self, records: Sequence[NewTransaction]) -> int:
        """
        Insert records in one transaction, silently skipping rows that violate
        (txid, address_id) uniqueness. Returns the number actually inserted.
        """
        ...

    @abstractmethod
    def list_addresses(self) -> list[AddressRecord]:
        """Return every tracked address, oldest first."""
        ...


def _chunks(rows: list[dict[str, Any]], size: int) -> Iterator[list[dict[str, Any]]]:
    for i in range(0, len(rows), size):
        yield rows[i : i + size]


def _to_address_record(row: TrackedAddress, count: int = 0) -> AddressRecord:
    return AddressRecord(
        id=row.id,
        label=row.label,
        address=row.address,
        created_at=row.created_at,
        transaction_count=count,
    )


def _to_transaction_record(row: ObservedTransaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        txid=row.txid,
        address_id=row.address_id,
        amount_btc=row.amount_btc,
        timestamp_ms=row.timestamp_ms,
        price_usd=row.price_usd,
        created_at=row.created_at,
    )


def _insert_ignoring_duplicates(session: Session, rows: list[dict[str, Any]]) -> int:
    """ON CONFLICT DO NOTHING where the dialect has it; savepoint per row elsewhere."""
    table = ObservedTransaction.__table__
    dialect = session.get_bind().dialect.name
    if dialect in ("sqlite", "postgresql"):
        dialect_insert = sqlite_insert if dialect == "sqlite" else pg_insert
        inserted = 0
        for chunk in _chunks(rows, INSERT_CHUNK_SIZE):
            stmt = dialect_insert(table).values(chunk).on_conflict_do_nothing(
                index_elements=_CONFLICT_COLUMNS
            )
            result = session.execute(stmt)
            inserted += max(result.rowcount or 0, 0)
        return inserted

    inserted = 0
    for row in rows:
        try:
            with session.begin_nested():
                session.execute(insert(table).values(**row))
            inserted += 1
        except IntegrityError:
            logger.debug("store_duplicate_skipped", txid=row["txid"], address_id=row["address_id"])
    return inserted


class SQLAlchemyStore(TransactionStore):
    """SQLAlchemy-backed store; one session per call."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._factory = session_factory or get_session_factory()

    # --- Sync core boundary ---

    def list_transaction_identifiers(self, address_id: int) -> set[str]:
        try:
            with session_scope(self._factory) as session:
                rows = session.execute(
                    select(ObservedTransaction.txid).where(ObservedTransaction.address_id == address_id)
                ).all()
                return {r[0] for r in rows}
        except SQLAlchemyError as e:
            logger.exception("store_list_txids_failed", address_id=address_id, error=str(e))
            raise PersistenceError(f"could not load transactions for address {address_id}") from e

    def insert_transactions_ignoring_duplicates(self, records: Sequence[NewTransaction]) -> int:
        if not records:
            return 0
        now = int(time.time())
        rows = [
            {
                "txid": r.txid,
                "address_id": r.address_id,
                "amount_btc": r.amount_btc,
                "timestamp_ms": r.timestamp_ms,
                "price_usd": r.price_usd,
                "created_at": now,
            }
            for r in records
        ]
        try:
            with session_scope(self._factory) as session:
                inserted = _insert_ignoring_duplicates(session, rows)
        except SQLAlchemyError as e:
            logger.exception("store_insert_failed", records=len(rows), error=str(e))
            raise PersistenceError(f"could not insert {len(rows)} transactions") from e
        if inserted < len(rows):
            logger.info("store_duplicates_ignored", records=len(rows), inserted=inserted)
        return inserted

    def list_addresses(self) -> list[AddressRecord]:
        try:
            with session_scope(self._factory) as session:
                rows = session.execute(select(TrackedAddress).order_by(TrackedAddress.id)).scalars().all()
                return [_to_address_record(r) for r in rows]
        except SQLAlchemyError as e:
            logger.exception("store_list_addresses_failed", error=str(e))
            raise PersistenceError("could not list addresses") from e

    # --- Address management ---

    def add_address(self, label: str, address: str) -> AddressRecord:
        """Track a new address. Raises ValueError on blank input, DuplicateAddress if already tracked."""
        label = (label or "").strip()
        address = (address or "").strip()
        if not label or not address:
            raise ValueError("label and address must be non-empty")
        try:
            with session_scope(self._factory) as session:
                row = TrackedAddress(label=label, address=address, created_at=int(time.time()))
                session.add(row)
                session.flush()
                record = _to_address_record(row)
        except IntegrityError as e:
            logger.info("address_already_exists", address=address[:16])
            raise DuplicateAddress(address) from e
        except SQLAlchemyError as e:
            logger.exception("store_add_address_failed", error=str(e))
            raise PersistenceError("could not add address") from e
        logger.info("address_added", address_id=record.id, address=address[:16])
        return record

    def get_address(self, address_id: int) -> AddressRecord:
        try:
            with session_scope(self._factory) as session:
                row = session.get(TrackedAddress, address_id)
                if row is None:
                    raise AddressNotFound(address_id)
                return _to_address_record(row)
        except SQLAlchemyError as e:
            logger.exception("store_get_address_failed", address_id=address_id, error=str(e))
            raise PersistenceError(f"could not load address {address_id}") from e

    def delete_address(self, address_id: int) -> None:
        """Delete an address and, by cascade, all of its observed transactions."""
        try:
            with session_scope(self._factory) as session:
                row = session.get(TrackedAddress, address_id)
                if row is None:
                    raise AddressNotFound(address_id)
                session.delete(row)
        except SQLAlchemyError as e:
            logger.exception("store_delete_address_failed", address_id=address_id, error=str(e))
            raise PersistenceError(f"could not delete address {address_id}") from e
        logger.info("address_deleted", address_id=address_id)

    def list_addresses_with_counts(self) -> list[AddressRecord]:
        """Addresses newest first, each with its observed transaction count."""
        stmt = (
            select(TrackedAddress, func.count(ObservedTransaction.id))
            .outerjoin(ObservedTransaction, ObservedTransaction.address_id == TrackedAddress.id)
            .group_by(TrackedAddress.id)
            .order_by(TrackedAddress.created_at.desc(), TrackedAddress.id.desc())
        )
        try:
            with session_scope(self._factory) as session:
                return [_to_address_record(row, count) for row, count in session.execute(stmt).all()]
        except SQLAlchemyError as e:
            logger.exception("store_list_addresses_failed", error=str(e))
            raise PersistenceError("could not list addresses") from e

    def list_transactions(self, address_id: int | None = None) -> list[TransactionRecord]:
        """Observed transactions, newest first; all addresses when address_id is None."""
        stmt = select(ObservedTransaction)
        if address_id is not None:
            stmt = stmt.where(ObservedTransaction.address_id == address_id)
        stmt = stmt.order_by(ObservedTransaction.timestamp_ms.desc(), ObservedTransaction.id.desc())
        try:
            with session_scope(self._factory) as session:
                return [_to_transaction_record(r) for r in session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.exception("store_list_transactions_failed", address_id=address_id, error=str(e))
            raise PersistenceError("could not list transactions") from e
