"""
Database layer — tracked addresses and observed transactions (SQLAlchemy).
"""

from backend_satstack.database.connection import (
    get_engine,
    get_session_factory,
    init_db,
    reset_engine_for_test,
)
from backend_satstack.database.models import (
    AddressRecord,
    NewTransaction,
    ObservedTransaction,
    TrackedAddress,
    TransactionRecord,
)
from backend_satstack.database.store import SQLAlchemyStore, TransactionStore

__all__ = [
    "AddressRecord",
    "NewTransaction",
    "ObservedTransaction",
    "SQLAlchemyStore",
    "TrackedAddress",
    "TransactionRecord",
    "TransactionStore",
    "get_engine",
    "get_session_factory",
    "init_db",
    "reset_engine_for_test",
]
