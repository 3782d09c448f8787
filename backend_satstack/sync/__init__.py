"""
Sync core: reconciliation of explorer data into priced, persisted transactions.
"""

from backend_satstack.sync.models import AddressSyncOutcome, SyncResult
from backend_satstack.sync.orchestrator import SyncOrchestrator, build_orchestrator
from backend_satstack.sync.pricing import PriceLookup, price_at
from backend_satstack.sync.reconcile import ReconciliationEngine, merge_transactions

__all__ = [
    "AddressSyncOutcome",
    "PriceLookup",
    "ReconciliationEngine",
    "SyncOrchestrator",
    "SyncResult",
    "build_orchestrator",
    "merge_transactions",
    "price_at",
]
