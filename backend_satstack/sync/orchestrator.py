"""
Sync Orchestrator: entry point for one address or every tracked address.

sync_all runs one reconcile per address concurrently; each task converts its
own failure into a failed AddressSyncOutcome so siblings always finish.
"""

from __future__ import annotations

import asyncio

import httpx

from backend_satstack.config.settings import Settings
from backend_satstack.database.models import AddressRecord
from backend_satstack.database.store import TransactionStore
from backend_satstack.providers.blockchain_info import BlockchainInfoClient
from backend_satstack.providers.mempool import MempoolClient
from backend_satstack.providers.price_history import PriceHistoryClient
from backend_satstack.satstack_logging import get_logger
from backend_satstack.sync.models import AddressSyncOutcome, SyncResult
from backend_satstack.sync.reconcile import ReconciliationEngine

logger = get_logger(__name__)


class SyncOrchestrator:
    def __init__(self, engine: ReconciliationEngine, store: TransactionStore) -> None:
        self._engine = engine
        self._store = store

    async def sync_one(self, address_id: int, address: str) -> SyncResult:
        return await self._engine.reconcile(address_id, address)

    async def _sync_guarded(self, record: AddressRecord) -> AddressSyncOutcome:
        try:
            result = await self.sync_one(record.id, record.address)
        except Exception as e:
            logger.exception("sync_address_failed", address_id=record.id, error=str(e))
            return AddressSyncOutcome(
                address_id=record.id,
                address=record.address,
                error=str(e) or type(e).__name__,
            )
        return AddressSyncOutcome(address_id=record.id, address=record.address, result=result)

    async def sync_all(self) -> list[AddressSyncOutcome]:
        """Sync every tracked address; outcomes in address order. Store failure listing addresses propagates."""
        loop = asyncio.get_running_loop()
        addresses = await loop.run_in_executor(None, self._store.list_addresses)
        logger.info("sync_all_started", addresses=len(addresses))
        outcomes = list(await asyncio.gather(*(self._sync_guarded(a) for a in addresses)))
        failed = sum(1 for o in outcomes if not o.ok)
        logger.info(
            "sync_all_completed",
            addresses=len(outcomes),
            failed=failed,
            added=sum(o.result.added for o in outcomes if o.result is not None),
        )
        return outcomes


def build_orchestrator(
    settings: Settings,
    store: TransactionStore,
    client: httpx.AsyncClient | None = None,
) -> SyncOrchestrator:
    """Wire the default providers (mempool.space primary, blockchain.info secondary, Binance prices)."""
    timeout = settings.http_timeout_sec
    engine = ReconciliationEngine(
        MempoolClient(settings.mempool_api_url, timeout=timeout, client=client),
        BlockchainInfoClient(
            settings.blockchain_info_api_url,
            limit=settings.blockchain_info_tx_limit,
            timeout=timeout,
            client=client,
        ),
        PriceHistoryClient(
            settings.binance_api_url,
            symbol=settings.price_symbol,
            timeout=timeout,
            client=client,
        ),
        store,
        fallback_price_usd=settings.fallback_price_usd,
        price_interval=settings.price_history_interval,
        price_limit=settings.price_history_limit,
    )
    return SyncOrchestrator(engine, store)
