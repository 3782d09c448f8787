"""
Reconciliation Engine: merge → dedupe → diff → price → persist delta.

One pass for one address:
  1. fetch both explorers and the price series concurrently (join on all three)
  2. union by txid, primary provider first (primary wins on conflicts)
  3. load txids already persisted for the address
  4. new set = merged minus persisted
  5. price each new tx (sync.pricing rule)
  6. single batch insert, duplicates ignored by the store
  7. SyncResult(added=len(new set), total=len(merged))

Provider failures arrive as empty lists and are not errors; store failures
propagate and fail the pass.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, Protocol, TypeVar

from backend_satstack.database.models import NewTransaction
from backend_satstack.database.store import TransactionStore
from backend_satstack.providers.models import PriceSample, RawTransaction
from backend_satstack.satstack_logging import bind_address
from backend_satstack.sync.models import SyncResult
from backend_satstack.sync.pricing import PriceLookup

T = TypeVar("T")


class TransactionProvider(Protocol):
    name: str

    async def fetch_transactions(self, address: str) -> list[RawTransaction]: ...


class PriceHistorySource(Protocol):
    async def fetch_daily_closes(self, interval: str = "1d", limit: int = 1000) -> list[PriceSample]: ...


def merge_transactions(
    primary: Iterable[RawTransaction],
    secondary: Iterable[RawTransaction],
) -> dict[str, RawTransaction]:
    """Union keyed by txid; secondary entries only fill txids primary did not report."""
    merged: dict[str, RawTransaction] = {}
    for tx in primary:
        merged[tx.txid] = tx
    for tx in secondary:
        if tx.txid not in merged:
            merged[tx.txid] = tx
    return merged


class ReconciliationEngine:
    """Turns provider output for one address into persisted, priced transactions."""

    def __init__(
        self,
        primary: TransactionProvider,
        secondary: TransactionProvider,
        price_history: PriceHistorySource,
        store: TransactionStore,
        *,
        fallback_price_usd: float,
        price_interval: str = "1d",
        price_limit: int = 1000,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._price_history = price_history
        self._store = store
        self._fallback_price = fallback_price_usd
        self._price_interval = price_interval
        self._price_limit = price_limit

    async def _run_blocking(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def _fetch_transactions(self, provider: TransactionProvider, address: str, log: Any) -> list[RawTransaction]:
        try:
            return await provider.fetch_transactions(address)
        except Exception as e:
            log.exception("provider_unexpected_error", provider=getattr(provider, "name", "?"), error=str(e))
            return []

    async def _fetch_prices(self, log: Any) -> list[PriceSample]:
        try:
            return await self._price_history.fetch_daily_closes(self._price_interval, self._price_limit)
        except Exception as e:
            log.exception("price_history_unexpected_error", error=str(e))
            return []

    async def reconcile(self, address_id: int, address: str) -> SyncResult:
        log = bind_address(address, address_id=address_id)
        log.info("sync_started")

        primary_txs, secondary_txs, samples = await asyncio.gather(
            self._fetch_transactions(self._primary, address, log),
            self._fetch_transactions(self._secondary, address, log),
            self._fetch_prices(log),
        )
        merged = merge_transactions(primary_txs, secondary_txs)

        persisted = await self._run_blocking(self._store.list_transaction_identifiers, address_id)
        new_txs = [tx for txid, tx in merged.items() if txid not in persisted]

        added = 0
        if new_txs:
            prices = PriceLookup(samples, self._fallback_price)
            if not len(prices):
                log.warning("sync_price_history_empty", fallback_price=self._fallback_price)
            records = [
                NewTransaction(
                    txid=tx.txid,
                    address_id=address_id,
                    amount_btc=tx.amount_btc,
                    timestamp_ms=tx.timestamp_ms,
                    price_usd=prices.price_at(tx.timestamp_ms),
                )
                for tx in new_txs
            ]
            inserted = await self._run_blocking(self._store.insert_transactions_ignoring_duplicates, records)
            if inserted < len(records):
                log.info("sync_concurrent_duplicates", new=len(records), inserted=inserted)
            added = len(records)

        result = SyncResult(added=added, total=len(merged))
        log.info(
            "sync_completed",
            added=result.added,
            total=result.total,
            primary=len(primary_txs),
            secondary=len(secondary_txs),
            price_samples=len(samples),
        )
        return result
