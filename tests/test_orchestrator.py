"""
Pytest tests for SyncOrchestrator: per-address isolation and default wiring.
"""

from __future__ import annotations

import httpx
import pytest

from backend_satstack.providers.models import PriceSample, RawTransaction
from backend_satstack.sync.models import SyncResult


class _FlakyEngine:
    """Reconcile stub that fails for one address id."""

    def __init__(self, fail_for: int) -> None:
        self.fail_for = fail_for
        self.seen: list[int] = []

    async def reconcile(self, address_id: int, address: str) -> SyncResult:
        self.seen.append(address_id)
        if address_id == self.fail_for:
            raise RuntimeError("database is locked")
        return SyncResult(added=address_id, total=address_id * 10)


@pytest.mark.asyncio
async def test_sync_all_isolates_failures(store):
    from backend_satstack.sync.orchestrator import SyncOrchestrator

    a = store.add_address("A", "bc1qaaaa")
    b = store.add_address("B", "bc1qbbbb")
    c = store.add_address("C", "bc1qcccc")
    engine = _FlakyEngine(fail_for=b.id)

    outcomes = await SyncOrchestrator(engine, store).sync_all()

    assert [o.address_id for o in outcomes] == [a.id, b.id, c.id]
    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[0].result == SyncResult(a.id, a.id * 10)
    assert outcomes[1].error == "database is locked"
    assert outcomes[1].to_dict() == {
        "address_id": b.id,
        "address": "bc1qbbbb",
        "ok": False,
        "error": "database is locked",
    }
    assert sorted(engine.seen) == sorted([a.id, b.id, c.id])


@pytest.mark.asyncio
async def test_sync_all_with_no_addresses(store):
    from backend_satstack.sync.orchestrator import SyncOrchestrator

    assert await SyncOrchestrator(_FlakyEngine(fail_for=-1), store).sync_all() == []


@pytest.mark.asyncio
async def test_sync_all_real_engine_two_addresses(store, make_engine, fake_provider):
    """Concurrent passes over one store; each address gets only its own rows."""
    from backend_satstack.sync.orchestrator import SyncOrchestrator

    a = store.add_address("A", "bc1qaaaa")
    b = store.add_address("B", "bc1qbbbb")
    shared = [RawTransaction("shared", 0.1, 1_000)]
    engine = make_engine(primary=fake_provider(shared), samples=[PriceSample(1_000, 20_000.0)])

    outcomes = await SyncOrchestrator(engine, store).sync_all()

    assert [(o.result.added, o.result.total) for o in outcomes] == [(1, 1), (1, 1)]
    assert len(store.list_transactions(a.id)) == 1
    assert len(store.list_transactions(b.id)) == 1


@pytest.mark.asyncio
async def test_build_orchestrator_wires_default_providers(store, http_routes, make_mempool_tx, make_blockchain_info_tx):
    from backend_satstack.config.settings import Settings
    from backend_satstack.sync.orchestrator import build_orchestrator

    addr = "bc1qwired"
    record = store.add_address("Wired", addr)
    settings = Settings(
        mempool_api_url="https://mempool.test/api",
        blockchain_info_api_url="https://bci.test",
        binance_api_url="https://binance.test/api/v3",
    )
    routes = {
        f"mempool.test/api/address/{addr}/txs": httpx.Response(
            200, json=[make_mempool_tx("m1", outputs=[(addr, 100_000_000)], block_time=1)]
        ),
        f"bci.test/rawaddr/{addr}": httpx.Response(
            200,
            json={
                "txs": [
                    make_blockchain_info_tx("m1", outputs=[(addr, 1)], time=1),
                    make_blockchain_info_tx("b1", outputs=[(addr, 50_000_000)], time=2),
                ]
            },
        ),
        "binance.test/api/v3/klines": httpx.Response(200, json=[[1_500, "1", "1", "1", "30000", "0"]]),
    }
    async with http_routes(routes) as http:
        orchestrator = build_orchestrator(settings, store, client=http)
        result = await orchestrator.sync_one(record.id, addr)

    assert (result.added, result.total) == (2, 2)
    rows = {r.txid: r for r in store.list_transactions(record.id)}
    assert rows["m1"].amount_btc == 1.0
    assert rows["b1"].amount_btc == 0.5
    assert rows["m1"].price_usd == 30_000.0
    assert rows["b1"].price_usd == 30_000.0
