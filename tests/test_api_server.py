"""
Pytest tests for the FastAPI server (wallet CRUD, sync endpoints, price, ROI, history).

Uses a temporary SQLite DB via conftest fixtures. The orchestrator, spot price
resolver and chart client are replaced through app.dependency_overrides.
"""

from __future__ import annotations

import pytest

from backend_satstack.providers.models import Candle, ChartHistory, PriceSample, RawTransaction

ADDRESS = "bc1qapiaddress000000000000000000000000000"


class _FixedPrice:
    def __init__(self, price: float) -> None:
        self.price = price

    async def resolve_current_price(self) -> float:
        return self.price


class _Chart:
    def __init__(self, history: ChartHistory | None) -> None:
        self.history = history
        self.timeframes: list[str] = []

    async def fetch_bitcoin_history(self, timeframe: str) -> ChartHistory:
        from backend_satstack.core.exceptions import PriceSourceUnavailable

        self.timeframes.append(timeframe)
        if self.history is None:
            raise PriceSourceUnavailable("no chart source available")
        return self.history


@pytest.fixture
def wired(client, store, make_engine, fake_provider):
    """Override sync and price dependencies; returns the provider fake for tweaking."""
    from backend_satstack.api_server.server import (
        app,
        get_orchestrator,
        get_spot_price_resolver,
        get_store,
    )
    from backend_satstack.sync.orchestrator import SyncOrchestrator

    primary = fake_provider([RawTransaction("t1", 0.5, 1_000), RawTransaction("t2", 0.25, 2_000)], name="mempool")
    engine = make_engine(primary=primary, samples=[PriceSample(1_000, 40_000.0), PriceSample(2_000, 48_000.0)])
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_orchestrator] = lambda: SyncOrchestrator(engine, store)
    app.dependency_overrides[get_spot_price_resolver] = lambda: _FixedPrice(100_000.0)
    return primary


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_add_wallet_runs_initial_sync(client, wired):
    r = client.post("/wallets", json={"label": "Cold", "address": ADDRESS})
    assert r.status_code == 201
    data = r.json()
    assert data["wallet"]["address"] == ADDRESS
    assert data["sync"] == {"added": 2, "total": 2}

    wallets = client.get("/wallets").json()
    assert len(wallets) == 1
    assert wallets[0]["transaction_count"] == 2


def test_add_wallet_duplicate_and_blank(client, wired):
    assert client.post("/wallets", json={"label": "Cold", "address": ADDRESS}).status_code == 201
    dup = client.post("/wallets", json={"label": "Again", "address": ADDRESS})
    assert dup.status_code == 400
    assert dup.json()["detail"] == "Address already exists"
    blank = client.post("/wallets", json={"label": "  ", "address": "bc1qother"})
    assert blank.status_code == 400


def test_add_wallet_sync_failure_still_tracks(client, wired):
    """Initial sync failing (store error) returns the wallet with sync null."""
    from backend_satstack.api_server.server import app, get_orchestrator

    class _Broken:
        async def sync_one(self, address_id, address):
            raise RuntimeError("sync exploded")

    app.dependency_overrides[get_orchestrator] = lambda: _Broken()
    r = client.post("/wallets", json={"label": "Cold", "address": ADDRESS})
    assert r.status_code == 201
    assert r.json()["sync"] is None


def test_sync_endpoints(client, wired, store):
    wallet_id = client.post("/wallets", json={"label": "Cold", "address": ADDRESS}).json()["wallet"]["id"]

    again = client.post(f"/wallets/{wallet_id}/sync")
    assert again.status_code == 200
    assert again.json() == {"added": 0, "total": 2}

    wired.txs.append(RawTransaction("t3", 1.0, 3_000))
    everything = client.post("/wallets/sync")
    assert everything.status_code == 200
    results = everything.json()["results"]
    assert len(results) == 1
    assert results[0]["ok"] is True
    assert (results[0]["added"], results[0]["total"]) == (1, 3)
    assert results[0]["error"] is None

    assert client.post("/wallets/999/sync").status_code == 404


def test_delete_wallet(client, wired, store):
    wallet_id = client.post("/wallets", json={"label": "Cold", "address": ADDRESS}).json()["wallet"]["id"]
    r = client.delete(f"/wallets/{wallet_id}")
    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert store.list_transactions() == []
    missing = client.delete(f"/wallets/{wallet_id}")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Wallet not found"


def test_price_and_roi(client, wired):
    client.post("/wallets", json={"label": "Cold", "address": ADDRESS})

    assert client.get("/price").json() == {"price_usd": 100_000.0}

    roi = client.get("/roi").json()
    # 0.5 @ 40k + 0.25 @ 48k
    assert roi["overall"]["invested_usd"] == pytest.approx(32_000.0)
    assert roi["overall"]["current_value_usd"] == pytest.approx(75_000.0)
    assert roi["current_price_usd"] == 100_000.0


def test_history_ok_and_unavailable(client):
    from backend_satstack.api_server.server import app, get_chart_client

    chart = _Chart(ChartHistory("Binance", [Candle(1, 1.0, 2.0, 0.5, 1.5)]))
    app.dependency_overrides[get_chart_client] = lambda: chart
    r = client.get("/history", params={"timeframe": "1M"})
    assert r.status_code == 200
    assert r.json() == {"source": "Binance", "data": [{"time": 1, "open": 1.0, "high": 2.0, "low": 0.5, "close": 1.5}]}
    assert chart.timeframes == ["1M"]

    app.dependency_overrides[get_chart_client] = lambda: _Chart(None)
    assert client.get("/history").status_code == 503


def _on_event_loop() -> bool:
    import asyncio

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def test_async_routes_keep_store_calls_off_the_event_loop(client, satstack_db, make_engine, fake_provider):
    """add, sync-one and roi reach the blocking store from a worker thread."""
    from backend_satstack.api_server.server import (
        app,
        get_orchestrator,
        get_spot_price_resolver,
        get_store,
    )
    from backend_satstack.database.store import SQLAlchemyStore
    from backend_satstack.sync.orchestrator import SyncOrchestrator

    calls: list[tuple[str, bool]] = []

    class _ThreadCheckingStore(SQLAlchemyStore):
        def add_address(self, label, address):
            calls.append(("add_address", _on_event_loop()))
            return super().add_address(label, address)

        def get_address(self, address_id):
            calls.append(("get_address", _on_event_loop()))
            return super().get_address(address_id)

        def list_transactions(self, address_id=None):
            calls.append(("list_transactions", _on_event_loop()))
            return super().list_transactions(address_id)

    checking = _ThreadCheckingStore()
    engine = make_engine(primary=fake_provider([RawTransaction("t1", 0.5, 1_000)]), target_store=checking)
    app.dependency_overrides[get_store] = lambda: checking
    app.dependency_overrides[get_orchestrator] = lambda: SyncOrchestrator(engine, checking)
    app.dependency_overrides[get_spot_price_resolver] = lambda: _FixedPrice(100_000.0)

    wallet_id = client.post("/wallets", json={"label": "Cold", "address": ADDRESS}).json()["wallet"]["id"]
    assert client.post(f"/wallets/{wallet_id}/sync").status_code == 200
    assert client.get("/roi").status_code == 200

    assert [name for name, _ in calls] == ["add_address", "get_address", "list_transactions"]
    assert not any(on_loop for _, on_loop in calls)
