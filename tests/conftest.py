"""
Pytest fixtures for SatStack tests. Uses a temporary SQLite DB per test and
in-process fakes for providers; HTTP clients are driven by httpx.MockTransport.
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

ADDRESS = "bc1qexampleaddress0000000000000000000000"
OTHER = "bc1qsomeoneelse00000000000000000000000000"


class FakeProvider:
    """Transaction provider returning a fixed list, or raising."""

    def __init__(self, txs: list | None = None, *, name: str = "fake", error: Exception | None = None) -> None:
        self.name = name
        self.txs = list(txs or [])
        self.error = error
        self.calls: list[str] = []

    async def fetch_transactions(self, address: str) -> list:
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return list(self.txs)


class FakePriceHistory:
    def __init__(self, samples: list | None = None) -> None:
        self.samples = list(samples or [])
        self.calls: list[tuple[str, int]] = []

    async def fetch_daily_closes(self, interval: str = "1d", limit: int = 1000) -> list:
        self.calls.append((interval, limit))
        return list(self.samples)


def mempool_tx(
    txid: str,
    *,
    outputs: list[tuple[str | None, int]] = (),
    inputs: list[tuple[str | None, int]] = (),
    block_time: int | None = None,
) -> dict[str, Any]:
    """Esplora-shaped transaction: inputs are the prevouts being spent."""
    status: dict[str, Any] = {"confirmed": block_time is not None}
    if block_time is not None:
        status["block_time"] = block_time
    return {
        "txid": txid,
        "vin": [{"prevout": {"scriptpubkey_address": a, "value": v}} for a, v in inputs],
        "vout": [{"scriptpubkey_address": a, "value": v} for a, v in outputs],
        "status": status,
    }


def blockchain_info_tx(
    tx_hash: str,
    *,
    outputs: list[tuple[str | None, int]] = (),
    inputs: list[tuple[str | None, int]] = (),
    time: int | None = None,
) -> dict[str, Any]:
    """blockchain.info rawaddr-shaped transaction."""
    raw: dict[str, Any] = {
        "hash": tx_hash,
        "inputs": [{"prev_out": {"addr": a, "value": v}} for a, v in inputs],
        "out": [{"addr": a, "value": v} for a, v in outputs],
    }
    if time is not None:
        raw["time"] = time
    return raw


def routed_client(routes: dict[str, Any]) -> httpx.AsyncClient:
    """
    AsyncClient whose requests are answered by path prefix.

    routes maps "host/path-prefix" to an httpx.Response, a callable
    request -> Response, or an Exception instance to raise. Unmatched requests
    get 404. Every request is recorded on client.requests.
    """
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        key = f"{request.url.host}{request.url.path}"
        for prefix, answer in routes.items():
            if key.startswith(prefix):
                if isinstance(answer, Exception):
                    raise answer
                if callable(answer):
                    return answer(request)
                return answer
        return httpx.Response(404, json={"error": "not found"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client.requests = seen  # type: ignore[attr-defined]
    return client


@pytest.fixture
def satstack_db(tmp_path, monkeypatch):
    """
    Point the store at a temporary SQLite DB and init tables.
    Resets engine cache so each test gets a fresh DB. Unset URLs so we use SQLite.
    """
    monkeypatch.delenv("SATSTACK_DB_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("SATSTACK_DB_PATH", str(tmp_path / "satstack.db"))

    import backend_satstack.database.connection as db

    db.reset_engine_for_test()
    db.init_db()
    yield db
    db.reset_engine_for_test()


@pytest.fixture
def store(satstack_db):
    from backend_satstack.database.store import SQLAlchemyStore

    return SQLAlchemyStore()


@pytest.fixture
def tracked(store):
    """One tracked address; returns its AddressRecord."""
    return store.add_address("Cold storage", ADDRESS)


@pytest.fixture
def fake_provider() -> Callable[..., FakeProvider]:
    return FakeProvider


@pytest.fixture
def fake_price_history() -> Callable[..., FakePriceHistory]:
    return FakePriceHistory


@pytest.fixture
def http_routes() -> Callable[[dict[str, Any]], httpx.AsyncClient]:
    return routed_client


@pytest.fixture
def make_mempool_tx() -> Callable[..., dict[str, Any]]:
    return mempool_tx


@pytest.fixture
def make_blockchain_info_tx() -> Callable[..., dict[str, Any]]:
    return blockchain_info_tx


@pytest.fixture
def make_engine(store):
    """Build a ReconciliationEngine over the temp store with the given fakes."""
    from backend_satstack.sync.reconcile import ReconciliationEngine

    def _make(primary=None, secondary=None, samples=None, *, target_store=None, fallback=95_000.0):
        return ReconciliationEngine(
            primary or FakeProvider(name="mempool"),
            secondary or FakeProvider(name="blockchain_info"),
            FakePriceHistory(samples),
            target_store or store,
            fallback_price_usd=fallback,
        )

    return _make


@pytest.fixture
def client(satstack_db):
    """FastAPI TestClient. Depends on satstack_db so the temp DB is set before the app runs."""
    from fastapi.testclient import TestClient

    from backend_satstack.api_server.server import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
