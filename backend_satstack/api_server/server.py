"""
FastAPI server: thin HTTP layer over the store and the sync core.

Wallet registration / removal, on-demand sync (one or all), spot price, ROI
summary and chart history. No business logic lives here; handlers translate
SyncResult / domain errors into HTTP responses. Async handlers hand blocking
store calls to the threadpool; plain def handlers already run there.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_satstack import __version__
from backend_satstack.analytics.roi import build_roi_report
from backend_satstack.config.settings import Settings, get_settings
from backend_satstack.core.exceptions import (
    AddressNotFound,
    DuplicateAddress,
    PriceSourceUnavailable,
)
from backend_satstack.database.connection import init_db
from backend_satstack.database.store import SQLAlchemyStore
from backend_satstack.providers.chart_history import TIMEFRAMES, ChartHistoryClient
from backend_satstack.providers.price_history import PriceHistoryClient
from backend_satstack.providers.spot_price import SpotPriceResolver
from backend_satstack.satstack_logging import get_logger
from backend_satstack.sync.orchestrator import SyncOrchestrator, build_orchestrator

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------


def get_app_settings() -> Settings:
    return get_settings()


def get_store() -> SQLAlchemyStore:
    return SQLAlchemyStore()


def get_orchestrator(
    store: SQLAlchemyStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> SyncOrchestrator:
    return build_orchestrator(settings, store)


def get_spot_price_resolver(settings: Settings = Depends(get_app_settings)) -> SpotPriceResolver:
    return SpotPriceResolver(
        fallback_price_usd=settings.fallback_price_usd,
        cmc_api_key=settings.cmc_api_key,
        cmc_api_url=settings.cmc_api_url,
        coinbase_api_url=settings.coinbase_api_url,
        timeout=settings.http_timeout_sec,
    )


def get_chart_client(settings: Settings = Depends(get_app_settings)) -> ChartHistoryClient:
    return ChartHistoryClient(
        binance=PriceHistoryClient(
            settings.binance_api_url,
            symbol=settings.price_symbol,
            timeout=settings.http_timeout_sec,
        ),
        coincap_api_url=settings.coincap_api_url,
        coingecko_api_url=settings.coingecko_api_url,
        timeout=settings.http_timeout_sec,
    )


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------


class AddWalletRequest(BaseModel):
    """POST /wallets body."""

    label: str = Field(..., max_length=256, description="Display label")
    address: str = Field(..., max_length=128, description="Bitcoin address")


class WalletResponse(BaseModel):
    id: int
    label: str
    address: str
    created_at: int
    transaction_count: int = 0


class SyncResponse(BaseModel):
    added: int = Field(..., description="New transactions found this pass")
    total: int = Field(..., description="Distinct incoming transactions observed this pass")


class AddWalletResponse(BaseModel):
    wallet: WalletResponse
    sync: SyncResponse | None = Field(None, description="Initial sync; null if it failed")


class AddressOutcomeResponse(BaseModel):
    address_id: int
    address: str
    ok: bool
    added: int | None = None
    total: int | None = None
    error: str | None = None


class SyncAllResponse(BaseModel):
    results: list[AddressOutcomeResponse] = Field(default_factory=list)


class PriceResponse(BaseModel):
    price_usd: float


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; the API still starts if the database is unreachable."""
    try:
        init_db()
    except Exception as e:
        logger.warning("db_init_skip", error=str(e))
    yield


app = FastAPI(
    title="Backend SatStack API",
    description="Tracked Bitcoin addresses, transaction sync, spot price and ROI.",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health")
def health() -> dict[str, str]:
    """Liveness probe: API is up."""
    return {"status": "ok"}


@app.get("/wallets", response_model=list[WalletResponse])
def list_wallets(store: SQLAlchemyStore = Depends(get_store)) -> list[dict[str, Any]]:
    return [r.to_dict() for r in store.list_addresses_with_counts()]


@app.post("/wallets", response_model=AddWalletResponse, status_code=201)
async def add_wallet(
    body: AddWalletRequest,
    store: SQLAlchemyStore = Depends(get_store),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Track an address and run its first sync before responding."""
    try:
        record = await run_in_threadpool(store.add_address, body.label, body.address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateAddress:
        raise HTTPException(status_code=400, detail="Address already exists")

    sync: dict[str, int] | None = None
    try:
        sync = (await orchestrator.sync_one(record.id, record.address)).to_dict()
    except Exception as e:
        logger.warning("initial_sync_failed", address_id=record.id, error=str(e))
    return JSONResponse(
        status_code=201,
        content=AddWalletResponse(wallet=WalletResponse(**record.to_dict()), sync=sync).model_dump(),
    )


@app.delete("/wallets/{address_id}")
def delete_wallet(address_id: int, store: SQLAlchemyStore = Depends(get_store)) -> dict[str, bool]:
    try:
        store.delete_address(address_id)
    except AddressNotFound:
        raise HTTPException(status_code=404, detail="Wallet not found")
    return {"success": True}


@app.post("/wallets/sync", response_model=SyncAllResponse)
async def sync_all_wallets(orchestrator: SyncOrchestrator = Depends(get_orchestrator)) -> dict[str, Any]:
    outcomes = await orchestrator.sync_all()
    return {"results": [o.to_dict() for o in outcomes]}


@app.post("/wallets/{address_id}/sync", response_model=SyncResponse)
async def sync_wallet(
    address_id: int,
    store: SQLAlchemyStore = Depends(get_store),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> dict[str, int]:
    try:
        record = await run_in_threadpool(store.get_address, address_id)
    except AddressNotFound:
        raise HTTPException(status_code=404, detail="Wallet not found")
    result = await orchestrator.sync_one(record.id, record.address)
    return result.to_dict()


@app.get("/price", response_model=PriceResponse)
async def current_price(resolver: SpotPriceResolver = Depends(get_spot_price_resolver)) -> dict[str, float]:
    return {"price_usd": await resolver.resolve_current_price()}


@app.get("/roi")
async def roi_summary(
    store: SQLAlchemyStore = Depends(get_store),
    resolver: SpotPriceResolver = Depends(get_spot_price_resolver),
) -> dict[str, Any]:
    price = await resolver.resolve_current_price()
    transactions = await run_in_threadpool(store.list_transactions)
    return build_roi_report(transactions, price).to_dict()


@app.get("/history")
async def price_history(
    timeframe: str = Query("1Y", description=f"One of {', '.join(TIMEFRAMES)}"),
    chart: ChartHistoryClient = Depends(get_chart_client),
) -> dict[str, Any]:
    try:
        history = await chart.fetch_bitcoin_history(timeframe)
    except PriceSourceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return history.to_dict()
