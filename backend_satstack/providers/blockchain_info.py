"""
Provider B: blockchain.info raw address API.

GET {base}/rawaddr/{address}?limit=N returns {"txs": [...]} where each tx has
"hash", "time", "inputs" (with prev_out) and "out". Same contract as the
mempool client: incoming transfers only, [] on failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from backend_satstack.core.exceptions import ProviderError
from backend_satstack.providers.http import fetch_json
from backend_satstack.providers.models import RawTransaction
from backend_satstack.providers.normalize import net_received_sats, now_ms, sats_to_btc
from backend_satstack.satstack_logging import get_logger

logger = get_logger(__name__)

PROVIDER_NAME = "blockchain_info"
DEFAULT_TX_LIMIT = 100


@dataclass(frozen=True)
class BlockchainInfoOutput:
    addr: str | None
    value: int


@dataclass(frozen=True)
class BlockchainInfoTx:
    """One entry of rawaddr "txs"."""

    hash: str
    inputs: list[BlockchainInfoOutput]
    """prev_out of each input."""
    out: list[BlockchainInfoOutput]
    time: int | None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> BlockchainInfoTx:
        inputs = []
        for inp in raw.get("inputs") or []:
            prev = inp.get("prev_out")
            if prev:
                inputs.append(BlockchainInfoOutput(prev.get("addr"), int(prev["value"])))
        out = [
            BlockchainInfoOutput(o.get("addr"), int(o["value"]))
            for o in raw.get("out") or []
        ]
        ts = raw.get("time")
        return cls(
            hash=str(raw["hash"]),
            inputs=inputs,
            out=out,
            time=int(ts) if ts else None,
        )


def normalize_blockchain_info_tx(tx: BlockchainInfoTx, address: str) -> RawTransaction | None:
    net = net_received_sats(
        address,
        ((o.addr, o.value) for o in tx.out),
        ((i.addr, i.value) for i in tx.inputs),
    )
    if net <= 0:
        return None
    timestamp_ms = tx.time * 1000 if tx.time else now_ms()
    return RawTransaction(txid=tx.hash, amount_btc=sats_to_btc(net), timestamp_ms=timestamp_ms)


def parse_blockchain_info_response(payload: Any, address: str) -> list[RawTransaction]:
    if not isinstance(payload, dict):
        raise ProviderError(PROVIDER_NAME, "expected an object")
    raw_txs = payload.get("txs") or []
    if not isinstance(raw_txs, list):
        raise ProviderError(PROVIDER_NAME, "txs is not a list")
    try:
        txs = [BlockchainInfoTx.from_json(item) for item in raw_txs]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ProviderError(PROVIDER_NAME, f"malformed transaction: {e}") from e
    out: list[RawTransaction] = []
    for tx in txs:
        normalized = normalize_blockchain_info_tx(tx, address)
        if normalized is not None:
            out.append(normalized)
    return out


class BlockchainInfoClient:
    """Fetch incoming transfers for an address from blockchain.info."""

    name = PROVIDER_NAME

    def __init__(
        self,
        base_url: str = "https://blockchain.info",
        *,
        limit: int = DEFAULT_TX_LIMIT,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._limit = limit
        self._timeout = timeout
        self._client = client

    async def fetch_transactions(self, address: str) -> list[RawTransaction]:
        url = f"{self._base_url}/rawaddr/{quote(address, safe='')}"
        try:
            payload = await fetch_json(
                PROVIDER_NAME,
                url,
                client=self._client,
                timeout=self._timeout,
                params={"limit": self._limit},
            )
            txs = parse_blockchain_info_response(payload, address)
        except (httpx.HTTPError, httpx.InvalidURL, ProviderError) as e:
            logger.warning("provider_fetch_failed", provider=PROVIDER_NAME, error=str(e))
            return []
        logger.debug("provider_fetched", provider=PROVIDER_NAME, incoming=len(txs))
        return txs
