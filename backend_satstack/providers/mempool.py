"""
Provider A: mempool.space Esplora API.

GET {base}/address/{address}/txs returns the most recent transactions touching
the address, each with itemized vin (with prevout) and vout. Responses are
parsed into MempoolTx, then normalized to RawTransaction. Only net-positive
(incoming) transfers survive. Failures yield an empty list.
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

PROVIDER_NAME = "mempool"


@dataclass(frozen=True)
class MempoolOutput:
    address: str | None
    value: int


@dataclass(frozen=True)
class MempoolTx:
    """One entry of the /address/{a}/txs response."""

    txid: str
    spent: list[MempoolOutput]
    """Prevouts of the inputs (coinbase inputs have none and are skipped)."""
    outputs: list[MempoolOutput]
    block_time: int | None
    """Unix seconds; None while unconfirmed."""

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> MempoolTx:
        spent = []
        for vin in raw.get("vin") or []:
            prevout = vin.get("prevout")
            if prevout:
                spent.append(
                    MempoolOutput(prevout.get("scriptpubkey_address"), int(prevout["value"]))
                )
        outputs = [
            MempoolOutput(vout.get("scriptpubkey_address"), int(vout["value"]))
            for vout in raw.get("vout") or []
        ]
        status = raw.get("status") or {}
        block_time = status.get("block_time")
        return cls(
            txid=str(raw["txid"]),
            spent=spent,
            outputs=outputs,
            block_time=int(block_time) if block_time else None,
        )


def normalize_mempool_tx(tx: MempoolTx, address: str) -> RawTransaction | None:
    """Return the incoming transfer for address, or None when net movement is not positive."""
    net = net_received_sats(
        address,
        ((o.address, o.value) for o in tx.outputs),
        ((s.address, s.value) for s in tx.spent),
    )
    if net <= 0:
        return None
    timestamp_ms = tx.block_time * 1000 if tx.block_time else now_ms()
    return RawTransaction(txid=tx.txid, amount_btc=sats_to_btc(net), timestamp_ms=timestamp_ms)


def parse_mempool_response(payload: Any, address: str) -> list[RawTransaction]:
    """Parse and normalize a full response; raises ProviderError when the shape is wrong."""
    if not isinstance(payload, list):
        raise ProviderError(PROVIDER_NAME, "expected a list of transactions")
    try:
        txs = [MempoolTx.from_json(item) for item in payload]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ProviderError(PROVIDER_NAME, f"malformed transaction: {e}") from e
    out: list[RawTransaction] = []
    for tx in txs:
        normalized = normalize_mempool_tx(tx, address)
        if normalized is not None:
            out.append(normalized)
    return out


class MempoolClient:
    """Fetch incoming transfers for an address from mempool.space."""

    name = PROVIDER_NAME

    def __init__(
        self,
        base_url: str = "https://mempool.space/api",
        *,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def fetch_transactions(self, address: str) -> list[RawTransaction]:
        """Incoming transfers for address; [] on any network, status or payload failure."""
        url = f"{self._base_url}/address/{quote(address, safe='')}/txs"
        try:
            payload = await fetch_json(
                PROVIDER_NAME, url, client=self._client, timeout=self._timeout
            )
            txs = parse_mempool_response(payload, address)
        except (httpx.HTTPError, httpx.InvalidURL, ProviderError) as e:
            logger.warning("provider_fetch_failed", provider=PROVIDER_NAME, error=str(e))
            return []
        logger.debug("provider_fetched", provider=PROVIDER_NAME, incoming=len(txs))
        return txs
