"""
Unit conversion and net-amount arithmetic shared by both explorer clients.
"""

from __future__ import annotations

import time
from typing import Iterable

SATS_PER_BTC = 100_000_000


def sats_to_btc(sats: int) -> float:
    """Convert integer satoshis to BTC (150_000_000 -> 1.5)."""
    return sats / SATS_PER_BTC


def now_ms() -> int:
    """Ingestion clock used when a provider reports no block time."""
    return int(time.time() * 1000)


def _owned_by(owner: str | None, address: str) -> bool:
    return owner is not None and owner.lower() == address.lower()


def net_received_sats(
    address: str,
    outputs: Iterable[tuple[str | None, int]],
    spent_inputs: Iterable[tuple[str | None, int]],
) -> int:
    """
    Received minus sent for address within one transaction, in satoshis.

    outputs: (owner, value) for every output of the tx.
    spent_inputs: (owner, value) of the previous output each input spends.
    Owners are compared case-insensitively; None never matches.
    """
    received = sum(value for owner, value in outputs if _owned_by(owner, address))
    sent = sum(value for owner, value in spent_inputs if _owned_by(owner, address))
    return received - sent
