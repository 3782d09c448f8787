"""
Sync tracked wallets from the command line (cron / manual runs).

Runs one sync pass for a single address (--address-id) or for every tracked
address, prints one summary line per address, exits 1 if any address failed.

Usage:
  python -m backend_satstack.tools.sync_wallets
  python -m backend_satstack.tools.sync_wallets --address-id 3
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from backend_satstack.config.settings import get_settings
from backend_satstack.core.exceptions import AddressNotFound
from backend_satstack.database.connection import init_db
from backend_satstack.database.store import SQLAlchemyStore
from backend_satstack.satstack_logging import get_logger
from backend_satstack.sync.models import AddressSyncOutcome
from backend_satstack.sync.orchestrator import build_orchestrator

logger = get_logger(__name__)


def format_outcome(outcome: AddressSyncOutcome) -> str:
    if outcome.result is not None:
        return (
            f"[sync] {outcome.address_id} {outcome.address}: "
            f"added={outcome.result.added} total={outcome.result.total}"
        )
    return f"[sync] {outcome.address_id} {outcome.address}: FAILED {outcome.error}"


async def run(address_id: int | None) -> list[AddressSyncOutcome]:
    settings = get_settings()
    init_db()
    store = SQLAlchemyStore()
    orchestrator = build_orchestrator(settings, store)
    if address_id is None:
        return await orchestrator.sync_all()
    record = store.get_address(address_id)
    result = await orchestrator.sync_one(record.id, record.address)
    return [AddressSyncOutcome(address_id=record.id, address=record.address, result=result)]


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Sync tracked Bitcoin addresses from block explorers.")
    ap.add_argument("--address-id", dest="address_id", type=int, default=None, help="Sync only this address id")
    args = ap.parse_args(argv)

    try:
        outcomes = asyncio.run(run(args.address_id))
    except AddressNotFound as e:
        print(f"[sync] {e}")
        return 1

    if not outcomes:
        print("[sync] No tracked addresses.")
        return 0
    for outcome in outcomes:
        print(format_outcome(outcome))
    return 0 if all(o.ok for o in outcomes) else 1


if __name__ == "__main__":
    sys.exit(main())
