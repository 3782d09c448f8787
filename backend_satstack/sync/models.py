"""
Sync outcomes returned to callers; never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SyncResult:
    """One reconcile pass for one address."""

    added: int
    """Size of the new set: merged txids not yet persisted when the pass looked them up."""
    total: int
    """Distinct incoming transactions observed from providers this pass."""

    def to_dict(self) -> dict[str, int]:
        return {"added": self.added, "total": self.total}


@dataclass(frozen=True)
class AddressSyncOutcome:
    """Per-address entry of a batch sync: either a result or a failure reason."""

    address_id: int
    address: str
    result: SyncResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"address_id": self.address_id, "address": self.address, "ok": self.ok}
        if self.result is not None:
            out.update(self.result.to_dict())
        if self.error is not None:
            out["error"] = self.error
        return out
