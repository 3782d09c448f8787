"""
Application-level exceptions.

Provider failures never leave a provider client (they become empty results);
persistence failures propagate and fail the sync pass for that address.
"""

from __future__ import annotations


class SatStackError(Exception):
    """Base class for all SatStack errors."""


class ProviderError(SatStackError):
    """Remote data provider returned an error status or an unusable payload."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class PriceSourceUnavailable(SatStackError):
    """Every source in a price fallback chain failed."""


class PersistenceError(SatStackError):
    """The store could not complete a read or write."""


class AddressNotFound(SatStackError):
    """No tracked address with the given id."""

    def __init__(self, address_id: int) -> None:
        super().__init__(f"address {address_id} not found")
        self.address_id = address_id


class DuplicateAddress(SatStackError):
    """Address string is already tracked."""

    def __init__(self, address: str) -> None:
        super().__init__(f"address already exists: {address}")
        self.address = address
