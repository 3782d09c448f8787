"""
Shared HTTP helper for provider clients.

Clients accept an optional shared httpx.AsyncClient (one per sync pass or per
app); without one a short-lived client is opened per request.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from backend_satstack.core.exceptions import ProviderError


@asynccontextmanager
async def client_scope(
    client: httpx.AsyncClient | None,
    timeout: float,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the shared client, or a temporary one closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as owned:
        yield owned


async def fetch_json(
    provider: str,
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = 15.0,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """
    GET url and decode JSON.

    Raises ProviderError on non-2xx or undecodable body; httpx.HTTPError on
    transport failures. Callers decide whether to swallow.
    """
    async with client_scope(client, timeout) as http:
        resp = await http.get(url, params=params, headers=headers, timeout=timeout)
    if not resp.is_success:
        raise ProviderError(provider, f"HTTP {resp.status_code}")
    try:
        return resp.json()
    except ValueError as e:
        raise ProviderError(provider, f"invalid JSON: {e}") from e
