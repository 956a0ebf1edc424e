"""
Shared async HTTP client for off-chain services (IPFS pinning, gateways).

One pooled httpx.AsyncClient is reused for the life of the process. Tests
and callers that need their own transport can build a client with
``build_async_client`` and pass it in explicitly.
"""

from __future__ import annotations

import os
from typing import Dict, Optional

import httpx

DEFAULT_TIMEOUT = float(os.getenv("CF_HTTP_TIMEOUT", "30"))
DEFAULT_CONNECT_TIMEOUT = float(os.getenv("CF_HTTP_CONNECT_TIMEOUT", "5"))
USER_AGENT = os.getenv("CF_HTTP_UA", "crowdfund-toolkit/1.x")

_async_client: Optional[httpx.AsyncClient] = None


def build_async_client(
    timeout: Optional[float] = None,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create a new AsyncClient with the toolkit's defaults."""
    merged_headers = {"User-Agent": USER_AGENT}
    if headers:
        merged_headers.update(headers)

    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            timeout or DEFAULT_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT
        ),
        limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        headers=merged_headers,
        transport=transport,
    )


def get_async_client() -> httpx.AsyncClient:
    """Get the shared asynchronous httpx client."""
    global _async_client
    if _async_client is None or _async_client.is_closed:
        _async_client = build_async_client()
    return _async_client


async def aclose_async_client() -> None:
    global _async_client
    if _async_client is not None:
        await _async_client.aclose()
        _async_client = None
