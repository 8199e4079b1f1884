"""Process-wide async HTTP client shared by the mileage providers."""

from __future__ import annotations

import asyncio

import httpx

from .config import APP_VERSION, SERVICE_NAME
from .settings import settings

_client: httpx.AsyncClient | None = None
_client_lock = asyncio.Lock()


async def get_http_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        async with _client_lock:
            if _client is None:
                timeout = httpx.Timeout(
                    settings.MILEAGE_ROUTE_TIMEOUT_SECONDS,
                    connect=settings.HTTP_CONNECT_TIMEOUT_SECONDS,
                )
                _client = httpx.AsyncClient(
                    timeout=timeout,
                    headers={"User-Agent": f"{SERVICE_NAME}/{APP_VERSION}"},
                    limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
                )
    return _client


async def close_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


__all__ = ["close_http_client", "get_http_client"]
