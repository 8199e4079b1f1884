from __future__ import annotations

import asyncio
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, ClassVar, Protocol

import httpx

from ...http_client import get_http_client
from ..contracts import DistanceResult, ResolutionOptions, RouteType
from ..errors import ProviderTimeoutError, UpstreamError

METERS_PER_MILE = 1609.34


class MileageProvider(Protocol):
    name: str
    source: str
    route_type: RouteType

    @property
    def is_configured(self) -> bool: ...

    async def calculate(
        self,
        origin: str,
        destination: str,
        options: ResolutionOptions | None = None,
    ) -> DistanceResult: ...


def round_half_up(value: float, ndigits: int = 0) -> float:
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def whole_miles(value: float) -> int:
    return int(round_half_up(value))


def tenth_hours(value: float) -> float:
    return round_half_up(value, 1)


class HttpMileageProvider:
    """Shared plumbing for providers backed by a JSON-over-HTTP API."""

    name: ClassVar[str]
    source: ClassVar[str]
    route_type: ClassVar[RouteType]

    def __init__(self, *, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def _http(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else await get_http_client()

    async def _request(
        self, method: str, url: str, *, timeout: float, **kwargs: Any
    ) -> httpx.Response:
        """Send one request under a hard wall-clock budget of `timeout` seconds."""
        client = await self._http()
        try:
            return await asyncio.wait_for(
                client.request(method, url, timeout=timeout, **kwargs), timeout=timeout
            )
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise ProviderTimeoutError(self.name, f"timed out after {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(self.name, f"request failed: {exc}") from exc

    def _ensure_ok(self, response: httpx.Response, what: str) -> None:
        if response.status_code >= 400:
            raise UpstreamError(
                self.name,
                f"{what} returned {response.status_code}",
                status_code=response.status_code,
            )

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                self.name, "invalid JSON in response", status_code=response.status_code
            ) from exc

    def _result(
        self,
        *,
        practical_miles: int,
        drive_time_hours: float,
        shortest_miles: int | None = None,
        toll_cost: float | None = None,
    ) -> DistanceResult:
        return DistanceResult(
            practical_miles=practical_miles,
            shortest_miles=shortest_miles,
            drive_time_hours=drive_time_hours,
            toll_cost=toll_cost,
            source=self.source,
            route_type=self.route_type,
            cached=False,
        )


__all__ = [
    "HttpMileageProvider",
    "METERS_PER_MILE",
    "MileageProvider",
    "round_half_up",
    "tenth_hours",
    "whole_miles",
]
