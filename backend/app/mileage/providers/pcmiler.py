from __future__ import annotations

from typing import Any

import httpx

from ..contracts import DistanceResult, ResolutionOptions
from ..errors import ConfigurationError, NotFoundError, UpstreamError
from .base import HttpMileageProvider, round_half_up, tenth_hours, whole_miles

DEFAULT_API_BASE = "https://pcmiler.alk.com/apis/rest/v1.0"


class PCMilerProvider(HttpMileageProvider):
    """Truck-practical mileage from PC*Miler route reports, one call per lane."""

    name = "pcmiler"
    source = "pcmiler"
    route_type = "practical"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(client=client)
        self.api_key = (api_key or "").strip() or None
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None

    async def calculate(
        self,
        origin: str,
        destination: str,
        options: ResolutionOptions | None = None,
    ) -> DistanceResult:
        if not self.is_configured:
            raise ConfigurationError(self.name, "PCMILER_API_KEY not configured")
        options = options or ResolutionOptions()

        params = {
            "stops": ";".join([origin, *options.stops, destination]),
            "reports": "Mileage",
            "routeType": "Practical",
            "vehicleType": "Truck",
            "hazMatType": "General" if options.hazmat else "None",
            "dataVersion": "current",
        }
        response = await self._request(
            "GET",
            f"{self.base_url}/Service.svc/route/routeReports",
            params=params,
            headers={"Authorization": self.api_key, "Content-Type": "application/json"},
            timeout=self.timeout,
        )
        self._ensure_ok(response, "route reports API")
        data = self._json(response)
        if not isinstance(data, list):
            raise UpstreamError(self.name, "expected a list of reports")

        lines = _report_lines(data)
        if not lines:
            raise NotFoundError(self.name, "empty mileage report")
        return self._summarize(lines)

    def _summarize(self, lines: list[dict[str, Any]]) -> DistanceResult:
        """Reduce the per-leg report lines to one lane total."""
        try:
            miles = sum(float(line.get("TMiles") or 0) for line in lines)
            shortest = sum(float(line.get("SMiles") or 0) for line in lines)
            hours = sum(float(line.get("THours") or 0) for line in lines)
            tolls = sum(float(line.get("TollCost") or 0) for line in lines)
        except (AttributeError, TypeError, ValueError) as exc:
            raise UpstreamError(self.name, f"malformed report line: {exc!r}") from exc

        return self._result(
            practical_miles=whole_miles(miles),
            shortest_miles=whole_miles(shortest) if shortest > 0 else None,
            drive_time_hours=tenth_hours(hours),
            toll_cost=round_half_up(tolls, 2) if tolls > 0 else None,
        )


def _report_lines(data: list[Any]) -> list[dict[str, Any]]:
    if not data or not isinstance(data[0], dict):
        return []
    return data[0].get("ReportLines") or []


__all__ = ["PCMilerProvider"]
