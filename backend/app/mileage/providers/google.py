from __future__ import annotations

from typing import Any

import httpx

from ...logging_config import get_logger
from ..contracts import DistanceResult, ResolutionOptions
from ..errors import ConfigurationError, NotFoundError, UpstreamError
from .base import METERS_PER_MILE, HttpMileageProvider, tenth_hours, whole_miles

logger = get_logger(__name__)

DEFAULT_DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

_NO_ROUTE_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


class GoogleDirectionsProvider(HttpMileageProvider):
    """
    Estimated mileage from the Google Directions API.

    Car routing, not truck routing: hazmat and equipment class are ignored and shortest
    mileage and tolls are never reported. Intermediate stops become waypoints and the legs
    are summed.
    """

    name = "google"
    source = "google_estimated"
    route_type = "estimated"

    def __init__(
        self,
        api_key: str | None,
        *,
        url: str = DEFAULT_DIRECTIONS_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(client=client)
        self.api_key = (api_key or "").strip() or None
        self.url = url
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
            raise ConfigurationError(self.name, "GOOGLE_MAPS_API_KEY not configured")
        options = options or ResolutionOptions()
        if options.hazmat or options.equipment:
            logger.debug(
                "mileage_options_ignored",
                provider=self.name,
                hazmat=options.hazmat,
                equipment=options.equipment,
            )

        params = {
            "origin": origin,
            "destination": destination,
            "mode": "driving",
            "units": "imperial",
            "key": self.api_key,
        }
        if options.stops:
            params["waypoints"] = "|".join(options.stops)

        response = await self._request("GET", self.url, params=params, timeout=self.timeout)
        self._ensure_ok(response, "Directions API")
        data = self._json(response)
        if not isinstance(data, dict):
            raise UpstreamError(self.name, "unexpected response shape")

        status = data.get("status")
        if status in _NO_ROUTE_STATUSES:
            raise NotFoundError(self.name, f"no route ({status})")
        if status != "OK":
            detail = data.get("error_message") or "no detail"
            raise UpstreamError(self.name, f"status {status}: {detail}")

        meters, seconds = _sum_legs(self.name, data)
        return self._result(
            practical_miles=whole_miles(meters / METERS_PER_MILE),
            drive_time_hours=tenth_hours(seconds / 3600),
        )


def _sum_legs(provider: str, data: dict[str, Any]) -> tuple[float, float]:
    try:
        legs = data["routes"][0]["legs"]
        if not legs:
            raise UpstreamError(provider, "route has no legs")
        meters = sum(float(leg["distance"]["value"]) for leg in legs)
        seconds = sum(float(leg["duration"]["value"]) for leg in legs)
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UpstreamError(provider, f"malformed route payload: {exc!r}") from exc
    return meters, seconds


__all__ = ["GoogleDirectionsProvider"]
