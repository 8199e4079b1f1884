from __future__ import annotations

import httpx

from ..contracts import DistanceResult, ResolutionOptions
from ..errors import ConfigurationError, NotFoundError, UpstreamError
from .base import HttpMileageProvider, tenth_hours, whole_miles

DEFAULT_API_BASE = "https://api.milemaker.com"
DEFAULT_EQUIPMENT = "dry_van"


class MileMakerProvider(HttpMileageProvider):
    """
    Truck-practical mileage from MileMaker.

    Every call is self-contained: a client-credentials token is fetched, then the route is
    requested with it. Stops, hazmat and equipment class shape the route.
    """

    name = "milemaker"
    source = "milemaker"
    route_type = "practical"

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        *,
        base_url: str = DEFAULT_API_BASE,
        auth_timeout: float = 10.0,
        route_timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(client=client)
        self.client_id = (client_id or "").strip() or None
        self.client_secret = (client_secret or "").strip() or None
        self.base_url = base_url.rstrip("/")
        self.auth_timeout = auth_timeout
        self.route_timeout = route_timeout

    @property
    def is_configured(self) -> bool:
        return self.client_id is not None and self.client_secret is not None

    async def _access_token(self) -> str:
        response = await self._request(
            "POST",
            f"{self.base_url}/oauth/token",
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            timeout=self.auth_timeout,
        )
        self._ensure_ok(response, "OAuth token endpoint")
        payload = self._json(response)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise UpstreamError(self.name, "OAuth response missing access_token")
        return str(token)

    async def calculate(
        self,
        origin: str,
        destination: str,
        options: ResolutionOptions | None = None,
    ) -> DistanceResult:
        if not self.is_configured:
            raise ConfigurationError(
                self.name, "MILEMAKER_CLIENT_ID / MILEMAKER_CLIENT_SECRET not configured"
            )
        options = options or ResolutionOptions()
        token = await self._access_token()

        response = await self._request(
            "POST",
            f"{self.base_url}/v2/route",
            json={
                "origin": origin,
                "destination": destination,
                "stops": list(options.stops),
                "vehicle_type": "truck",
                "route_type": "practical",
                "hazmat": options.hazmat,
                "equipment_type": options.equipment or DEFAULT_EQUIPMENT,
            },
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.route_timeout,
        )
        if response.status_code == 404:
            raise NotFoundError(self.name, "no practical route between lane endpoints")
        self._ensure_ok(response, "route API")
        data = self._json(response)
        if not isinstance(data, dict) or data.get("practical_miles") is None:
            raise UpstreamError(self.name, "route response missing practical_miles")

        try:
            practical = float(data["practical_miles"])
            hours = float(data.get("drive_time_hours") or 0)
            shortest = data.get("shortest_miles")
            tolls = data.get("toll_cost")
            return self._result(
                practical_miles=whole_miles(practical),
                shortest_miles=whole_miles(float(shortest)) if shortest else None,
                drive_time_hours=tenth_hours(hours),
                toll_cost=float(tolls) if tolls is not None else None,
            )
        except (TypeError, ValueError) as exc:
            raise UpstreamError(self.name, f"malformed route payload: {exc!r}") from exc


__all__ = ["MileMakerProvider"]
