"""Provider adapters against canned HTTP responses."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from backend.app.mileage.contracts import ResolutionOptions
from backend.app.mileage.errors import (
    ConfigurationError,
    NotFoundError,
    ProviderTimeoutError,
    UpstreamError,
)
from backend.app.mileage.providers import (
    FALLBACK_ORDER,
    GoogleDirectionsProvider,
    MileMakerProvider,
    PCMilerProvider,
    build_providers,
)
from backend.app.mileage.providers.base import round_half_up, tenth_hours, whole_miles
from backend.app.settings import Settings


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _never_called(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def _run(provider, origin="Chicago, IL", destination="Dallas, TX", options=None):
    async def _go():
        try:
            return await provider.calculate(origin, destination, options)
        finally:
            if provider._client is not None:
                await provider._client.aclose()

    return asyncio.run(_go())


def _directions(*legs: tuple[float, float], status: str = "OK") -> dict:
    return {
        "status": status,
        "routes": [
            {
                "legs": [
                    {"distance": {"value": meters}, "duration": {"value": seconds}}
                    for meters, seconds in legs
                ]
            }
        ],
    }


class TestRounding:
    def test_half_rounds_up_not_to_even(self):
        assert whole_miles(2.5) == 3
        assert whole_miles(1.5) == 2
        assert whole_miles(812.49) == 812

    def test_hours_keep_one_decimal(self):
        assert tenth_hours(0.25) == 0.3
        assert tenth_hours(13.26) == 13.3

    def test_round_half_up_cents(self):
        assert round_half_up(24.505, 2) == 24.51


class TestGoogleDirections:
    def test_success_converts_units(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_directions((1609340, 36000)))

        provider = GoogleDirectionsProvider("key-123", client=_client(handler))
        result = _run(provider)

        assert result.practical_miles == 1000
        assert result.drive_time_hours == 10.0
        assert result.source == "google_estimated"
        assert result.route_type == "estimated"
        assert result.shortest_miles is None
        assert result.toll_cost is None
        assert result.cached is False
        params = seen[0].url.params
        assert params["origin"] == "Chicago, IL"
        assert params["key"] == "key-123"
        assert "waypoints" not in params

    def test_stops_become_waypoints_and_legs_are_summed(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_directions((160934, 5400), (321868, 12600)))

        provider = GoogleDirectionsProvider("key", client=_client(handler))
        result = _run(provider, options=ResolutionOptions(stops=["Memphis, TN", "Tulsa, OK"]))

        assert seen[0].url.params["waypoints"] == "Memphis, TN|Tulsa, OK"
        assert result.practical_miles == 300
        assert result.drive_time_hours == 5.0

    def test_missing_key_raises_configuration_error_without_network(self):
        provider = GoogleDirectionsProvider("  ", client=_client(_never_called))
        assert provider.is_configured is False
        with pytest.raises(ConfigurationError):
            _run(provider)

    @pytest.mark.parametrize("status", ["ZERO_RESULTS", "NOT_FOUND"])
    def test_unroutable_lane_is_not_found(self, status):
        provider = GoogleDirectionsProvider(
            "key", client=_client(lambda r: httpx.Response(200, json={"status": status}))
        )
        with pytest.raises(NotFoundError):
            _run(provider)

    def test_denied_request_is_upstream_error(self):
        payload = {"status": "REQUEST_DENIED", "error_message": "bad key"}
        provider = GoogleDirectionsProvider(
            "key", client=_client(lambda r: httpx.Response(200, json=payload))
        )
        with pytest.raises(UpstreamError, match="bad key"):
            _run(provider)

    def test_http_error_status_is_upstream_error(self):
        provider = GoogleDirectionsProvider(
            "key", client=_client(lambda r: httpx.Response(503, text="unavailable"))
        )
        with pytest.raises(UpstreamError) as exc_info:
            _run(provider)
        assert exc_info.value.status_code == 503

    def test_non_json_body_is_upstream_error(self):
        provider = GoogleDirectionsProvider(
            "key", client=_client(lambda r: httpx.Response(200, text="<html>"))
        )
        with pytest.raises(UpstreamError, match="invalid JSON"):
            _run(provider)

    def test_transport_timeout_maps_to_timeout_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        provider = GoogleDirectionsProvider("key", client=_client(handler))
        with pytest.raises(ProviderTimeoutError):
            _run(provider)

    def test_wall_clock_budget_is_enforced(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1.0)
            return httpx.Response(200, json=_directions((1609.34, 60)))

        provider = GoogleDirectionsProvider("key", timeout=0.05, client=_client(handler))
        with pytest.raises(ProviderTimeoutError):
            _run(provider)


class TestMileMaker:
    def _handler(self, requests: list[httpx.Request], *, route_status=200, route_body=None):
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path == "/oauth/token":
                return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 3600})
            if request.url.path == "/v2/route":
                body = route_body or {
                    "practical_miles": 812.6,
                    "shortest_miles": 790,
                    "drive_time_hours": 13.26,
                    "toll_cost": 24.5,
                }
                return httpx.Response(route_status, json=body)
            return httpx.Response(404)

        return handler

    def test_token_then_route(self):
        requests: list[httpx.Request] = []
        provider = MileMakerProvider("id", "secret", client=_client(self._handler(requests)))

        result = _run(provider, options=ResolutionOptions(hazmat=True, stops=["Memphis, TN"]))

        assert [r.url.path for r in requests] == ["/oauth/token", "/v2/route"]
        assert b"grant_type=client_credentials" in requests[0].content
        route = requests[1]
        assert route.headers["Authorization"] == "Bearer tok-1"
        body = json.loads(route.content)
        assert body["hazmat"] is True
        assert body["stops"] == ["Memphis, TN"]
        assert body["equipment_type"] == "dry_van"

        assert result.practical_miles == 813
        assert result.shortest_miles == 790
        assert result.drive_time_hours == 13.3
        assert result.toll_cost == 24.5
        assert result.source == "milemaker"
        assert result.route_type == "practical"

    def test_equipment_is_forwarded(self):
        requests: list[httpx.Request] = []
        provider = MileMakerProvider("id", "secret", client=_client(self._handler(requests)))
        _run(provider, options=ResolutionOptions(equipment="reefer"))
        assert json.loads(requests[1].content)["equipment_type"] == "reefer"

    def test_half_configured_credentials_make_no_calls(self):
        provider = MileMakerProvider("id", None, client=_client(_never_called))
        assert provider.is_configured is False
        with pytest.raises(ConfigurationError):
            _run(provider)

    def test_rejected_token_stops_before_route(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(401, json={"error": "invalid_client"})

        provider = MileMakerProvider("id", "secret", client=_client(handler))
        with pytest.raises(UpstreamError) as exc_info:
            _run(provider)
        assert exc_info.value.status_code == 401
        assert len(requests) == 1

    def test_route_404_is_not_found(self):
        provider = MileMakerProvider(
            "id", "secret", client=_client(self._handler([], route_status=404))
        )
        with pytest.raises(NotFoundError):
            _run(provider)

    def test_route_without_miles_is_upstream_error(self):
        provider = MileMakerProvider(
            "id", "secret", client=_client(self._handler([], route_body={"status": "ok"}))
        )
        with pytest.raises(UpstreamError, match="practical_miles"):
            _run(provider)


class TestPCMiler:
    def test_report_lines_are_summed(self):
        seen: list[httpx.Request] = []
        report = [
            {
                "ReportLines": [
                    {"TMiles": "100.4", "SMiles": "95", "THours": "1.54", "TollCost": "0"},
                    {"TMiles": "50.2", "SMiles": "40", "THours": "1.0", "TollCost": "12.5"},
                ]
            }
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=report)

        provider = PCMilerProvider("pc-key", client=_client(handler))
        result = _run(provider, options=ResolutionOptions(stops=["Memphis, TN"]))

        assert seen[0].headers["Authorization"] == "pc-key"
        assert seen[0].url.params["stops"] == "Chicago, IL;Memphis, TN;Dallas, TX"
        assert seen[0].url.params["hazMatType"] == "None"
        assert result.practical_miles == 151
        assert result.shortest_miles == 135
        assert result.drive_time_hours == 2.5
        assert result.toll_cost == 12.5
        assert result.source == "pcmiler"

    def test_zero_tolls_are_reported_as_absent(self):
        report = [{"ReportLines": [{"TMiles": 10, "THours": 0.2}]}]
        provider = PCMilerProvider(
            "pc-key", client=_client(lambda r: httpx.Response(200, json=report))
        )
        result = _run(provider)
        assert result.toll_cost is None
        assert result.shortest_miles is None

    def test_hazmat_switches_report_type(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"ReportLines": [{"TMiles": 5, "THours": 0.1}]}])

        _run(PCMilerProvider("k", client=_client(handler)), options=ResolutionOptions(hazmat=True))
        assert seen[0].url.params["hazMatType"] == "General"

    @pytest.mark.parametrize("payload", [[], [{"ReportLines": []}]])
    def test_empty_report_is_not_found(self, payload):
        provider = PCMilerProvider(
            "pc-key", client=_client(lambda r: httpx.Response(200, json=payload))
        )
        with pytest.raises(NotFoundError):
            _run(provider)

    def test_non_list_payload_is_upstream_error(self):
        provider = PCMilerProvider(
            "pc-key", client=_client(lambda r: httpx.Response(200, json={"Errors": ["bad"]}))
        )
        with pytest.raises(UpstreamError):
            _run(provider)

    def test_missing_key_makes_no_calls(self):
        with pytest.raises(ConfigurationError):
            _run(PCMilerProvider(None, client=_client(_never_called)))


class TestRegistry:
    def test_builds_every_provider_from_settings(self):
        config = Settings(
            _env_file=None,
            GOOGLE_MAPS_API_KEY="g",
            PCMILER_API_KEY="p",
            MILEMAKER_CLIENT_ID="id",
        )
        providers = build_providers(config)

        assert set(providers) == set(FALLBACK_ORDER)
        assert providers["google"].is_configured
        assert providers["pcmiler"].is_configured
        assert not providers["milemaker"].is_configured
