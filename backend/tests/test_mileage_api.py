"""HTTP contract for the /v1/mileage routes."""

from __future__ import annotations

import pytest
from backend.app.main import app
from backend.app.mileage.errors import ConfigurationError, UpstreamError
from backend.app.mileage.service import build_mileage_service, get_mileage_service
from backend.app.settings import Settings, settings
from fastapi.testclient import TestClient


@pytest.fixture
def config() -> Settings:
    return Settings(_env_file=None, MILEAGE_PROVIDER="pcmiler", PCMILER_API_KEY="key")


@pytest.fixture
def client(providers, cache, config):
    service = build_mileage_service(config, providers=providers, cache=cache)
    app.dependency_overrides[get_mileage_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_mileage_service, None)


class TestCalculate:
    def test_returns_distance_result(self, client, providers):
        response = client.get(
            "/v1/mileage/calculate", params={"origin": "Chicago, IL", "destination": "Dallas, TX"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "practical_miles": 812,
            "shortest_miles": None,
            "drive_time_hours": 2.0,
            "toll_cost": None,
            "source": "pcmiler",
            "route_type": "practical",
            "cached": False,
        }

    def test_second_lookup_is_cached(self, client, providers):
        params = {"origin": "Chicago, IL", "destination": "Dallas, TX"}
        client.get("/v1/mileage/calculate", params=params)

        response = client.get("/v1/mileage/calculate", params=params)

        assert response.json()["cached"] is True
        assert len(providers["pcmiler"].calls) == 1

    def test_options_are_parsed(self, client, providers):
        client.get(
            "/v1/mileage/calculate",
            params=[
                ("origin", "Chicago, IL"),
                ("destination", "Dallas, TX"),
                ("equipment", "reefer"),
                ("hazmat", "true"),
                ("stop", "Memphis, TN"),
            ],
        )

        _, _, options = providers["pcmiler"].calls[0]
        assert options.equipment == "reefer"
        assert options.hazmat is True
        assert options.stops == ("Memphis, TN",)

    @pytest.mark.parametrize(
        "params",
        [
            {"destination": "Dallas, TX"},
            {"origin": "Chicago, IL"},
            {"origin": "   ", "destination": "Dallas, TX"},
            {},
        ],
    )
    def test_missing_location_is_400(self, client, providers, params):
        response = client.get("/v1/mileage/calculate", params=params)

        assert response.status_code == 400
        assert providers["pcmiler"].calls == []

    def test_fallback_source_is_visible(self, client, providers):
        providers["pcmiler"].error = UpstreamError("pcmiler", "HTTP 503")

        response = client.get(
            "/v1/mileage/calculate", params={"origin": "Chicago, IL", "destination": "Dallas, TX"}
        )

        assert response.status_code == 200
        assert response.json()["source"] == "milemaker"

    def test_all_providers_failing_is_502(self, client, providers):
        providers["pcmiler"].error = ConfigurationError("pcmiler", "PCMILER_API_KEY not configured")
        providers["milemaker"].error = UpstreamError("milemaker", "HTTP 500")
        providers["google"].error = UpstreamError("google", "status OVER_QUERY_LIMIT")

        response = client.get(
            "/v1/mileage/calculate", params={"origin": "Chicago, IL", "destination": "Dallas, TX"}
        )

        assert response.status_code == 502
        body = response.json()
        assert body["detail"] == "All mileage providers failed"
        assert [f["provider"] for f in body["failures"]] == ["pcmiler", "milemaker", "google"]
        assert body["failures"][0]["error"] == "ConfigurationError"


class TestProviderStatus:
    def test_reports_active_provider(self, client):
        response = client.get("/v1/mileage/provider")

        assert response.status_code == 200
        assert response.json() == {
            "active_provider": "pcmiler",
            "configured": True,
            "fallback_order": ["milemaker", "google"],
        }


class TestBatch:
    def test_results_in_input_order(self, client, providers):
        providers["pcmiler"].miles_by_origin = {"A": 10, "B": 20, "C": 30}
        pairs = [{"origin": o, "destination": "Z"} for o in ("C", "A", "B")]

        response = client.post("/v1/mileage/batch", json={"pairs": pairs})

        assert response.status_code == 200
        assert [r["practical_miles"] for r in response.json()["results"]] == [30, 10, 20]

    def test_failed_pair_is_sentinel(self, client, providers):
        for provider in providers.values():
            provider.fail_on = {"Nowhere"}
        pairs = [
            {"origin": "Chicago, IL", "destination": "Dallas, TX"},
            {"origin": "Nowhere", "destination": "Dallas, TX", "hazmat": True},
        ]

        response = client.post("/v1/mileage/batch", json={"pairs": pairs})

        assert response.status_code == 200
        results = response.json()["results"]
        assert results[0]["source"] == "pcmiler"
        assert results[1] == {
            "practical_miles": 0,
            "shortest_miles": None,
            "drive_time_hours": 0.0,
            "toll_cost": None,
            "source": "error",
            "route_type": "error",
            "cached": False,
        }

    @pytest.mark.parametrize("body", [{}, {"pairs": []}, {"pairs": None}])
    def test_missing_or_empty_pairs_is_400(self, client, body):
        assert client.post("/v1/mileage/batch", json=body).status_code == 400

    def test_pair_without_locations_becomes_sentinel(self, client, providers):
        pairs = [
            {"origin": "Chicago, IL", "destination": "Dallas, TX"},
            {"origin": "", "destination": "Dallas, TX"},
            {"origin": "Atlanta, GA"},
            {"origin": "Denver, CO", "destination": "Omaha, NE"},
        ]

        response = client.post("/v1/mileage/batch", json={"pairs": pairs})

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["source"] for r in results] == ["pcmiler", "error", "error", "pcmiler"]
        assert results[1]["practical_miles"] == 0
        assert len(providers["pcmiler"].calls) == 2

    def test_non_array_pairs_is_400(self, client):
        assert client.post("/v1/mileage/batch", json={"pairs": "Chicago"}).status_code == 400

    def test_oversized_batch_is_400(self, client, providers):
        pairs = [
            {"origin": f"o{i}", "destination": f"d{i}"}
            for i in range(settings.MILEAGE_BATCH_MAX_PAIRS + 1)
        ]

        response = client.post("/v1/mileage/batch", json={"pairs": pairs})

        assert response.status_code == 400
        assert providers["pcmiler"].calls == []
