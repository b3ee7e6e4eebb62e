"""
Integration tests for API endpoints.

Tests the full HTTP request/response cycle with mocked external dependencies.
"""
import math
from unittest.mock import AsyncMock

import pytest

from app.domain.exceptions import PersistenceFailure, SourceUnavailable


ENVIRONMENT_URL = "/api/v1/farms/farm-1/environment"
FARM_PARAMS = {"latitude": -1.2921, "longitude": 36.8219}


# ============================================================
# Health Check Tests
# ============================================================

class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, test_client):
        """Root endpoint should return healthy status."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "service" in data
        assert "version" in data

    def test_health_endpoint(self, test_client):
        """Health endpoint should return healthy status."""
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


# ============================================================
# Environment Endpoint Tests
# ============================================================

class TestEnvironmentEndpoint:
    """Tests for the environment aggregation endpoint."""

    def test_aggregate_and_store(self, api_client, mock_clients):
        response = api_client.get(ENVIRONMENT_URL, params={**FARM_PARAMS, "polyId": "poly-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["farmId"] == "farm-1"
        assert data["stored"] is True
        assert data["soilMoisture"]["moisturePercent"] == 35.0
        assert data["soilMoisture"]["ndvi"] == {"date": 1760500000, "value": 0.618}
        assert data["soilChemistry"]["texture"] == "sandy loam"
        assert data["weather"]["hourly"]["temperature_2m"] == [18.0, 20.0, 22.0]
        assert data["sources"]["vegetation"]["status"] == "ok"

        agro, _, _ = mock_clients
        agro.get_soil.assert_awaited_once_with(-1.2921, 36.8219)

    def test_store_false(self, api_client):
        response = api_client.get(ENVIRONMENT_URL, params={**FARM_PARAMS, "store": "false"})

        assert response.status_code == 200
        assert response.json()["stored"] is False
        assert api_client.get("/api/v1/farms/farm-1").status_code == 404

    def test_partial_response(self, api_client, mock_clients):
        _, soilgrids, _ = mock_clients
        soilgrids.get_properties.side_effect = SourceUnavailable("soilgrids", "HTTP 503")

        response = api_client.get(ENVIRONMENT_URL, params=FARM_PARAMS)

        assert response.status_code == 200
        data = response.json()
        assert data["soilChemistry"] is None
        assert data["sources"]["soilChemistry"]["status"] == "unavailable"
        assert data["sources"]["vegetation"]["status"] == "skipped"

    def test_all_sources_failed(self, api_client, mock_clients):
        agro, soilgrids, weather = mock_clients
        agro.get_soil.side_effect = SourceUnavailable("agromonitoring", "HTTP 503")
        soilgrids.get_properties.side_effect = SourceUnavailable("soilgrids", "HTTP 503")
        weather.get_forecast.side_effect = SourceUnavailable("open-meteo", "HTTP 503")

        response = api_client.get(ENVIRONMENT_URL, params=FARM_PARAMS)

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "All data sources failed"
        assert set(data["sources"]) == {"soilMoisture", "soilChemistry", "weather"}

    def test_persistence_failure_returns_snapshot(self, api_client, api_store, monkeypatch):
        monkeypatch.setattr(
            api_store,
            "merge_upsert",
            AsyncMock(side_effect=PersistenceFailure("write refused")),
        )

        response = api_client.get(ENVIRONMENT_URL, params=FARM_PARAMS)

        assert response.status_code == 500
        data = response.json()
        assert data["detail"] == "write refused"
        assert data["result"]["farmId"] == "farm-1"
        assert data["result"]["soilMoisture"]["moisturePercent"] == 35.0

    @pytest.mark.parametrize("params", [
        {"latitude": 95, "longitude": 0},
        {"latitude": 0, "longitude": -181},
        {"latitude": "north", "longitude": 0},
        {"longitude": 0},
    ])
    def test_invalid_coordinates(self, api_client, mock_clients, params):
        response = api_client.get(ENVIRONMENT_URL, params=params)

        assert response.status_code == 422
        agro, _, _ = mock_clients
        agro.get_soil.assert_not_awaited()

    def test_blank_farm_id(self, api_client):
        response = api_client.get("/api/v1/farms/%20/environment", params=FARM_PARAMS)

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"


# ============================================================
# Farm Document Tests
# ============================================================

class TestFarmDocument:

    def test_unknown_farm(self, api_client):
        response = api_client.get("/api/v1/farms/ghost")

        assert response.status_code == 404
        assert response.json()["error"] == "FarmNotFound"

    def test_document_after_aggregate(self, api_client):
        api_client.get(ENVIRONMENT_URL, params={**FARM_PARAMS, "polyId": "poly-1"})

        response = api_client.get("/api/v1/farms/farm-1")

        assert response.status_code == 200
        data = response.json()
        assert set(data) >= {
            "farmId", "location", "updatedAt",
            "soilMoisture", "vegetation", "soilChemistry", "weather",
        }
        assert data["vegetation"]["ndvi"]["value"] == 0.618


# ============================================================
# Advisory Endpoint Tests
# ============================================================

class TestCropRecommendations:

    def test_recommend_and_store(self, api_client):
        body = {
            "waterAvailability": "low",
            "history": [{"crop": "corn", "year": 2024}],
            "affordability": {"maxCostIndex": 3},
        }

        response = api_client.post("/api/v1/farms/farm-1/crop-recommendations", json=body)

        assert response.status_code == 200
        data = response.json()
        keys = [rec["key"] for rec in data["recommendations"]]
        assert keys == ["barley", "sorghum", "wheat", "soybean", "rice"]
        assert data["recommendations"][0]["score"] == 76
        assert data["recommendations"][0]["hints"]["baseKc"] == 0.95

        stored = api_client.get("/api/v1/farms/farm-1").json()
        assert stored["cropRecommendations"]["recommendations"][0]["key"] == "barley"

    def test_cost_index_above_catalog_keeps_every_crop(self, api_client):
        response = api_client.post(
            "/api/v1/farms/farm-1/crop-recommendations",
            json={"affordability": {"maxCostIndex": 7}},
        )

        assert response.status_code == 200
        keys = [rec["key"] for rec in response.json()["recommendations"]]
        assert keys == ["wheat", "soybean", "barley", "sorghum", "corn"]

    def test_cost_index_below_catalog_filters_everything(self, api_client):
        response = api_client.post(
            "/api/v1/farms/farm-1/crop-recommendations",
            json={"affordability": {"maxCostIndex": 0}},
        )

        assert response.status_code == 200
        assert response.json()["recommendations"] == []


class TestIrrigation:

    def test_from_stored_data(self, api_client):
        api_client.get(ENVIRONMENT_URL, params=FARM_PARAMS)

        response = api_client.get("/api/v1/farms/farm-1/irrigation", params={"crop": "rice"})

        assert response.status_code == 200
        data = response.json()
        assert data["soilMoisturePercent"] == 35.0
        assert data["texture"] == "sandy loam"
        assert data["schedule"]["avgTemp"] == 20.0
        assert data["schedule"]["daysPerIrrigation"] == 6
        assert data["waterPlan"]["tawMmPerM"] == 80.0

    def test_unknown_farm(self, api_client):
        response = api_client.get("/api/v1/farms/ghost/irrigation", params={"crop": "rice"})

        assert response.status_code == 404

    def test_from_explicit_inputs(self, api_client):
        body = {"crop": "rice", "soilMoisturePercent": 40, "hourlyTemps": [20, 20, 20]}

        response = api_client.post("/api/v1/irrigation/schedule", json=body)

        assert response.status_code == 200
        data = response.json()
        assert data["schedule"]["daysPerIrrigation"] == 6
        assert data["waterPlan"]["daysToDepletion"] == 8
        assert data["waterPlan"]["nextIrrigationDate"] == "2026-10-27"

    def test_missing_crop(self, api_client):
        response = api_client.post("/api/v1/irrigation/schedule", json={"hourlyTemps": []})

        assert response.status_code == 422


class TestYieldHistory:

    def test_upload_csv(self, api_client):
        response = api_client.post(
            "/api/v1/farms/farm-1/yield-history",
            content="year,yield,crop\n2022,3.4,Maize\n2023,4.1,Wheat\n",
            headers={"Content-Type": "text/csv"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["farmId"] == "farm-1"
        assert data["summary"]["entries"] == 2
        assert data["entries"][1] == {"year": 2023, "yield": 4.1, "crop": "Wheat"}

        stored = api_client.get("/api/v1/farms/farm-1").json()
        assert stored["yieldHistory"]["summary"]["latestYear"] == 2023

    def test_bad_header(self, api_client):
        response = api_client.post(
            "/api/v1/farms/farm-1/yield-history",
            content="season,amount\n2022,3.4\n",
            headers={"Content-Type": "text/csv"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"

    def test_not_utf8(self, api_client):
        response = api_client.post(
            "/api/v1/farms/farm-1/yield-history",
            content=b"\xff\xfe\x00",
            headers={"Content-Type": "text/csv"},
        )

        assert response.status_code == 400


# ============================================================
# Geometry Endpoint Tests
# ============================================================

class TestGeometry:

    def test_polygon(self, test_client):
        response = test_client.get("/api/v1/geometry/polygon", params=FARM_PARAMS)

        assert response.status_code == 200
        data = response.json()
        assert data["pointCount"] == 48
        assert len(data["points"]) == 48
        assert data["radiusM"] == 1000
        assert data["areaSqM"] == pytest.approx(math.pi * 1e6, rel=0.01)
        assert data["isValid"] is True

    def test_polygon_custom_parameters(self, test_client):
        params = {**FARM_PARAMS, "radiusM": 250, "numPoints": 12}

        data = test_client.get("/api/v1/geometry/polygon", params=params).json()

        assert data["pointCount"] == 12

    def test_polygon_many_points(self, test_client):
        params = {**FARM_PARAMS, "numPoints": 1000}

        response = test_client.get("/api/v1/geometry/polygon", params=params)

        assert response.status_code == 200
        assert response.json()["pointCount"] == 1000

    @pytest.mark.parametrize("extra", [{"numPoints": 2}, {"radiusM": 0}])
    def test_polygon_invalid_parameters(self, test_client, extra):
        response = test_client.get("/api/v1/geometry/polygon", params={**FARM_PARAMS, **extra})

        assert response.status_code == 422

    def test_area(self, test_client):
        square = [
            {"latitude": 0.0, "longitude": 0.0},
            {"latitude": 0.0, "longitude": 0.01},
            {"latitude": 0.01, "longitude": 0.01},
            {"latitude": 0.01, "longitude": 0.0},
        ]

        response = test_client.post("/api/v1/geometry/area", json={"points": square})

        assert response.status_code == 200
        data = response.json()
        assert data["areaSqM"] == pytest.approx(1_236_431, rel=0.001)
        assert data["hectares"].endswith(" ha")

    def test_degenerate_area(self, test_client):
        points = [{"latitude": 0.0, "longitude": 0.0}, {"latitude": 1.0, "longitude": 1.0}]

        data = test_client.post("/api/v1/geometry/area", json={"points": points}).json()

        assert data["areaSqM"] == 0
        assert data["isValid"] is False


# ============================================================
# Response Format Tests
# ============================================================

class TestResponseFormats:
    """Tests for API response formats."""

    def test_openapi_schema_available(self, test_client):
        """OpenAPI schema should be available."""
        response = test_client.get("/openapi.json")

        assert response.status_code == 200
        data = response.json()
        assert "openapi" in data
        assert "paths" in data
        for path in (
            "/api/v1/farms/{farm_id}/environment",
            "/api/v1/farms/{farm_id}",
            "/api/v1/farms/{farm_id}/crop-recommendations",
            "/api/v1/farms/{farm_id}/irrigation",
            "/api/v1/farms/{farm_id}/yield-history",
            "/api/v1/irrigation/schedule",
            "/api/v1/geometry/polygon",
            "/api/v1/geometry/area",
        ):
            assert path in data["paths"]

    def test_docs_endpoint_available(self, test_client):
        """Swagger docs should be available."""
        response = test_client.get("/docs")

        assert response.status_code == 200
        assert "swagger" in response.text.lower() or "html" in response.headers.get("content-type", "")

    def test_redoc_endpoint_available(self, test_client):
        """ReDoc should be available."""
        response = test_client.get("/redoc")

        assert response.status_code == 200


# ============================================================
# CORS Tests
# ============================================================

class TestCORS:
    """Tests for CORS configuration."""

    def test_cors_headers_present(self, test_client):
        """CORS headers should be present for cross-origin requests."""
        response = test_client.options(
            ENVIRONMENT_URL,
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "GET",
            }
        )

        # CORS preflight should succeed
        assert response.status_code in [200, 405, 400]  # Depends on CORS config


# ============================================================
# Rate Limiting Tests
# ============================================================

class TestRateLimiting:
    """Tests for rate limiting functionality."""

    def test_rate_limit_documented_in_openapi(self, test_client):
        """Rate limit should be documented in OpenAPI."""
        response = test_client.get("/openapi.json")

        assert response.status_code == 200
        data = response.json()

        # Check that 429 response is documented
        environment_path = data["paths"]["/api/v1/farms/{farm_id}/environment"]
        assert "429" in environment_path["get"]["responses"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
