"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample provider payloads
- Provider clients pointed at test base URLs
- In-memory document store and services with a fixed clock
- FastAPI test client with overridden dependencies
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import respx
from fastapi.testclient import TestClient
from tenacity import wait_none

from app.api.dependencies import get_advisory_service, get_environment_service
from app.domain.models import Coordinate
from app.infrastructure.document_store import InMemoryDocumentStore
from app.infrastructure.external_api_client import (
    AgroMonitoringClient,
    ExternalAPIClient,
    OpenMeteoClient,
    SoilGridsClient,
)
from app.main import app
from app.services.application.advisory_service import AdvisoryService
from app.services.application.environment_service import (
    EnvironmentService,
    PipelineConfig,
)


AGRO_BASE_URL = "https://agro.test/agro/1.0"
SOILGRIDS_BASE_URL = "https://soilgrids.test/soilgrids/v2.0"
OPEN_METEO_BASE_URL = "https://meteo.test/v1"

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def farm_coords() -> Coordinate:
    """Farm location near Nairobi."""
    return Coordinate(-1.2921, 36.8219)


@pytest.fixture
def soil_payload() -> dict:
    """AgroMonitoring soil response."""
    return {"dt": 1760871600, "moisture": 0.35, "t0": 295.15, "t10": 293.4}


@pytest.fixture
def ndvi_payload() -> list:
    """AgroMonitoring NDVI history, deliberately out of order."""
    return [
        {"dt": 1759000000, "data": {"mean": 0.512345}},
        {"dt": 1760500000, "data": {"mean": 0.61789}},
        {"dt": 1759800000, "data": {"mean": 0.58}},
    ]


@pytest.fixture
def soilgrids_payload() -> dict:
    """SoilGrids properties response for a sandy loam."""
    def layer(name, mean):
        return {"name": name, "depths": [{"label": "0-5cm", "values": {"mean": mean}}]}

    return {
        "type": "Feature",
        "properties": {
            "layers": [
                layer("phh2o", 6.543),
                layer("soc", 12.0),
                layer("sand", 55.04),
                layer("silt", 30.0),
                layer("clay", 14.96),
            ]
        },
    }


@pytest.fixture
def weather_payload() -> dict:
    """Open-Meteo hourly forecast."""
    return {
        "latitude": -1.25,
        "longitude": 36.875,
        "hourly": {
            "time": ["2026-10-19T00:00", "2026-10-19T01:00", "2026-10-19T02:00"],
            "temperature_2m": [18.0, 20.0, 22.0],
            "precipitation": [0.0, 0.4, 1.1],
        },
    }


# ============================================================
# Client Fixtures
# ============================================================

@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    """Retry immediately so retry tests do not sleep."""
    monkeypatch.setattr(ExternalAPIClient._make_request.retry, "wait", wait_none())


@pytest.fixture
def upstream():
    """respx router intercepting all provider traffic."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
async def agro_client():
    client = AgroMonitoringClient(base_url=AGRO_BASE_URL, api_key="test-key")
    yield client
    await client.close()


@pytest.fixture
async def soilgrids_client():
    client = SoilGridsClient(base_url=SOILGRIDS_BASE_URL)
    yield client
    await client.close()


@pytest.fixture
async def weather_client():
    client = OpenMeteoClient(base_url=OPEN_METEO_BASE_URL)
    yield client
    await client.close()


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(farm_collection="farms", source_timeout_seconds=2.0, ndvi_window_days=30)


@pytest.fixture
def environment_service(
    agro_client, soilgrids_client, weather_client, store, pipeline_config
) -> EnvironmentService:
    return EnvironmentService(
        agro_client=agro_client,
        soilgrids_client=soilgrids_client,
        weather_client=weather_client,
        store=store,
        config=pipeline_config,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def advisory_service(store, environment_service, pipeline_config) -> AdvisoryService:
    return AdvisoryService(
        store=store,
        environment_service=environment_service,
        config=pipeline_config,
        clock=lambda: FIXED_NOW,
    )


# ============================================================
# Mock Client Fixtures
# ============================================================

@pytest.fixture
def mock_clients(soil_payload, ndvi_payload, soilgrids_payload, weather_payload):
    """Provider clients returning the sample payloads."""
    agro = AsyncMock(spec=AgroMonitoringClient)
    agro.get_soil.return_value = soil_payload
    agro.get_ndvi_history.return_value = ndvi_payload
    soilgrids = AsyncMock(spec=SoilGridsClient)
    soilgrids.get_properties.return_value = soilgrids_payload
    weather = AsyncMock(spec=OpenMeteoClient)
    weather.get_forecast.return_value = weather_payload
    return agro, soilgrids, weather


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)


@pytest.fixture
def api_store() -> InMemoryDocumentStore:
    """Store backing the API test client."""
    return InMemoryDocumentStore()


@pytest.fixture
def api_client(mock_clients, api_store, pipeline_config):
    """Test client whose services use mock providers and a fresh store."""
    agro, soilgrids, weather = mock_clients
    environment = EnvironmentService(
        agro_client=agro,
        soilgrids_client=soilgrids,
        weather_client=weather,
        store=api_store,
        config=pipeline_config,
        clock=lambda: FIXED_NOW,
    )
    advisory = AdvisoryService(
        store=api_store,
        environment_service=environment,
        config=pipeline_config,
        clock=lambda: FIXED_NOW,
    )
    app.dependency_overrides[get_environment_service] = lambda: environment
    app.dependency_overrides[get_advisory_service] = lambda: advisory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
