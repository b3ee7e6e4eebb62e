"""
Dependency injection for FastAPI.
"""
from typing import Annotated
from fastapi import Depends

from app.config import settings
from app.infrastructure.document_store import DocumentStore, get_document_store
from app.infrastructure.external_api_client import (
    AgroMonitoringClient,
    OpenMeteoClient,
    SoilGridsClient,
    get_agromonitoring_client,
    get_open_meteo_client,
    get_soilgrids_client,
)
from app.services.application.advisory_service import AdvisoryService
from app.services.application.environment_service import (
    EnvironmentService,
    PipelineConfig,
)


def get_pipeline_config() -> PipelineConfig:
    """
    Dependency factory for the pipeline configuration.

    Returns:
        PipelineConfig built from the application settings
    """
    return PipelineConfig.from_settings(settings)


def get_environment_service(
    agro_client: Annotated[AgroMonitoringClient, Depends(get_agromonitoring_client)],
    soilgrids_client: Annotated[SoilGridsClient, Depends(get_soilgrids_client)],
    weather_client: Annotated[OpenMeteoClient, Depends(get_open_meteo_client)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
    config: Annotated[PipelineConfig, Depends(get_pipeline_config)],
) -> EnvironmentService:
    """
    Dependency factory for EnvironmentService.

    Args:
        agro_client: Soil sensor and NDVI client (injected)
        soilgrids_client: Soil chemistry client (injected)
        weather_client: Weather client (injected)
        store: Farm document store (injected)
        config: Pipeline configuration (injected)

    Returns:
        EnvironmentService instance
    """
    return EnvironmentService(
        agro_client=agro_client,
        soilgrids_client=soilgrids_client,
        weather_client=weather_client,
        store=store,
        config=config,
    )


def get_advisory_service(
    store: Annotated[DocumentStore, Depends(get_document_store)],
    environment_service: Annotated[EnvironmentService, Depends(get_environment_service)],
    config: Annotated[PipelineConfig, Depends(get_pipeline_config)],
) -> AdvisoryService:
    """
    Dependency factory for AdvisoryService.

    Returns:
        AdvisoryService instance
    """
    return AdvisoryService(
        store=store,
        environment_service=environment_service,
        config=config,
    )


# Type aliases for cleaner route signatures
EnvironmentServiceDep = Annotated[EnvironmentService, Depends(get_environment_service)]
AdvisoryServiceDep = Annotated[AdvisoryService, Depends(get_advisory_service)]
