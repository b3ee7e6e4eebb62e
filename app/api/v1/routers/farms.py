"""
API router for farm endpoints.
"""
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Path, Query, Request

from app.api.dependencies import AdvisoryServiceDep, EnvironmentServiceDep
from app.api.rate_limit import PROVIDER_RATE_LIMIT, limiter
from app.api.v1.models.requests import CropRecommendationRequest
from app.api.v1.models.responses import YieldImportResponse
from app.domain.exceptions import InvalidInput
from app.domain.models import (
    Coordinate,
    CropRecommendationSet,
    EnvironmentalSnapshot,
    IrrigationAdvice,
)


router = APIRouter(
    prefix="/farms",
    tags=["farms"],
)

FarmId = Annotated[str, Path(min_length=1, description="Unique identifier for the farm")]


@router.get(
    "/{farm_id}/environment",
    response_model=EnvironmentalSnapshot,
    summary="Aggregate environment data",
    description="""
    Fetch soil sensor readings, the latest vegetation index, soil chemistry
    and the hourly weather forecast for a farm location.

    Sources are fetched concurrently. An unavailable source leaves its
    fields null and is reported under `sources`; the request only fails
    when every source failed. With `store=true` the result is merged into
    the farm document without touching data owned by other sources.
    """,
    responses={
        200: {"description": "Environment snapshot, possibly partial"},
        400: {"description": "Invalid farm id or coordinates"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Storing the snapshot failed; the snapshot is included"},
        502: {"description": "All data sources failed"},
    },
)
@limiter.limit(PROVIDER_RATE_LIMIT)
async def get_environment(
    request: Request,
    farm_id: FarmId,
    latitude: Annotated[float, Query(ge=-90, le=90, description="Latitude in degrees")],
    longitude: Annotated[float, Query(ge=-180, le=180, description="Longitude in degrees")],
    environment_service: EnvironmentServiceDep,
    poly_id: Annotated[Optional[str], Query(
        alias="polyId",
        description="Provider polygon id; NDVI is skipped without it",
    )] = None,
    store: Annotated[bool, Query(description="Merge the result into the farm document")] = True,
) -> EnvironmentalSnapshot:
    """
    Aggregate environment data for a farm.

    Args:
        request: Incoming request (used by the rate limiter)
        farm_id: Unique identifier for the farm
        latitude: Farm latitude
        longitude: Farm longitude
        environment_service: Environment service (injected dependency)
        poly_id: Optional NDVI polygon id
        store: Whether to persist the result

    Returns:
        EnvironmentalSnapshot
    """
    return await environment_service.aggregate(
        farm_id,
        Coordinate(latitude, longitude),
        store_result=store,
        ndvi_polygon_id=poly_id,
    )


@router.get(
    "/{farm_id}",
    summary="Get stored farm document",
    responses={404: {"description": "Nothing stored for this farm"}},
)
async def get_farm(
    farm_id: FarmId,
    environment_service: EnvironmentServiceDep,
) -> Dict[str, Any]:
    """Return the farm document as stored, one key per data source."""
    return await environment_service.get_farm_document(farm_id)


@router.post(
    "/{farm_id}/crop-recommendations",
    response_model=CropRecommendationSet,
    summary="Recommend crops",
    description="""
    Score catalog crops against water availability, crop rotation,
    temperature and budget, and return the best five. The result is stored
    on the farm document.
    """,
)
async def recommend_crops(
    farm_id: FarmId,
    body: CropRecommendationRequest,
    advisory_service: AdvisoryServiceDep,
) -> CropRecommendationSet:
    return await advisory_service.recommend_crops(
        farm_id,
        water_availability=body.water_availability,
        history=body.history,
        max_cost_index=body.affordability.max_cost_index if body.affordability else None,
        avg_temp=body.avg_temp,
        location=body.location,
    )


@router.get(
    "/{farm_id}/irrigation",
    response_model=IrrigationAdvice,
    summary="Irrigation advice from stored data",
    description="""
    Compute the watering interval and an evapotranspiration based plan
    from the soil moisture, soil texture and weather last stored for the
    farm. Run the environment endpoint first to populate them.
    """,
    responses={404: {"description": "Nothing stored for this farm"}},
)
async def get_irrigation(
    farm_id: FarmId,
    crop: Annotated[str, Query(min_length=1, description="Crop name, e.g. rice or corn")],
    advisory_service: AdvisoryServiceDep,
) -> IrrigationAdvice:
    return await advisory_service.irrigation_for_farm(farm_id, crop)


@router.post(
    "/{farm_id}/yield-history",
    response_model=YieldImportResponse,
    summary="Import yield history CSV",
    description="""
    Parse a CSV with `year` and `yield` (or `yield_t_ha` / `yield_kg_ha`)
    columns and an optional `crop` column, and store the entries on the farm
    document.
    """,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"text/csv": {"schema": {"type": "string"}}},
        }
    },
)
async def import_yield_history(
    farm_id: FarmId,
    request: Request,
    advisory_service: AdvisoryServiceDep,
) -> YieldImportResponse:
    try:
        csv_text = (await request.body()).decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInput("CSV must be UTF-8 encoded") from e

    history = await advisory_service.import_yield_history(farm_id, csv_text)
    return YieldImportResponse(
        farm_id=farm_id,
        summary=history.summary,
        entries=history.entries,
    )
