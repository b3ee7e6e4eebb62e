"""
API router for stateless irrigation advice.
"""
from fastapi import APIRouter

from app.api.dependencies import AdvisoryServiceDep
from app.api.v1.models.requests import IrrigationRequest
from app.domain.models import IrrigationAdvice


router = APIRouter(
    prefix="/irrigation",
    tags=["irrigation"],
)


@router.post(
    "/schedule",
    response_model=IrrigationAdvice,
    summary="Irrigation advice from explicit inputs",
)
async def schedule_irrigation(
    body: IrrigationRequest,
    advisory_service: AdvisoryServiceDep,
) -> IrrigationAdvice:
    """
    Compute the watering interval and water plan without stored data.

    Args:
        body: Crop, soil moisture, hourly temperatures and precipitation
        advisory_service: Advisory service (injected dependency)

    Returns:
        IrrigationAdvice
    """
    return advisory_service.irrigation_from_inputs(
        crop=body.crop,
        soil_moisture_percent=body.soil_moisture_percent,
        hourly_temps=body.hourly_temps,
        hourly_precipitation=body.hourly_precipitation,
        texture=body.texture,
    )
