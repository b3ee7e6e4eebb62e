"""
API request models using Pydantic.
"""
from typing import List, Optional
from pydantic import Field

from app.domain.models import (
    CamelModel,
    CropHistoryEntry,
    Location,
    WaterAvailability,
)


class Affordability(CamelModel):
    """Budget constraints for crop selection."""
    max_cost_index: Optional[int] = Field(
        default=None,
        description="Highest acceptable crop cost index (catalog runs 1 cheap - 3 expensive)"
    )


class CropRecommendationRequest(CamelModel):
    """Request body for crop recommendations."""
    location: Optional[Location] = None
    water_availability: Optional[WaterAvailability] = Field(
        default=None,
        description="Seasonal irrigation capacity"
    )
    history: List[CropHistoryEntry] = Field(default_factory=list)
    affordability: Optional[Affordability] = None
    avg_temp: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Average temperature in degrees Celsius"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "location": {"latitude": -1.2921, "longitude": 36.8219},
                "waterAvailability": "low",
                "history": [{"crop": "corn", "year": 2024}],
                "affordability": {"maxCostIndex": 3},
                "avgTemp": 21.5,
            }
        }


class IrrigationRequest(CamelModel):
    """Request body for an irrigation schedule from explicit inputs."""
    crop: str = Field(min_length=1)
    soil_moisture_percent: Optional[float] = Field(default=None, ge=0, le=100)
    hourly_temps: List[Optional[float]] = Field(default_factory=list)
    hourly_precipitation: List[Optional[float]] = Field(default_factory=list)
    texture: Optional[str] = None


class PolygonPoint(CamelModel):
    """Polygon vertex in degrees."""
    latitude: float
    longitude: float


class AreaRequest(CamelModel):
    """Request body for polygon area estimation."""
    points: List[PolygonPoint] = Field(
        description="Polygon vertices; the ring is closed implicitly"
    )
