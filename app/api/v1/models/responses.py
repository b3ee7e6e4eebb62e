"""
API response models using Pydantic.
"""
from typing import List
from pydantic import Field

from app.api.v1.models.requests import PolygonPoint
from app.domain.models import CamelModel, Location, YieldEntry, YieldSummary


class AreaResponse(CamelModel):
    """Area estimates for a polygon."""
    point_count: int
    area_sq_m: float = Field(
        description="Spherical approximation, suitable for field-sized polygons"
    )
    geodesic_area_sq_m: float = Field(
        description="Area on the WGS84 ellipsoid"
    )
    hectares: str
    is_valid: bool = Field(
        description="False for degenerate or self-intersecting polygons"
    )
    counter_clockwise: bool


class PolygonResponse(AreaResponse):
    """Circle polygon around a farm center."""
    center: Location
    radius_m: float
    points: List[PolygonPoint]

    class Config:
        json_schema_extra = {
            "example": {
                "center": {"latitude": -1.2921, "longitude": 36.8219},
                "radiusM": 1000,
                "pointCount": 48,
                "points": [
                    {"latitude": -1.283107, "longitude": 36.8219},
                    {"latitude": -1.283184, "longitude": 36.823074},
                ],
                "areaSqM": 3132628.6,
                "geodesicAreaSqM": 3118500.0,
                "hectares": "313.26 ha",
                "isValid": True,
                "counterClockwise": False,
            }
        }


class YieldImportResponse(CamelModel):
    """Stored yield history for a farm."""
    farm_id: str
    summary: YieldSummary
    entries: List[YieldEntry]
