"""
API router for farm polygon geometry.
"""
from typing import Annotated, Sequence

from fastapi import APIRouter, Query

from app.api.v1.models.requests import AreaRequest, PolygonPoint
from app.api.v1.models.responses import AreaResponse, PolygonResponse
from app.config import settings
from app.domain.models import Coordinate, Location
from app.services.domain.geometry import (
    format_hectares,
    generate_polygon,
    geodesic_area_sq_m,
    is_counter_clockwise,
    is_valid_polygon,
    polygon_area_sq_m,
)


router = APIRouter(
    prefix="/geometry",
    tags=["geometry"],
)


def _area_fields(points: Sequence[Coordinate]) -> dict:
    area = polygon_area_sq_m(points)
    return {
        "point_count": len(points),
        "area_sq_m": area,
        "geodesic_area_sq_m": geodesic_area_sq_m(points),
        "hectares": format_hectares(area),
        "is_valid": is_valid_polygon(points),
        "counter_clockwise": is_counter_clockwise(points),
    }


@router.get(
    "/polygon",
    response_model=PolygonResponse,
    summary="Circle polygon around a farm",
    description="""
    Approximate a circle of `radiusM` meters around the farm center with
    `numPoints` vertices, and estimate its area.
    """,
)
async def get_polygon(
    latitude: Annotated[float, Query(ge=-90, le=90, description="Center latitude")],
    longitude: Annotated[float, Query(ge=-180, le=180, description="Center longitude")],
    radius_m: Annotated[float, Query(
        alias="radiusM",
        gt=0,
        description="Circle radius in meters",
    )] = settings.polygon_radius_m,
    num_points: Annotated[int, Query(
        alias="numPoints",
        ge=3,
        description="Number of vertices",
    )] = settings.polygon_num_points,
) -> PolygonResponse:
    center = Coordinate(latitude, longitude)
    points = generate_polygon(center, radius_m, num_points)
    return PolygonResponse(
        center=Location(latitude=latitude, longitude=longitude),
        radius_m=radius_m,
        points=[PolygonPoint(latitude=p.latitude, longitude=p.longitude) for p in points],
        **_area_fields(points),
    )


@router.post(
    "/area",
    response_model=AreaResponse,
    summary="Polygon area",
    description="""
    Estimate the area of a field polygon. Fewer than three points give an
    area of zero. The estimate is independent of winding order.
    """,
)
async def get_area(body: AreaRequest) -> AreaResponse:
    points = [Coordinate(p.latitude, p.longitude) for p in body.points]
    return AreaResponse(**_area_fields(points))
