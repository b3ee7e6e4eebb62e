"""
Domain service: farm polygon geometry.

Provides:
- Circle polygon generation around a farm center (spherical direct formula)
- Spherical polygon area estimate for small polygons
- Geodesic (WGS84) area and polygon validity checks
"""
from typing import Sequence

import numpy as np
from pyproj import Geod
from shapely.geometry import LinearRing, Polygon

from app.domain.exceptions import InvalidInput
from app.domain.models import Coordinate

EARTH_RADIUS_M = 6_371_000.0
DEFAULT_RADIUS_M = 1000.0
DEFAULT_NUM_POINTS = 48

_WGS84 = Geod(ellps="WGS84")


def generate_polygon(
    center: Coordinate,
    radius_m: float = DEFAULT_RADIUS_M,
    num_points: int = DEFAULT_NUM_POINTS,
) -> list[Coordinate]:
    """
    Approximate a circle around ``center`` with ``num_points`` vertices.

    Each vertex is the destination point at ``radius_m`` along one of
    ``num_points`` equally spaced bearings, starting due north and turning
    clockwise. NaN centers propagate into the output.

    Args:
        center: Circle center in degrees
        radius_m: Circle radius in meters (> 0)
        num_points: Number of vertices (>= 3)

    Returns:
        List of ``num_points`` coordinates in degrees

    Raises:
        InvalidInput: If num_points < 3 or radius_m is not positive
    """
    if num_points < 3:
        raise InvalidInput(f"num_points must be at least 3, got {num_points}")
    if not radius_m > 0:
        raise InvalidInput(f"radius_m must be positive, got {radius_m}")

    lat1 = np.radians(center.latitude)
    lon1 = np.radians(center.longitude)
    d = radius_m / EARTH_RADIUS_M
    bearings = 2 * np.pi * np.arange(num_points) / num_points

    lat2 = np.arcsin(
        np.sin(lat1) * np.cos(d) + np.cos(lat1) * np.sin(d) * np.cos(bearings)
    )
    lon2 = lon1 + np.arctan2(
        np.sin(bearings) * np.sin(d) * np.cos(lat1),
        np.cos(d) - np.sin(lat1) * np.sin(lat2),
    )

    return [
        Coordinate(float(lat), float(lon))
        for lat, lon in zip(np.degrees(lat2), np.degrees(lon2))
    ]


def polygon_area_sq_m(points: Sequence[Coordinate]) -> float:
    """
    Estimate the area of a small polygon on a sphere.

    Uses the line integral sum((lon2 - lon1) * (2 + sin(lat1) + sin(lat2)))
    over consecutive vertices, wrapping last to first. The absolute value
    makes the result independent of winding order. Self-intersecting
    polygons give a meaningless but finite result.

    Args:
        points: Polygon vertices in degrees, implicitly closed

    Returns:
        Area in square meters, 0 for fewer than 3 points
    """
    if len(points) < 3:
        return 0.0

    lats = np.radians([p.latitude for p in points])
    lons = np.radians([p.longitude for p in points])
    next_lats = np.roll(lats, -1)
    next_lons = np.roll(lons, -1)

    total = np.sum((next_lons - lons) * (2 + np.sin(lats) + np.sin(next_lats)))
    return float(abs(total) * EARTH_RADIUS_M ** 2 / 2)


def geodesic_area_sq_m(points: Sequence[Coordinate]) -> float:
    """
    Area of a polygon on the WGS84 ellipsoid.

    Args:
        points: Polygon vertices in degrees, implicitly closed

    Returns:
        Area in square meters, 0 for fewer than 3 points
    """
    if len(points) < 3:
        return 0.0
    area, _ = _WGS84.polygon_area_perimeter(
        [p.longitude for p in points],
        [p.latitude for p in points],
    )
    return abs(float(area))


def is_valid_polygon(points: Sequence[Coordinate]) -> bool:
    """
    Check that the points form a simple, non-degenerate polygon.

    Args:
        points: Polygon vertices in degrees

    Returns:
        False for fewer than 3 points or self-intersecting rings
    """
    if len(points) < 3:
        return False
    polygon = Polygon([(p.longitude, p.latitude) for p in points])
    return bool(polygon.is_valid and polygon.area > 0)


def is_counter_clockwise(points: Sequence[Coordinate]) -> bool:
    """
    Winding order of the ring in lon/lat space.

    Args:
        points: Polygon vertices in degrees (at least 3)

    Returns:
        True if the vertices run counter-clockwise
    """
    if len(points) < 3:
        return False
    return bool(LinearRing([(p.longitude, p.latitude) for p in points]).is_ccw)


def great_circle_distance_m(a: Coordinate, b: Coordinate) -> float:
    """
    Haversine distance on the same sphere used for polygon generation.

    Args:
        a: First point in degrees
        b: Second point in degrees

    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = np.radians([a.latitude, a.longitude, b.latitude, b.longitude])
    h = (
        np.sin((lat2 - lat1) / 2) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2
    )
    return float(2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(h)))


def format_hectares(area_sq_m: float) -> str:
    """Format an area in square meters as hectares, e.g. ``"314.16 ha"``."""
    return f"{area_sq_m / 10_000:.2f} ha"
