"""
Domain service: normalisation of raw provider payloads.

Each function turns one provider response into a domain record. Missing or
non-numeric values become None rather than errors; unit conversions and
rounding happen here so every stored record uses the same units:

- soil moisture in percent, temperatures in degrees Celsius
- organic matter in percent, particle fractions in percent
- NDVI rounded to three decimals
"""
import math
from datetime import datetime
from typing import Any, Iterable, List, Optional

from app.domain.models import (
    HourlySeries,
    NdviReading,
    SoilChemistryRecord,
    SoilFractions,
    SoilMoistureRecord,
    WeatherRecord,
)
from app.infrastructure.api_constants import (
    AgroMonitoringEndpoints,
    OpenMeteoEndpoints,
    SoilGridsEndpoints,
)

KELVIN_OFFSET = 273.15
SOC_TO_ORGANIC_MATTER = 1.724


def as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def fraction_to_percent(fraction: Optional[float]) -> Optional[float]:
    """Volumetric fraction (0-1) to percent, 2 decimals."""
    return round(fraction * 100, 2) if fraction is not None else None


def kelvin_to_celsius(kelvin: Optional[float]) -> Optional[float]:
    """Kelvin to Celsius, 1 decimal."""
    return round(kelvin - KELVIN_OFFSET, 1) if kelvin is not None else None


def soc_to_organic_matter(soc_g_kg: Optional[float]) -> Optional[float]:
    """Soil organic carbon in g/kg to organic matter percent, 2 decimals."""
    if soc_g_kg is None:
        return None
    return round(soc_g_kg / 10 * SOC_TO_ORGANIC_MATTER, 2)


def classify_texture(
    sand: Optional[float],
    silt: Optional[float],
    clay: Optional[float],
) -> Optional[str]:
    """
    Classify soil texture from particle fractions.

    Rules are checked in order and the first match wins. If any fraction is
    missing or not finite no class is assigned.

    Args:
        sand: Sand percentage (0-100)
        silt: Silt percentage (0-100)
        clay: Clay percentage (0-100)

    Returns:
        Texture class name, or None
    """
    if any(as_number(v) is None for v in (sand, silt, clay)):
        return None

    if clay >= 40:
        return "clay"
    if sand >= 70:
        return "sand"
    if silt >= 80:
        return "silt"
    if 43 <= sand <= 85 and 7 <= clay <= 20:
        return "sandy loam"
    if 20 <= clay <= 35 and sand <= 45:
        return "clay loam"
    return "loam"


def normalize_soil_sensor(payload: Any, fetched_at: datetime) -> SoilMoistureRecord:
    """
    Build a soil moisture record from an AgroMonitoring soil payload.

    Args:
        payload: ``{moisture: m3/m3, t0: K, t10: K}``
        fetched_at: Time of the fetch

    Returns:
        SoilMoistureRecord without NDVI
    """
    data = payload if isinstance(payload, dict) else {}
    return SoilMoistureRecord(
        moisture_percent=fraction_to_percent(as_number(data.get("moisture"))),
        surface_temp_c=kelvin_to_celsius(as_number(data.get("t0"))),
        fetched_at=fetched_at,
        provider=AgroMonitoringEndpoints.PROVIDER,
    )


def normalize_ndvi_history(payload: Any) -> Optional[NdviReading]:
    """
    Pick the most recent reading from an NDVI history series.

    Entries without a numeric ``dt`` or ``data.mean`` are ignored. An empty
    or malformed series yields None.

    Args:
        payload: List of ``{dt, data: {mean}}`` entries

    Returns:
        Latest NdviReading, or None
    """
    if not isinstance(payload, list):
        return None

    readings = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        data = entry.get("data")
        timestamp = as_number(entry.get("dt"))
        mean = as_number(data.get("mean")) if isinstance(data, dict) else None
        if timestamp is None or mean is None:
            continue
        readings.append(NdviReading(date=int(timestamp), value=round(mean, 3)))

    if not readings:
        return None
    return max(readings, key=lambda reading: reading.date)


def _layer_mean(layers: Iterable[Any], name: str) -> Optional[float]:
    """Mean of the first depth of the named SoilGrids layer."""
    for layer in layers:
        if not isinstance(layer, dict) or layer.get("name") != name:
            continue
        depths = layer.get("depths")
        if not isinstance(depths, list) or not depths or not isinstance(depths[0], dict):
            return None
        values = depths[0].get("values")
        return as_number(values.get("mean")) if isinstance(values, dict) else None
    return None


def normalize_soil_properties(payload: Any, fetched_at: datetime) -> SoilChemistryRecord:
    """
    Build a soil chemistry record from a SoilGrids properties payload.

    Args:
        payload: ``{properties: {layers: [{name, depths: [{values: {mean}}]}]}}``
        fetched_at: Time of the fetch

    Returns:
        SoilChemistryRecord with texture derived from the fractions
    """
    properties = payload.get("properties") if isinstance(payload, dict) else None
    layers = properties.get("layers") if isinstance(properties, dict) else None
    if not isinstance(layers, list):
        layers = []

    ph = _layer_mean(layers, SoilGridsEndpoints.PH)
    soc = _layer_mean(layers, SoilGridsEndpoints.SOC)
    sand = _layer_mean(layers, SoilGridsEndpoints.SAND)
    silt = _layer_mean(layers, SoilGridsEndpoints.SILT)
    clay = _layer_mean(layers, SoilGridsEndpoints.CLAY)

    return SoilChemistryRecord(
        ph=round(ph, 2) if ph is not None else None,
        organic_matter=soc_to_organic_matter(soc),
        texture=classify_texture(sand, silt, clay),
        fractions=SoilFractions(
            sand=round(sand, 1) if sand is not None else None,
            silt=round(silt, 1) if silt is not None else None,
            clay=round(clay, 1) if clay is not None else None,
        ),
        fetched_at=fetched_at,
        provider=SoilGridsEndpoints.PROVIDER,
    )


def _number_series(values: Any) -> List[Optional[float]]:
    if not isinstance(values, list):
        return []
    return [as_number(value) for value in values]


def _time_series(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [str(value) for value in values]


def normalize_weather(payload: Any, fetched_at: datetime) -> WeatherRecord:
    """
    Build a weather record from an Open-Meteo forecast payload.

    The hourly series are kept one value per hour; no aggregation happens
    here.

    Args:
        payload: ``{hourly: {time, temperature_2m, precipitation}}``
        fetched_at: Time of the fetch

    Returns:
        WeatherRecord
    """
    hourly = payload.get("hourly") if isinstance(payload, dict) else None
    if not isinstance(hourly, dict):
        hourly = {}
    return WeatherRecord(
        hourly=HourlySeries(
            time=_time_series(hourly.get("time")),
            temperature_2m=_number_series(hourly.get("temperature_2m")),
            precipitation=_number_series(hourly.get("precipitation")),
        ),
        fetched_at=fetched_at,
        provider=OpenMeteoEndpoints.PROVIDER,
    )
