"""
Domain service: irrigation heuristics.

Two estimates are offered:
- a watering interval from crop, soil moisture and average temperature
- an evapotranspiration based plan (ET0, Kc, readily available water)
"""
from datetime import date, timedelta
from typing import Optional, Sequence

import numpy as np

from app.domain.models import IrrigationSchedule, WaterPlan
from app.utils.rounding import round_half_up

DEFAULT_AVG_TEMP = 20.0
DEFAULT_MOISTURE_ADJUSTMENT = 2
SCHEDULE_NOTES = "Heuristic schedule. Calibrate with local evapotranspiration data."

BASE_INTERVAL_DAYS = {"rice": 8, "corn": 6, "maize": 6}
DEFAULT_BASE_INTERVAL_DAYS = 4

CROP_COEFFICIENTS = {
    "corn": 1.1,
    "maize": 1.1,
    "wheat": 1.0,
    "rice": 1.05,
    "soybean": 1.05,
    "barley": 0.95,
}
DEFAULT_CROP_COEFFICIENT = 0.95

ROOTING_DEPTH_M = {
    "corn": 0.6,
    "maize": 0.6,
    "wheat": 0.5,
    "rice": 0.4,
    "soybean": 0.5,
    "barley": 0.5,
}
DEFAULT_ROOTING_DEPTH_M = 0.5

DEFAULT_ET0_MM_DAY = 4.0
RECENT_RAIN_HOURS = 72
EFFECTIVE_RAIN_FACTOR = 0.8
DEPLETION_FRACTION = 0.5


def _finite(values: Sequence[Optional[float]]) -> np.ndarray:
    """Finite samples of a series; None and NaN are dropped."""
    array = np.array([v for v in values if v is not None], dtype=float)
    return array[np.isfinite(array)]


def mean_temperature(hourly_temps: Sequence[Optional[float]]) -> Optional[float]:
    """Mean of the finite hourly temperatures, or None without samples."""
    temps = _finite(hourly_temps)
    return float(temps.mean()) if temps.size else None


def compute_schedule(
    crop: str,
    soil_moisture_percent: Optional[float],
    hourly_temps: Sequence[Optional[float]],
) -> IrrigationSchedule:
    """
    Days between irrigations for a crop.

    ``days = max(1, base + tempAdj - moistureAdj)`` where the base interval
    depends on the crop, every 5 degrees above 18 adds a day and every 20
    percent of soil moisture removes one.

    Args:
        crop: Crop name (case-insensitive)
        soil_moisture_percent: Current soil moisture, if known
        hourly_temps: Hourly temperatures in degrees Celsius

    Returns:
        IrrigationSchedule with the average temperature to one decimal
    """
    avg_temp = mean_temperature(hourly_temps)
    if avg_temp is None:
        avg_temp = DEFAULT_AVG_TEMP

    base = BASE_INTERVAL_DAYS.get(crop.strip().lower(), DEFAULT_BASE_INTERVAL_DAYS)
    temp_adj = max(0, round_half_up((avg_temp - 18) / 5))
    if soil_moisture_percent is not None:
        moisture_adj = round_half_up(soil_moisture_percent / 20)
    else:
        moisture_adj = DEFAULT_MOISTURE_ADJUSTMENT

    return IrrigationSchedule(
        avg_temp=round(avg_temp, 1),
        days_per_irrigation=max(1, base + temp_adj - moisture_adj),
        notes=SCHEDULE_NOTES,
    )


def total_available_water(texture: Optional[str]) -> float:
    """Total available water in mm per meter of soil for a texture class."""
    name = (texture or "").lower()
    if "sand" in name:
        return 80.0
    if "clay" in name:
        return 140.0
    return 120.0


def compute_water_plan(
    crop: str,
    hourly_temps: Sequence[Optional[float]],
    hourly_precipitation: Sequence[Optional[float]],
    texture: Optional[str] = None,
    today: Optional[date] = None,
) -> WaterPlan:
    """
    Evapotranspiration based irrigation plan.

    ET0 follows a linear rule of thumb on temperature, scaled by the crop
    coefficient. The readily available water (RAW) is half the total
    available water over the rooting depth; the next irrigation falls when
    crop evapotranspiration has used it up. Rain over the last three days
    offsets the weekly need.

    Args:
        crop: Crop name (case-insensitive)
        hourly_temps: Hourly temperatures in degrees Celsius
        hourly_precipitation: Hourly precipitation in mm
        texture: Soil texture class, if known
        today: Reference date for the next irrigation (defaults to today)

    Returns:
        WaterPlan
    """
    key = crop.strip().lower()
    avg_temp = mean_temperature(hourly_temps)
    recent_rain = float(_finite(list(hourly_precipitation)[-RECENT_RAIN_HOURS:]).sum())

    if avg_temp is None:
        et0 = DEFAULT_ET0_MM_DAY
    else:
        et0 = float(np.clip(0.1 * (avg_temp + 10), 2, 8))

    kc = CROP_COEFFICIENTS.get(key, DEFAULT_CROP_COEFFICIENT)
    rooting_depth = ROOTING_DEPTH_M.get(key, DEFAULT_ROOTING_DEPTH_M)
    taw = total_available_water(texture)
    raw = DEPLETION_FRACTION * taw * rooting_depth
    etc = et0 * kc

    depth_per_event = round_half_up(float(np.clip(raw * 0.6, 10, 40)))
    effective_rain = max(0.0, recent_rain * EFFECTIVE_RAIN_FACTOR)
    weekly_need = max(0, round_half_up(etc * 7 - effective_rain))
    events_per_week = max(1, round_half_up(weekly_need / depth_per_event))
    days_to_depletion = max(1, round_half_up(raw / max(1.0, etc)))

    return WaterPlan(
        avg_temp=round(avg_temp, 1) if avg_temp is not None else None,
        recent_rain_mm=round(recent_rain, 1),
        et0_mm_day=round(et0, 2),
        kc=kc,
        etc_mm_day=round(etc, 2),
        rooting_depth_m=rooting_depth,
        taw_mm_per_m=taw,
        raw_mm=round(raw, 1),
        depth_per_event_mm=depth_per_event,
        weekly_need_mm=weekly_need,
        events_per_week=events_per_week,
        days_to_depletion=days_to_depletion,
        next_irrigation_date=(today or date.today()) + timedelta(days=days_to_depletion),
    )
