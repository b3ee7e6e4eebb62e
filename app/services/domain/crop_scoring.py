"""
Domain service: heuristic crop recommendation.

Every catalog crop starts at a neutral score and receives additive
adjustments for water availability, crop rotation, temperature fit and
input cost. The best five are returned.
"""
from dataclasses import dataclass
from typing import Optional, Sequence
import logging

from app.domain.models import (
    CropHints,
    CropHistoryEntry,
    CropRecommendation,
)
from app.utils.rounding import round_half_up

logger = logging.getLogger(__name__)

BASE_SCORE = 50
ROTATION_PENALTY = 15
TEMPERATURE_ADJUSTMENT = 10
MAX_RECOMMENDATIONS = 5
DEFAULT_WATER_AVAILABILITY = "medium"
DEFAULT_MAX_COST_INDEX = 3


@dataclass(frozen=True)
class CropProfile:
    """Static agronomic profile of a catalog crop."""
    crop: str
    key: str
    base_kc: float
    water_demand: str
    cost_index: int
    temp_range: tuple[float, float]


CROP_CATALOG: tuple[CropProfile, ...] = (
    CropProfile("Corn", "corn", 1.1, "high", 3, (15, 30)),
    CropProfile("Wheat", "wheat", 1.0, "medium", 2, (5, 25)),
    CropProfile("Rice", "rice", 1.05, "high", 3, (18, 35)),
    CropProfile("Soybean", "soybean", 1.05, "medium", 2, (10, 30)),
    CropProfile("Barley", "barley", 0.95, "low", 1, (3, 22)),
    CropProfile("Sorghum", "sorghum", 0.9, "low", 1, (15, 35)),
)


def last_grown_crop(history: Sequence[CropHistoryEntry]) -> Optional[str]:
    """
    Crop of the most recent season in the history.

    Entries without a year count as year 0; on ties the first entry wins.

    Args:
        history: Past crops

    Returns:
        Lower-cased crop name, or None for an empty history
    """
    if not history:
        return None
    latest_year = max(entry.year or 0 for entry in history)
    for entry in history:
        if (entry.year or 0) == latest_year:
            return entry.crop.strip().lower()
    return None


def water_adjustment(water_availability: str, water_demand: str) -> int:
    """Score adjustment for how well a crop's water demand fits supply."""
    if water_availability == "low":
        if water_demand == "low":
            return 20
        if water_demand == "high":
            return -20
    elif water_availability == "medium":
        if water_demand == "medium":
            return 10
    elif water_availability == "high":
        if water_demand != "high":
            return -5
    return 0


def score_crops(
    water_availability: Optional[str] = None,
    crop_history: Sequence[CropHistoryEntry] = (),
    max_cost_index: Optional[int] = None,
    avg_temp: Optional[float] = None,
    catalog: Sequence[CropProfile] = CROP_CATALOG,
) -> list[CropRecommendation]:
    """
    Score and rank catalog crops for a farm.

    Args:
        water_availability: Seasonal irrigation capacity (low/medium/high)
        crop_history: Crops grown in past seasons
        max_cost_index: Highest acceptable cost index; dearer crops are dropped
        avg_temp: Average temperature in degrees Celsius, if known
        catalog: Crops to choose from

    Returns:
        Up to five recommendations sorted by descending score; ties keep
        catalog order
    """
    water = water_availability or DEFAULT_WATER_AVAILABILITY
    max_cost = DEFAULT_MAX_COST_INDEX if max_cost_index is None else max_cost_index
    last_crop = last_grown_crop(crop_history)

    recommendations = []
    for profile in catalog:
        if profile.cost_index > max_cost:
            continue

        score = BASE_SCORE
        score += water_adjustment(water, profile.water_demand)

        if last_crop and profile.key == last_crop:
            score -= ROTATION_PENALTY

        if avg_temp is not None:
            t_min, t_max = profile.temp_range
            if t_min <= avg_temp <= t_max:
                score += TEMPERATURE_ADJUSTMENT
            else:
                score -= TEMPERATURE_ADJUSTMENT

        score += (3 - profile.cost_index) * 3

        recommendations.append(CropRecommendation(
            crop=profile.crop,
            key=profile.key,
            score=max(0, min(100, round_half_up(score))),
            hints=CropHints(
                water=profile.water_demand,
                base_kc=profile.base_kc,
                cost_index=profile.cost_index,
            ),
        ))

    # sorted() is stable, so equal scores keep catalog order
    ranked = sorted(recommendations, key=lambda rec: rec.score, reverse=True)
    logger.debug(f"Scored {len(recommendations)} crops (water={water}, "
                 f"max_cost={max_cost}, last_crop={last_crop})")
    return ranked[:MAX_RECOMMENDATIONS]
