"""
Application service: crop, irrigation and yield advisories for a farm.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence

from app.domain.exceptions import PersistenceFailure
from app.domain.models import (
    CropHistoryEntry,
    CropRecommendationSet,
    IrrigationAdvice,
    Location,
    YieldHistory,
)
from app.infrastructure.document_store import DocumentStore
from app.services.application.environment_service import (
    SOIL_CHEMISTRY,
    SOIL_SENSOR,
    WEATHER,
    EnvironmentService,
    PipelineConfig,
    validate_farm_id,
)
from app.services.domain.crop_scoring import score_crops
from app.services.domain.irrigation import compute_schedule, compute_water_plan
from app.services.domain.normalization import as_number
from app.services.domain.yield_history import parse_yield_csv

logger = logging.getLogger(__name__)

CROP_RECOMMENDATIONS = "cropRecommendations"
YIELD_HISTORY = "yieldHistory"


def _nested(document: Dict[str, Any], *keys: str) -> Any:
    """Walk nested mappings, returning None on the first missing level."""
    value: Any = document
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


class AdvisoryService:
    """
    Application service for farm advisories.

    Runs the crop, irrigation and yield domain services and merges their
    results into the farm document under their own keys.
    """

    def __init__(
        self,
        store: DocumentStore,
        environment_service: EnvironmentService,
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.environment_service = environment_service
        self.config = config or PipelineConfig()
        self.clock = clock

    async def recommend_crops(
        self,
        farm_id: str,
        water_availability: Optional[str] = None,
        history: Sequence[CropHistoryEntry] = (),
        max_cost_index: Optional[int] = None,
        avg_temp: Optional[float] = None,
        location: Optional[Location] = None,
    ) -> CropRecommendationSet:
        """
        Rank catalog crops for a farm and store the result.

        Raises:
            InvalidInput: If the farm id is blank
            PersistenceFailure: If storing failed; carries the result
        """
        farm_id = validate_farm_id(farm_id)
        result = CropRecommendationSet(
            farm_id=farm_id,
            location=location,
            water_availability=water_availability,
            max_cost_index=max_cost_index,
            history=list(history),
            avg_temp=avg_temp,
            recommendations=score_crops(
                water_availability=water_availability,
                crop_history=history,
                max_cost_index=max_cost_index,
                avg_temp=avg_temp,
            ),
            generated_at=self.clock(),
        )
        await self._merge(farm_id, {
            "farmId": farm_id,
            CROP_RECOMMENDATIONS: result.model_dump(mode="json", by_alias=True, exclude={"farm_id"}),
        }, result)
        return result

    async def irrigation_for_farm(
        self,
        farm_id: str,
        crop: str,
        today: Optional[date] = None,
    ) -> IrrigationAdvice:
        """
        Irrigation advice from the environment data stored for a farm.

        Raises:
            InvalidInput: If the farm id is blank
            FarmNotFound: If nothing is stored for the farm
        """
        document = await self.environment_service.get_farm_document(farm_id)
        temps = _nested(document, WEATHER, "hourly", "temperature_2m") or []
        rain = _nested(document, WEATHER, "hourly", "precipitation") or []
        texture = _nested(document, SOIL_CHEMISTRY, "texture")
        return self.irrigation_from_inputs(
            crop=crop,
            soil_moisture_percent=as_number(_nested(document, SOIL_SENSOR, "moisturePercent")),
            hourly_temps=[as_number(t) for t in temps],
            hourly_precipitation=[as_number(r) for r in rain],
            texture=texture if isinstance(texture, str) else None,
            today=today,
        )

    def irrigation_from_inputs(
        self,
        crop: str,
        soil_moisture_percent: Optional[float],
        hourly_temps: Sequence[Optional[float]],
        hourly_precipitation: Sequence[Optional[float]] = (),
        texture: Optional[str] = None,
        today: Optional[date] = None,
    ) -> IrrigationAdvice:
        """Irrigation schedule and water plan from explicit inputs."""
        return IrrigationAdvice(
            crop=crop,
            soil_moisture_percent=soil_moisture_percent,
            texture=texture,
            schedule=compute_schedule(crop, soil_moisture_percent, hourly_temps),
            water_plan=compute_water_plan(
                crop,
                hourly_temps,
                hourly_precipitation,
                texture=texture,
                today=today or self.clock().date(),
            ),
        )

    async def import_yield_history(self, farm_id: str, csv_text: str) -> YieldHistory:
        """
        Parse a yield CSV and store it on the farm document.

        Raises:
            InvalidInput: If the farm id is blank or the CSV is unusable
            PersistenceFailure: If storing failed; carries the result
        """
        farm_id = validate_farm_id(farm_id)
        history = parse_yield_csv(csv_text, now=self.clock())
        await self._merge(farm_id, {
            "farmId": farm_id,
            YIELD_HISTORY: history.model_dump(mode="json", by_alias=True),
        }, history)
        logger.info(f"Stored {history.summary.entries} yield entries for farm {farm_id}")
        return history

    async def _merge(self, farm_id: str, fields: Dict[str, Any], result: Any) -> None:
        try:
            await self.store.merge_upsert(self.config.farm_collection, farm_id, fields)
        except PersistenceFailure as e:
            logger.exception(f"Failed to store advisory for farm {farm_id}")
            raise PersistenceFailure(e.message, result=result) from e
