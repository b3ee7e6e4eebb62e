"""
Application service: environmental data aggregation for a farm.
"""
import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from app.config import Settings
from app.domain.exceptions import (
    AllSourcesFailed,
    FarmNotFound,
    InvalidInput,
    PersistenceFailure,
    SourceUnavailable,
)
from app.domain.models import (
    Coordinate,
    EnvironmentalSnapshot,
    Location,
    NdviReading,
    SoilMoistureRecord,
    SourceStatus,
)
from app.infrastructure.api_constants import AgroMonitoringEndpoints
from app.infrastructure.document_store import DocumentStore
from app.infrastructure.external_api_client import (
    AgroMonitoringClient,
    OpenMeteoClient,
    SoilGridsClient,
)
from app.services.domain.normalization import (
    normalize_ndvi_history,
    normalize_soil_properties,
    normalize_soil_sensor,
    normalize_weather,
)

logger = logging.getLogger(__name__)

# Source names double as the farm document keys each source owns
SOIL_SENSOR = "soilMoisture"
VEGETATION = "vegetation"
SOIL_CHEMISTRY = "soilChemistry"
WEATHER = "weather"


@dataclass(frozen=True)
class PipelineConfig:
    """Configuration injected into the aggregation pipeline."""

    farm_collection: str = "farms"
    source_timeout_seconds: float = 10.0
    ndvi_window_days: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineConfig":
        return cls(
            farm_collection=settings.farm_collection,
            source_timeout_seconds=settings.source_timeout_seconds,
            ndvi_window_days=settings.ndvi_window_days,
        )


@dataclass
class SourceOutcome:
    """Settled result of one source fetch."""
    source: str
    value: Any = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped

    def status(self) -> SourceStatus:
        if self.skipped:
            return SourceStatus(status="skipped", detail=self.error)
        if self.error is not None:
            return SourceStatus(status="unavailable", detail=self.error)
        return SourceStatus(status="ok")


def validate_farm_id(farm_id: Optional[str]) -> str:
    """Return the stripped farm id, or raise InvalidInput when blank."""
    if not isinstance(farm_id, str) or not farm_id.strip():
        raise InvalidInput("farmId is required")
    return farm_id.strip()


def validate_coordinate(coords: Coordinate) -> Coordinate:
    """Raise InvalidInput unless the coordinate is finite and in range."""
    lat, lon = coords.latitude, coords.longitude
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in (lat, lon)):
        raise InvalidInput("latitude and longitude must be finite numbers")
    if not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise InvalidInput(f"Coordinate out of range: ({lat}, {lon})")
    return coords


class EnvironmentService:
    """
    Application service aggregating environmental data per farm.

    Fetches the soil sensor, vegetation index, soil chemistry and weather
    sources concurrently. A failing source only nulls its own fields; the
    request fails only when every attempted source failed. Results are
    merge-upserted into the farm document, one top-level key per source.
    """

    def __init__(
        self,
        agro_client: AgroMonitoringClient,
        soilgrids_client: SoilGridsClient,
        weather_client: OpenMeteoClient,
        store: DocumentStore,
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Initialize the service with dependencies.

        Args:
            agro_client: Soil sensor and NDVI provider
            soilgrids_client: Soil chemistry provider
            weather_client: Weather provider
            store: Farm document store
            config: Pipeline configuration
            clock: Source of the current UTC time
        """
        self.agro_client = agro_client
        self.soilgrids_client = soilgrids_client
        self.weather_client = weather_client
        self.store = store
        self.config = config or PipelineConfig()
        self.clock = clock

    async def aggregate(
        self,
        farm_id: str,
        coords: Coordinate,
        store_result: bool = True,
        ndvi_polygon_id: Optional[str] = None,
    ) -> EnvironmentalSnapshot:
        """
        Fetch, normalise and optionally persist environment data for a farm.

        Args:
            farm_id: Farm identifier (non-empty)
            coords: Farm location
            store_result: Whether to merge the result into the farm document
            ndvi_polygon_id: Provider polygon id; NDVI is skipped without it

        Returns:
            EnvironmentalSnapshot with unavailable sources set to None

        Raises:
            InvalidInput: If the farm id or coordinates are invalid
            AllSourcesFailed: If every attempted source failed
            PersistenceFailure: If storing failed; carries the snapshot
        """
        farm_id = validate_farm_id(farm_id)
        coords = validate_coordinate(coords)
        fetched_at = self.clock()
        lat, lon = coords.latitude, coords.longitude

        tasks = [
            self._settle(
                SOIL_SENSOR,
                lambda: self._fetch_soil_sensor(lat, lon, fetched_at),
            ),
            self._settle(
                SOIL_CHEMISTRY,
                lambda: self._fetch_soil_chemistry(lat, lon, fetched_at),
            ),
            self._settle(
                WEATHER,
                lambda: self._fetch_weather(lat, lon, fetched_at),
            ),
        ]
        if ndvi_polygon_id:
            tasks.append(self._settle(
                VEGETATION,
                lambda: self._fetch_vegetation(ndvi_polygon_id, fetched_at),
            ))
        settled = await asyncio.gather(*tasks)

        outcomes: Dict[str, SourceOutcome] = {outcome.source: outcome for outcome in settled}
        if VEGETATION not in outcomes:
            outcomes[VEGETATION] = SourceOutcome(
                VEGETATION, error="no polygon id supplied", skipped=True
            )

        failures = {
            name: outcome.error
            for name, outcome in outcomes.items()
            if not outcome.ok and not outcome.skipped
        }
        attempted = [outcome for outcome in outcomes.values() if not outcome.skipped]
        if len(failures) == len(attempted):
            logger.error(f"All sources failed for farm {farm_id}: {failures}")
            raise AllSourcesFailed(failures)

        snapshot = self._build_snapshot(farm_id, coords, fetched_at, outcomes)

        if store_result:
            try:
                await self.store.merge_upsert(
                    self.config.farm_collection,
                    farm_id,
                    self._document_fields(snapshot, outcomes),
                )
            except PersistenceFailure as e:
                logger.exception(f"Failed to store environment data for farm {farm_id}")
                raise PersistenceFailure(e.message, result=snapshot) from e
            snapshot.stored = True

        logger.info(f"Aggregated environment for farm {farm_id}: "
                    f"{len(attempted) - len(failures)}/{len(attempted)} sources ok")
        return snapshot

    async def get_farm_document(self, farm_id: str) -> Dict[str, Any]:
        """
        Read the stored farm document.

        Raises:
            InvalidInput: If the farm id is blank
            FarmNotFound: If nothing is stored for the farm
        """
        farm_id = validate_farm_id(farm_id)
        document = await self.store.get(self.config.farm_collection, farm_id)
        if document is None:
            raise FarmNotFound(farm_id)
        return document

    async def _settle(
        self,
        source: str,
        fetch: Callable[[], Awaitable[Any]],
    ) -> SourceOutcome:
        """Run one fetch under the per-source timeout, capturing failure."""
        try:
            value = await asyncio.wait_for(fetch(), timeout=self.config.source_timeout_seconds)
        except SourceUnavailable as e:
            logger.warning(f"Source {source} unavailable: {e.message}")
            return SourceOutcome(source, error=e.message)
        except asyncio.TimeoutError:
            message = f"timed out after {self.config.source_timeout_seconds}s"
            logger.warning(f"Source {source} {message}")
            return SourceOutcome(source, error=message)
        except Exception as e:
            logger.exception(f"Source {source} failed unexpectedly")
            return SourceOutcome(source, error=f"unexpected error: {e}")
        return SourceOutcome(source, value=value)

    async def _fetch_soil_sensor(self, lat: float, lon: float, fetched_at: datetime):
        payload = await self.agro_client.get_soil(lat, lon)
        return normalize_soil_sensor(payload, fetched_at)

    async def _fetch_vegetation(self, polygon_id: str, fetched_at: datetime):
        end = int(fetched_at.timestamp())
        start = int((fetched_at - timedelta(days=self.config.ndvi_window_days)).timestamp())
        payload = await self.agro_client.get_ndvi_history(polygon_id, start, end)
        return normalize_ndvi_history(payload)

    async def _fetch_soil_chemistry(self, lat: float, lon: float, fetched_at: datetime):
        payload = await self.soilgrids_client.get_properties(lat, lon)
        return normalize_soil_properties(payload, fetched_at)

    async def _fetch_weather(self, lat: float, lon: float, fetched_at: datetime):
        payload = await self.weather_client.get_forecast(lat, lon)
        return normalize_weather(payload, fetched_at)

    def _build_snapshot(
        self,
        farm_id: str,
        coords: Coordinate,
        fetched_at: datetime,
        outcomes: Dict[str, SourceOutcome],
    ) -> EnvironmentalSnapshot:
        """Merge the settled sources into one snapshot."""
        sensor = outcomes[SOIL_SENSOR]
        vegetation = outcomes[VEGETATION]
        ndvi: Optional[NdviReading] = vegetation.value if vegetation.ok else None

        soil_moisture: Optional[SoilMoistureRecord] = None
        if sensor.ok:
            soil_moisture = sensor.value.model_copy(update={"ndvi": ndvi})
        elif ndvi is not None:
            soil_moisture = SoilMoistureRecord(
                ndvi=ndvi,
                fetched_at=fetched_at,
                provider=AgroMonitoringEndpoints.PROVIDER,
            )

        chemistry = outcomes[SOIL_CHEMISTRY]
        weather = outcomes[WEATHER]
        return EnvironmentalSnapshot(
            farm_id=farm_id,
            location=Location(latitude=coords.latitude, longitude=coords.longitude),
            fetched_at=fetched_at,
            soil_moisture=soil_moisture,
            soil_chemistry=chemistry.value if chemistry.ok else None,
            weather=weather.value if weather.ok else None,
            sources={name: outcome.status() for name, outcome in outcomes.items()},
        )

    def _document_fields(
        self,
        snapshot: EnvironmentalSnapshot,
        outcomes: Dict[str, SourceOutcome],
    ) -> Dict[str, Any]:
        """
        Fields to merge into the farm document.

        Only sources that succeeded contribute, each under its own key, so a
        failed source never clears data stored by an earlier request.
        """
        fetched_at = snapshot.model_dump(mode="json", include={"fetched_at"})["fetched_at"]
        fields: Dict[str, Any] = {
            "farmId": snapshot.farm_id,
            "location": snapshot.location.model_dump(by_alias=True),
            "updatedAt": fetched_at,
        }
        if outcomes[SOIL_SENSOR].ok:
            fields[SOIL_SENSOR] = outcomes[SOIL_SENSOR].value.model_dump(
                mode="json", by_alias=True, exclude={"ndvi"}
            )
        if outcomes[VEGETATION].ok:
            ndvi = outcomes[VEGETATION].value
            fields[VEGETATION] = {
                "ndvi": ndvi.model_dump(mode="json", by_alias=True) if ndvi else None,
                "fetchedAt": fetched_at,
                "provider": AgroMonitoringEndpoints.PROVIDER,
            }
        for source in (SOIL_CHEMISTRY, WEATHER):
            if outcomes[source].ok:
                fields[source] = outcomes[source].value.model_dump(mode="json", by_alias=True)
        return fields
