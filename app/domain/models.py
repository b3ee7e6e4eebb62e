"""
Domain models for farm environment data.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, document stores, etc.).
JSON field names are camelCase, Python attributes snake_case.
"""
from datetime import date, datetime
from typing import Dict, List, Literal, NamedTuple, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


SoilTexture = Literal["clay", "sand", "silt", "sandy loam", "clay loam", "loam"]
WaterAvailability = Literal["low", "medium", "high"]
SourceState = Literal["ok", "unavailable", "skipped"]


class Coordinate(NamedTuple):
    """Immutable latitude/longitude pair in degrees."""
    latitude: float
    longitude: float


class CamelModel(BaseModel):
    """Base model serialising attribute names as camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Location(CamelModel):
    """Validated coordinate as received from or returned to clients."""
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


class NdviReading(CamelModel):
    """Latest vegetation index reading."""
    date: int = Field(description="Acquisition time as unix seconds")
    value: float


class SoilMoistureRecord(CamelModel):
    """Soil sensor readings plus the latest vegetation index."""
    moisture_percent: Optional[float] = None
    surface_temp_c: Optional[float] = None
    ndvi: Optional[NdviReading] = None
    fetched_at: datetime
    provider: str


class SoilFractions(CamelModel):
    """Particle size fractions in percent."""
    sand: Optional[float] = None
    silt: Optional[float] = None
    clay: Optional[float] = None


class SoilChemistryRecord(CamelModel):
    """Topsoil chemistry and texture."""
    ph: Optional[float] = None
    organic_matter: Optional[float] = Field(
        default=None,
        description="Organic matter in percent"
    )
    texture: Optional[SoilTexture] = None
    fractions: SoilFractions = Field(default_factory=SoilFractions)
    fetched_at: datetime
    provider: str


class HourlySeries(BaseModel):
    """Hourly weather series, one value per hour, kept as delivered."""
    time: List[str] = Field(default_factory=list)
    temperature_2m: List[Optional[float]] = Field(default_factory=list)
    precipitation: List[Optional[float]] = Field(default_factory=list)


class WeatherRecord(CamelModel):
    """Hourly forecast for a farm."""
    hourly: HourlySeries = Field(default_factory=HourlySeries)
    fetched_at: datetime
    provider: str


class SourceStatus(CamelModel):
    """Outcome of one data source within an aggregate request."""
    status: SourceState
    detail: Optional[str] = None


class EnvironmentalSnapshot(CamelModel):
    """Denormalised environment record for one farm."""
    farm_id: str
    location: Location
    fetched_at: datetime
    soil_moisture: Optional[SoilMoistureRecord] = None
    soil_chemistry: Optional[SoilChemistryRecord] = None
    weather: Optional[WeatherRecord] = None
    sources: Dict[str, SourceStatus] = Field(default_factory=dict)
    stored: bool = False


class CropHistoryEntry(CamelModel):
    """A crop grown on the farm in a given year."""
    crop: str
    year: Optional[int] = None


class CropHints(CamelModel):
    """Agronomic hints attached to a recommendation."""
    water: str
    base_kc: float
    cost_index: int


class CropRecommendation(CamelModel):
    """Scored catalog crop."""
    crop: str
    key: str
    score: int = Field(ge=0, le=100)
    hints: CropHints


class IrrigationSchedule(CamelModel):
    """Simple watering interval heuristic."""
    avg_temp: float
    days_per_irrigation: int = Field(ge=1)
    notes: str


class WaterPlan(CamelModel):
    """Evapotranspiration based irrigation plan."""
    avg_temp: Optional[float] = None
    recent_rain_mm: float
    et0_mm_day: float
    kc: float
    etc_mm_day: float
    rooting_depth_m: float
    taw_mm_per_m: float
    raw_mm: float
    depth_per_event_mm: int
    weekly_need_mm: int
    events_per_week: int
    days_to_depletion: int
    next_irrigation_date: date


class YieldEntry(CamelModel):
    """One harvest record."""
    year: int
    yield_amount: float = Field(alias="yield")
    crop: Optional[str] = None


class YieldSummary(CamelModel):
    """Summary over the parsed yield records."""
    entries: int
    earliest_year: Optional[int] = None
    latest_year: Optional[int] = None
    updated_at: datetime


class YieldHistory(CamelModel):
    """Parsed yield records with their summary."""
    entries: List[YieldEntry] = Field(default_factory=list)
    summary: YieldSummary


class CropRecommendationSet(CamelModel):
    """Ranked recommendations together with the inputs that produced them."""
    farm_id: str
    location: Optional[Location] = None
    water_availability: Optional[WaterAvailability] = None
    max_cost_index: Optional[int] = None
    history: List[CropHistoryEntry] = Field(default_factory=list)
    avg_temp: Optional[float] = None
    recommendations: List[CropRecommendation] = Field(default_factory=list)
    generated_at: datetime


class IrrigationAdvice(CamelModel):
    """Irrigation schedule and water plan with the inputs used."""
    crop: str
    soil_moisture_percent: Optional[float] = None
    texture: Optional[str] = None
    schedule: IrrigationSchedule
    water_plan: WaterPlan
