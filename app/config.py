"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # External data providers
    agromonitoring_base_url: str = Field(
        default="https://api.agromonitoring.com/agro/1.0",
        description="Base URL for the AgroMonitoring soil and NDVI API"
    )
    agromonitoring_api_key: str = Field(
        default="",
        description="AgroMonitoring API key (sent as the appid parameter)"
    )
    soilgrids_base_url: str = Field(
        default="https://rest.isric.org/soilgrids/v2.0",
        description="Base URL for the SoilGrids soil properties API"
    )
    open_meteo_base_url: str = Field(
        default="https://api.open-meteo.com/v1",
        description="Base URL for the Open-Meteo forecast API"
    )
    source_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound on the time spent fetching a single source"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for API calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=1,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=4,
        description="Maximum wait time in seconds between retries"
    )

    # Aggregation and geometry defaults
    ndvi_window_days: int = Field(
        default=30,
        description="Trailing window searched for the latest NDVI reading"
    )
    polygon_radius_m: float = Field(
        default=1000.0,
        description="Default radius of the display polygon around a farm"
    )
    polygon_num_points: int = Field(
        default=48,
        description="Default number of vertices of the display polygon"
    )

    # Document store
    document_store_backend: str = Field(
        default="memory",
        description="Document store backend: 'memory' or 'firestore'"
    )
    firebase_credentials_path: str = Field(
        default="",
        description="Service account JSON used by the Firestore backend"
    )
    farm_collection: str = Field(
        default="farms",
        description="Collection holding one document per farm"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Farm Environment Service",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
