"""
API endpoint constants and configuration.

This module contains all external API endpoint paths and related constants.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


# AgroMonitoring API Endpoints
class AgroMonitoringEndpoints:
    """AgroMonitoring endpoint paths (soil sensor and vegetation index)."""

    PROVIDER = "agromonitoring"

    SOIL = "/soil"
    NDVI_HISTORY = "/ndvi/history"


# SoilGrids API Endpoints
class SoilGridsEndpoints:
    """SoilGrids endpoint paths and query constants."""

    PROVIDER = "soilgrids"

    PROPERTIES_QUERY = "/properties/query"

    # Layer names as published by SoilGrids
    PH = "phh2o"
    SOC = "soc"
    SAND = "sand"
    SILT = "silt"
    CLAY = "clay"
    PROPERTIES = (PH, SOC, SAND, SILT, CLAY)

    DEPTH = "0-5cm"
    VALUE = "mean"

    @classmethod
    def properties_params(cls, lat: float, lon: float) -> list[tuple[str, str]]:
        """
        Build the query parameters for a point properties query.

        SoilGrids expects ``property`` to be repeated once per layer, so the
        parameters are returned as a list of pairs.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees

        Returns:
            List of (name, value) query parameter pairs
        """
        params = [("lat", str(lat)), ("lon", str(lon))]
        params.extend(("property", name) for name in cls.PROPERTIES)
        params.append(("depth", cls.DEPTH))
        params.append(("value", cls.VALUE))
        return params


# Open-Meteo API Endpoints
class OpenMeteoEndpoints:
    """Open-Meteo endpoint paths."""

    PROVIDER = "open-meteo"

    FORECAST = "/forecast"
    HOURLY_VARIABLES = "temperature_2m,precipitation"


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Timeouts (in seconds)
    DEFAULT_TIMEOUT = 30.0
