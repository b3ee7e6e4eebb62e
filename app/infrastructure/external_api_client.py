"""
Infrastructure layer: External data provider clients with retry logic.
"""
import logging
from typing import Any, Dict, List, Optional
import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from app.config import settings
from app.domain.exceptions import SourceUnavailable
from app.infrastructure.api_constants import (
    AgroMonitoringEndpoints,
    APIConstants,
    OpenMeteoEndpoints,
    SoilGridsEndpoints,
)

logger = logging.getLogger(__name__)


class ExternalAPIClient:
    """
    Base client for an external data provider.
    Implements retry logic with exponential backoff.

    Every failure is reported as ``SourceUnavailable`` tagged with the
    provider name so callers can degrade per source.
    """

    provider: str = "external"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = APIConstants.DEFAULT_TIMEOUT,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Provider base URL, including any version prefix
            api_key: Optional API key
            timeout: HTTP timeout in seconds
        """
        self.base_url = base_url
        self.api_key = api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"accept": APIConstants.CONTENT_TYPE_JSON},
            timeout=timeout,
        )

    async def __aenter__(self) -> "ExternalAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type(httpx.HTTPStatusError),
        reraise=True,
    )
    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Any:
        """
        Make an HTTP request with retry logic.

        Server errors (5xx) are retried; client errors, transport errors
        and undecodable bodies fail immediately.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            Decoded JSON body

        Raises:
            SourceUnavailable: On client errors, transport errors or bad JSON
            httpx.HTTPStatusError: On server errors, once retries are exhausted
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            # Retry on server errors (5xx)
            if e.response.status_code >= 500:
                logger.debug(f"{self.provider} returned {e.response.status_code}, retrying")
                raise
            # Don't retry on client errors (4xx)
            raise SourceUnavailable(
                self.provider,
                f"API request failed: {e.response.status_code} - {e.response.text}",
                upstream_status=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise SourceUnavailable(self.provider, f"API request error: {str(e)}")
        except ValueError as e:
            raise SourceUnavailable(self.provider, f"Invalid JSON response: {str(e)}")

    async def _get(self, endpoint: str, params: Any = None) -> Any:
        """
        GET an endpoint, converting exhausted retries into SourceUnavailable.

        Args:
            endpoint: API endpoint path
            params: Query parameters (mapping or list of pairs)

        Returns:
            Decoded JSON body
        """
        try:
            return await self._make_request("GET", endpoint, params=params)
        except httpx.HTTPStatusError as e:
            raise SourceUnavailable(
                self.provider,
                f"API request failed after retries: {e.response.status_code}",
                upstream_status=e.response.status_code,
            ) from e


class AgroMonitoringClient(ExternalAPIClient):
    """Client for AgroMonitoring soil sensor and NDVI history data."""

    provider = AgroMonitoringEndpoints.PROVIDER

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = APIConstants.DEFAULT_TIMEOUT,
    ):
        super().__init__(
            base_url=base_url or settings.agromonitoring_base_url,
            api_key=settings.agromonitoring_api_key if api_key is None else api_key,
            timeout=timeout,
        )

    async def get_soil(self, lat: float, lon: float) -> Dict[str, Any]:
        """
        Fetch current soil moisture and temperature for a point.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees

        Returns:
            Raw payload with ``moisture`` (m3/m3), ``t0`` and ``t10`` (Kelvin)
        """
        return await self._get(
            AgroMonitoringEndpoints.SOIL,
            params={"lat": lat, "lon": lon, "appid": self.api_key},
        )

    async def get_ndvi_history(
        self,
        polygon_id: str,
        start: int,
        end: int,
    ) -> Any:
        """
        Fetch the NDVI history of a registered polygon.

        Args:
            polygon_id: AgroMonitoring polygon identifier
            start: Window start as unix seconds
            end: Window end as unix seconds

        Returns:
            Raw payload, normally a list of ``{dt, data: {mean}}`` entries
        """
        return await self._get(
            AgroMonitoringEndpoints.NDVI_HISTORY,
            params={
                "polyid": polygon_id,
                "start": start,
                "end": end,
                "appid": self.api_key,
            },
        )


class SoilGridsClient(ExternalAPIClient):
    """Client for SoilGrids topsoil properties."""

    provider = SoilGridsEndpoints.PROVIDER

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = APIConstants.DEFAULT_TIMEOUT,
    ):
        super().__init__(
            base_url=base_url or settings.soilgrids_base_url,
            timeout=timeout,
        )

    async def get_properties(self, lat: float, lon: float) -> Dict[str, Any]:
        """
        Fetch pH, organic carbon and particle fractions at 0-5cm.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees

        Returns:
            Raw payload with ``properties.layers[].depths[].values.mean``
        """
        return await self._get(
            SoilGridsEndpoints.PROPERTIES_QUERY,
            params=SoilGridsEndpoints.properties_params(lat, lon),
        )


class OpenMeteoClient(ExternalAPIClient):
    """Client for the Open-Meteo hourly forecast."""

    provider = OpenMeteoEndpoints.PROVIDER

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = APIConstants.DEFAULT_TIMEOUT,
    ):
        super().__init__(
            base_url=base_url or settings.open_meteo_base_url,
            timeout=timeout,
        )

    async def get_forecast(self, lat: float, lon: float) -> Dict[str, Any]:
        """
        Fetch the hourly temperature and precipitation forecast.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees

        Returns:
            Raw payload with ``hourly.time``, ``hourly.temperature_2m`` and
            ``hourly.precipitation``
        """
        return await self._get(
            OpenMeteoEndpoints.FORECAST,
            params={
                "latitude": lat,
                "longitude": lon,
                "hourly": OpenMeteoEndpoints.HOURLY_VARIABLES,
            },
        )


# Singleton instances
_agromonitoring_client: Optional[AgroMonitoringClient] = None
_soilgrids_client: Optional[SoilGridsClient] = None
_open_meteo_client: Optional[OpenMeteoClient] = None


def get_agromonitoring_client() -> AgroMonitoringClient:
    """Get or create the singleton AgroMonitoring client."""
    global _agromonitoring_client
    if _agromonitoring_client is None:
        _agromonitoring_client = AgroMonitoringClient()
    return _agromonitoring_client


def get_soilgrids_client() -> SoilGridsClient:
    """Get or create the singleton SoilGrids client."""
    global _soilgrids_client
    if _soilgrids_client is None:
        _soilgrids_client = SoilGridsClient()
    return _soilgrids_client


def get_open_meteo_client() -> OpenMeteoClient:
    """Get or create the singleton Open-Meteo client."""
    global _open_meteo_client
    if _open_meteo_client is None:
        _open_meteo_client = OpenMeteoClient()
    return _open_meteo_client


async def close_api_clients() -> None:
    """Close every client created so far."""
    global _agromonitoring_client, _soilgrids_client, _open_meteo_client
    clients: List[Optional[ExternalAPIClient]] = [
        _agromonitoring_client,
        _soilgrids_client,
        _open_meteo_client,
    ]
    for client in clients:
        if client is not None:
            await client.close()
    _agromonitoring_client = None
    _soilgrids_client = None
    _open_meteo_client = None
