# courier_dispatch/shared/services/geocoder.py
import httpx
import logging
from typing import Optional, Protocol

from courier_dispatch.config.settings import settings
from courier_dispatch.core.exceptions import GeocodingFailed
from courier_dispatch.shared.schemas.common import AddressFields, Coordinate

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    """Anything that can turn an address into a coordinate or raise GeocodingFailed"""

    async def geocode(self, fields: AddressFields) -> Coordinate:
        ...


class GoogleGeocoder:
    """
    Client for the Google Geocoding JSON API.

    One httpx.AsyncClient is kept per instance so its connection pool is
    reused across calls; `aclose()` releases it.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.base_url = base_url or settings.geocoder_url
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout
        self.transport = transport
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def geocode(self, fields: AddressFields) -> Coordinate:
        query = fields.one_line()
        params = {"address": query}
        if self.api_key:
            params["key"] = self.api_key

        try:
            response = await self.client.get(self.base_url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            logger.error(f"Geocoder timeout after {self.timeout}s for '{query}'")
            raise GeocodingFailed(query, "timeout")
        except httpx.HTTPStatusError as e:
            logger.error(f"Geocoder HTTP {e.response.status_code} for '{query}'")
            raise GeocodingFailed(query, f"HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Geocoder request failed for '{query}': {e}")
            raise GeocodingFailed(query, str(e) or type(e).__name__)

        if not isinstance(data, dict):
            logger.error(f"Geocoder returned a {type(data).__name__} body for '{query}'")
            raise GeocodingFailed(query, "malformed response")

        status = data.get("status")
        if status != "OK":
            logger.warning(f"Geocoder status {status} for '{query}': {data.get('error_message')}")
            raise GeocodingFailed(query, f"status {status}")

        location = self._first_location(data.get("results"))
        if location is None:
            logger.error(f"Geocoder response for '{query}' has no usable location")
            raise GeocodingFailed(query, "malformed response")
        if location.get("lat") is None or location.get("lng") is None:
            raise GeocodingFailed(query, "no coordinates in response")

        try:
            return Coordinate(lat=location["lat"], lng=location["lng"])
        except ValueError as e:
            raise GeocodingFailed(query, f"unusable coordinates: {e}")

    @staticmethod
    def _first_location(results) -> Optional[dict]:
        """results[0].geometry.location, or None when any level is not the expected shape"""
        if not isinstance(results, list) or not results:
            return None
        geometry = results[0].get("geometry") if isinstance(results[0], dict) else None
        location = geometry.get("location") if isinstance(geometry, dict) else None
        return location if isinstance(location, dict) else None


_geocoder: Optional[Geocoder] = None


def get_geocoder() -> Geocoder:
    """Geocoder dependency for FastAPI; tests override it with a fake"""
    global _geocoder
    if _geocoder is None:
        _geocoder = GoogleGeocoder()
    return _geocoder


async def close_geocoder() -> None:
    """Release the shared geocoder's HTTP client on shutdown"""
    global _geocoder
    if isinstance(_geocoder, GoogleGeocoder):
        await _geocoder.aclose()
    _geocoder = None
