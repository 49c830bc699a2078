import logging
from typing import Dict, Optional

import httpx

from roadbook.errors import UpstreamUnavailableError
from roadbook.models.geo import Coordinate
from roadbook.services.geocoding.api_counter import APICounter
from roadbook.services.geocoding.cache import (
    GeocodeCache,
    NullGeocodeCache,
    forward_key,
    reverse_key,
)
from roadbook.services.geocoding.geocoding_service import (
    GeocodingGateway,
    format_coordinate_fallback,
)

logger = logging.getLogger(__name__)


class NominatimGeocodingService(GeocodingGateway):
    """OpenStreetMap Nominatim implementation"""

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "Roadbook/1.0",
        language: str = "en",
        timeout: float = 10.0,
        counter: Optional[APICounter] = None,
        cache: Optional[GeocodeCache] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not user_agent:
            raise ValueError("Nominatim requires an identifying User-Agent")

        self.reverse_url = f"{base_url.rstrip('/')}/reverse"
        self.search_url = f"{base_url.rstrip('/')}/search"
        self.user_agent = user_agent
        self.language = language
        self.timeout = timeout
        self.counter = counter if counter is not None else APICounter(max_calls_per_day=5000)
        # An empty TTL cache is falsy (it has __len__), so test against None
        self.cache = cache if cache is not None else NullGeocodeCache()
        # Injected clients are owned by the caller (tests pass a MockTransport one)
        self._client = client

    @classmethod
    def from_settings(cls, settings, cache: Optional[GeocodeCache] = None):
        return cls(
            base_url=settings.nominatim_base_url,
            user_agent=settings.geocoding_user_agent,
            language=settings.geocoding_language,
            timeout=settings.geocoding_timeout_s,
            counter=APICounter(settings.max_geocode_calls_per_day),
            cache=cache,
        )

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept-Language": self.language}

    async def _get(self, url: str, params: Dict) -> httpx.Response:
        if not self.counter.can_make_call():
            raise UpstreamUnavailableError(
                f"Geocoding call limit exceeded. Max calls per day: {self.counter.max_calls_per_day}",
                provider="nominatim",
            )

        if self._client is not None:
            response = await self._client.get(
                url, params=params, headers=self._headers(), timeout=self.timeout
            )
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    url, params=params, headers=self._headers(), timeout=self.timeout
                )

        # Record API call
        self.counter.record_call()
        response.raise_for_status()
        return response

    async def reverse_geocode(self, coordinate: Coordinate) -> str:
        """Resolve a coordinate to Nominatim's display_name"""
        key = reverse_key(coordinate)
        cached = self.cache.get(key)
        if cached:
            return cached

        fallback = format_coordinate_fallback(coordinate)
        params = {
            "format": "json",
            "lat": coordinate.lat,
            "lon": coordinate.lng,
            "zoom": 18,
            "addressdetails": 1,
        }

        try:
            response = await self._get(self.reverse_url, params)
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Reverse geocode failed for %s: HTTP %s", fallback, e.response.status_code
            )
            return fallback
        except Exception as e:
            logger.warning("Reverse geocode failed for %s: %s", fallback, e)
            return fallback

        address = data.get("display_name") if isinstance(data, dict) else None
        if not isinstance(address, str) or not address.strip():
            logger.warning("Reverse geocode returned no display_name for %s", fallback)
            return fallback

        self.cache.set(key, address)
        return address

    async def forward_geocode(self, address: str) -> Optional[Coordinate]:
        """Resolve an address to the first Nominatim match"""
        if not address or not address.strip():
            return None

        key = forward_key(address)
        cached = self.cache.get(key)
        if cached:
            return Coordinate(**cached)

        try:
            response = await self._get(self.search_url, {"q": address, "format": "json"})
            results = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Forward geocode failed for '%s': HTTP %s", address, e.response.status_code
            )
            return None
        except (httpx.HTTPError, UpstreamUnavailableError, ValueError) as e:
            logger.warning("Forward geocode failed for '%s': %s", address, e)
            return None

        if not isinstance(results, list) or not results:
            logger.info("No geocoding match for '%s'", address)
            return None

        coordinate = self._convert_result(results[0])
        if coordinate is None:
            logger.warning("Unusable geocoding result for '%s': %r", address, results[0])
            return None

        self.cache.set(key, coordinate.model_dump())
        return coordinate

    def _convert_result(self, result) -> Optional[Coordinate]:
        """Nominatim returns lat/lon as strings"""
        if not isinstance(result, dict):
            return None
        try:
            lat = float(result["lat"])
            lng = float(result["lon"])
        except (KeyError, TypeError, ValueError):
            return None
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return None
        return Coordinate(lat=lat, lng=lng)
