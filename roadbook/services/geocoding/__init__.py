from .api_counter import APICounter
from .cache import (
    GeocodeCache,
    NullGeocodeCache,
    RedisGeocodeCache,
    TTLGeocodeCache,
    build_cache,
)
from .geocoding_service import GeocodingGateway, format_coordinate_fallback
from .nominatim_service import NominatimGeocodingService

__all__ = [
    "APICounter",
    "GeocodeCache",
    "GeocodingGateway",
    "NominatimGeocodingService",
    "NullGeocodeCache",
    "RedisGeocodeCache",
    "TTLGeocodeCache",
    "build_cache",
    "format_coordinate_fallback",
]
