from abc import ABC, abstractmethod
from typing import Optional

from roadbook.models.geo import Coordinate


def format_coordinate_fallback(coordinate: Coordinate) -> str:
    """Deterministic address used whenever reverse geocoding fails"""
    return f"{coordinate.lat:.6f}, {coordinate.lng:.6f}"


class GeocodingGateway(ABC):
    """Geocoding service abstract interface"""

    @abstractmethod
    async def reverse_geocode(self, coordinate: Coordinate) -> str:
        """Resolve a coordinate to an address.

        Never raises: on any provider failure the coordinate itself is
        returned, formatted with format_coordinate_fallback().
        """
        pass

    @abstractmethod
    async def forward_geocode(self, address: str) -> Optional[Coordinate]:
        """Resolve an address to the first matching coordinate, or None"""
        pass
