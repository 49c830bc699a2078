import logging
from typing import Dict, List, Optional, Sequence

import httpx

from roadbook.errors import UpstreamUnavailableError
from roadbook.models.geo import Coordinate
from roadbook.services.routing.routing_engine import EngineRoute, RoutingEngine

logger = logging.getLogger(__name__)


class OSRMRoutingEngine(RoutingEngine):
    """OSRM HTTP route service (/route/v1/{profile}/{lng,lat;...})"""

    def __init__(
        self,
        base_url: str = "https://router.project-osrm.org",
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings):
        return cls(base_url=settings.osrm_base_url, timeout=settings.routing_timeout_s)

    def build_url(self, coordinates: Sequence[Coordinate], profile: str) -> str:
        # OSRM expects lng,lat pairs separated by ';'
        lonlat = ";".join(f"{c.lng},{c.lat}" for c in coordinates)
        return f"{self.base_url}/route/v1/{profile}/{lonlat}"

    async def route(
        self, coordinates: Sequence[Coordinate], profile: str = "driving"
    ) -> List[EngineRoute]:
        url = self.build_url(coordinates, profile)
        params = {
            "overview": "full",
            "geometries": "geojson",
            "alternatives": "false",
            "steps": "false",
        }

        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailableError(
                f"Routing engine error: {e.response.status_code}", provider="osrm"
            )
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailableError(
                f"Routing engine unreachable: {e}", provider="osrm"
            )

        if not isinstance(data, dict) or data.get("code") != "Ok":
            code = data.get("code") if isinstance(data, dict) else None
            message = data.get("message", "") if isinstance(data, dict) else ""
            raise UpstreamUnavailableError(
                f"Routing engine returned {code or 'no code'} {message}".strip(),
                provider="osrm",
            )

        return [self._convert_route(r) for r in data.get("routes") or []]

    def _convert_route(self, route: Dict) -> EngineRoute:
        try:
            distance = float(route["distance"])
            duration = float(route["duration"])
            raw_geometry = (route.get("geometry") or {}).get("coordinates") or []
            geometry = [
                Coordinate(lat=point[1], lng=point[0])
                for point in raw_geometry
                if isinstance(point, list) and len(point) >= 2
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise UpstreamUnavailableError(
                f"Malformed route in engine response: {e}", provider="osrm"
            )
        return EngineRoute(total_distance_m=distance, total_time_s=duration, geometry=geometry)
