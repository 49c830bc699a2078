"""
Enrichment orchestrator

One language-model call over the ordered waypoint addresses, then a
sequential forward geocode of every suggested place. Each place is geocoded
independently: a failure or timeout leaves its coordinate empty and never
discards places that were already resolved.
"""
import asyncio
import logging
from typing import Callable, Optional, Sequence

from fastapi.concurrency import run_in_threadpool

from roadbook.errors import InvalidInputError
from roadbook.models.enrichment import EnrichmentResult
from roadbook.models.geo import Waypoint
from roadbook.services.enrichment.llm_client import NarrativeLLMClient
from roadbook.services.enrichment.validator import NarrativeValidator
from roadbook.services.geocoding.geocoding_service import GeocodingGateway

logger = logging.getLogger(__name__)


class EnrichmentOrchestrator:
    def __init__(
        self,
        llm_client: NarrativeLLMClient,
        geocoder: GeocodingGateway,
        *,
        validator: Optional[NarrativeValidator] = None,
        poi_timeout_s: float = 10.0,
    ):
        self.llm_client = llm_client
        self.geocoder = geocoder
        self.validator = validator or NarrativeValidator()
        self.poi_timeout_s = poi_timeout_s

    async def enrich(
        self,
        waypoints: Sequence[Waypoint],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> EnrichmentResult:
        if len(waypoints) < 2:
            raise InvalidInputError("Enrichment requires at least 2 waypoints")

        addresses = [w.address for w in waypoints]
        logger.info("Requesting narratives for %d addresses", len(addresses))
        payload = await run_in_threadpool(self.llm_client.generate, addresses)
        narratives = self.validator.validate(payload, addresses)

        for narrative, waypoint in zip(narratives, waypoints):
            narrative.waypoint_id = waypoint.id

        result = EnrichmentResult(narratives=narratives)
        await self.geocode_places(result, on_progress)
        return result

    async def geocode_places(
        self,
        result: EnrichmentResult,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> int:
        """Fill in POI coordinates in place; returns how many were resolved"""
        places = [place for _, place in result.places()]
        resolved = 0
        for done, place in enumerate(places, start=1):
            if place.address.strip():
                coordinate = await self._geocode_one(place.address)
                if coordinate is not None:
                    place.coordinate = coordinate
                    resolved += 1
            if on_progress is not None:
                on_progress(done, len(places))

        logger.info("Geocoded %d/%d places of interest", resolved, len(places))
        return resolved

    async def _geocode_one(self, address: str):
        try:
            return await asyncio.wait_for(
                self.geocoder.forward_geocode(address), timeout=self.poi_timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning("Geocoding '%s' timed out after %.1fs", address, self.poi_timeout_s)
        except Exception as exc:
            logger.warning("Geocoding '%s' failed: %s", address, exc)
        return None
