"""
Service container: builds every service once at startup and hands them to
consumers explicitly.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from roadbook.config import Settings
from roadbook.services.enrichment.llm_client import NarrativeLLMClient
from roadbook.services.enrichment.orchestrator import EnrichmentOrchestrator
from roadbook.services.geocoding.cache import build_cache
from roadbook.services.geocoding.geocoding_service import GeocodingGateway
from roadbook.services.geocoding.nominatim_service import NominatimGeocodingService
from roadbook.services.map.marker_reconciliation import MarkerReconciler
from roadbook.services.persistence.persistence_bridge import PersistenceBridge
from roadbook.services.persistence.route_store import (
    InMemoryRouteStore,
    MongoRouteStore,
    RouteStore,
)
from roadbook.services.routing.osrm_engine import OSRMRoutingEngine
from roadbook.services.routing.route_computation import RouteComputation
from roadbook.services.session import ItinerarySession
from roadbook.services.waypoints.waypoint_manager import WaypointCollectionManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    geocoder: GeocodingGateway
    route_computation: RouteComputation
    orchestrator: Optional[EnrichmentOrchestrator]
    bridge: PersistenceBridge

    def new_session(self) -> ItinerarySession:
        return ItinerarySession(
            manager=WaypointCollectionManager(self.geocoder),
            route_computation=self.route_computation,
            orchestrator=self.orchestrator,
            bridge=self.bridge,
            reconciler=MarkerReconciler(),
        )


def build_route_store(settings: Settings) -> RouteStore:
    try:
        return MongoRouteStore.connect(
            settings.mongo_uri, settings.mongo_db_name, settings.mongo_routes_collection
        )
    except Exception as e:
        logger.warning("MongoDB not available (%s), saved routes kept in memory", e)
        return InMemoryRouteStore()


def build_orchestrator(
    settings: Settings, geocoder: GeocodingGateway
) -> Optional[EnrichmentOrchestrator]:
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not configured, enrichment disabled")
        return None
    return EnrichmentOrchestrator(
        NarrativeLLMClient(
            model=settings.openai_model, temperature=settings.openai_temperature
        ),
        geocoder,
        poi_timeout_s=settings.poi_geocode_timeout_s,
    )


def build_services(settings: Settings) -> Services:
    geocoder = NominatimGeocodingService.from_settings(settings, cache=build_cache(settings))
    route_computation = RouteComputation(
        OSRMRoutingEngine.from_settings(settings), profile=settings.routing_profile
    )
    return Services(
        geocoder=geocoder,
        route_computation=route_computation,
        orchestrator=build_orchestrator(settings, geocoder),
        bridge=PersistenceBridge(build_route_store(settings)),
    )
