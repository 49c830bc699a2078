"""
Persistence bridge: turns the session's waypoints and enrichment into saved
route records and back, scoped to the authenticated owner.
"""
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from roadbook.errors import InvalidInputError, NotFoundOrForbiddenError
from roadbook.models.enrichment import EnrichmentResult
from roadbook.models.geo import Waypoint
from roadbook.models.saved_route import SavedRoute
from roadbook.services.persistence.route_store import RouteStore

logger = logging.getLogger(__name__)


def default_route_name(created_at: datetime) -> str:
    return f"Route {created_at:%Y-%m-%d}"


def _now() -> datetime:
    # MongoDB keeps millisecond precision; truncate so records round-trip exactly
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


_last_sequence = 0


def _next_sequence() -> int:
    """Strictly increasing insertion number; breaks created_at ties"""
    global _last_sequence
    _last_sequence = max(time.time_ns(), _last_sequence + 1)
    return _last_sequence


class PersistenceBridge:
    def __init__(self, store: RouteStore):
        self.store = store

    def save(
        self,
        waypoints: Sequence[Waypoint],
        enrichment: Optional[EnrichmentResult],
        name: Optional[str],
        owner_id: str,
    ) -> SavedRoute:
        if not owner_id:
            raise InvalidInputError("An owner is required to save a route")
        if len(waypoints) < 2:
            raise InvalidInputError("At least 2 waypoints are required to save a route")

        created_at = _now()
        route = SavedRoute(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            name=(name or "").strip() or default_route_name(created_at),
            waypoints=list(waypoints),
            enrichment=enrichment,
            created_at=created_at,
        )
        document = self._serialize(route)
        document["seq"] = _next_sequence()
        self.store.insert(document)
        logger.info("Saved route %s for owner %s", route.id, owner_id)
        return route

    def list(self, owner_id: str) -> List[SavedRoute]:
        """Owner's routes, most recent first"""
        return [SavedRoute.model_validate(doc) for doc in self.store.find_for_owner(owner_id)]

    def find(self, route_id: str, owner_id: str) -> Optional[SavedRoute]:
        document = self.store.find_one(route_id, owner_id)
        if document is None:
            return None
        return SavedRoute.model_validate(document)

    def get(self, route_id: str, owner_id: str) -> SavedRoute:
        route = self.find(route_id, owner_id)
        if route is None:
            raise NotFoundOrForbiddenError("Route not found or not yours")
        return route

    def delete(self, route_id: str, owner_id: str) -> bool:
        deleted = self.store.delete_one(route_id, owner_id)
        if deleted:
            logger.info("Deleted route %s for owner %s", route_id, owner_id)
        return deleted

    @staticmethod
    def _serialize(route: SavedRoute) -> dict:
        # Coordinates become plain {lat, lng} floats; created_at stays a datetime
        document = route.model_dump(mode="json")
        document["created_at"] = route.created_at
        return document
