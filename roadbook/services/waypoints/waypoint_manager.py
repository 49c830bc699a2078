"""
Waypoint Collection Manager

Owns the ordered, uniquely keyed waypoint sequence. Every mutation is
published as a WaypointChange so that route and enrichment state can be
invalidated explicitly instead of being recomputed on incidental changes.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Set

from roadbook.errors import InvalidInputError
from roadbook.models.geo import Coordinate, Waypoint
from roadbook.services.geocoding.geocoding_service import (
    GeocodingGateway,
    format_coordinate_fallback,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaypointChange:
    kind: str  # added | removed | cleared | collapsed | restored | address_updated
    invalidates_route: bool
    invalidates_enrichment: bool
    waypoint_id: Optional[str] = None


Listener = Callable[[WaypointChange], None]


class WaypointCollectionManager:
    def __init__(self, geocoder: Optional[GeocodingGateway] = None):
        self.geocoder = geocoder
        self._waypoints: List[Waypoint] = []
        self._listeners: List[Listener] = []
        self._pending: Set[asyncio.Task] = set()

    @property
    def waypoints(self) -> List[Waypoint]:
        return list(self._waypoints)

    def coordinates(self) -> List[Coordinate]:
        return [w.coordinate for w in self._waypoints]

    def addresses(self) -> List[str]:
        return [w.address for w in self._waypoints]

    def get(self, waypoint_id: str) -> Optional[Waypoint]:
        for waypoint in self._waypoints:
            if waypoint.id == waypoint_id:
                return waypoint
        return None

    def __len__(self) -> int:
        return len(self._waypoints)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, change: WaypointChange) -> None:
        for listener in self._listeners:
            listener(change)

    def _new_id(self) -> str:
        existing = {w.id for w in self._waypoints}
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in existing:
                return candidate

    def add_waypoint(self, coordinate: Coordinate) -> Waypoint:
        """Append a waypoint now; its address is backfilled by reverse geocoding.

        The returned waypoint carries the coordinate fallback address until the
        backfill lands. Backfill only runs when called inside an event loop.
        """
        waypoint = Waypoint(
            id=self._new_id(),
            coordinate=coordinate,
            address=format_coordinate_fallback(coordinate),
        )
        self._waypoints.append(waypoint)
        self._emit(WaypointChange("added", True, False, waypoint.id))

        if self.geocoder is not None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                task = loop.create_task(self._backfill_address(waypoint.id, coordinate))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
        return waypoint

    async def _backfill_address(self, waypoint_id: str, coordinate: Coordinate) -> None:
        address = await self.geocoder.reverse_geocode(coordinate)
        index = self._index_of(waypoint_id)
        if index is None:
            logger.debug("Waypoint %s removed before its address resolved", waypoint_id)
            return
        current = self._waypoints[index]
        if current.address == address:
            return
        self._waypoints[index] = current.model_copy(update={"address": address})
        self._emit(WaypointChange("address_updated", False, False, waypoint_id))

    def _index_of(self, waypoint_id: str) -> Optional[int]:
        for i, waypoint in enumerate(self._waypoints):
            if waypoint.id == waypoint_id:
                return i
        return None

    def remove_waypoint(self, waypoint_id: str) -> bool:
        index = self._index_of(waypoint_id)
        if index is None:
            return False
        del self._waypoints[index]
        self._emit(WaypointChange("removed", True, True, waypoint_id))
        return True

    def clear(self) -> None:
        self._waypoints = []
        self._emit(WaypointChange("cleared", True, True))

    def collapse_to_endpoints(self) -> List[Waypoint]:
        """Keep only the first and last waypoints, ids and addresses intact"""
        if len(self._waypoints) < 2:
            raise InvalidInputError("Collapsing requires at least 2 waypoints")
        self._waypoints = [self._waypoints[0], self._waypoints[-1]]
        self._emit(WaypointChange("collapsed", True, False))
        return self.waypoints

    def restore(self, waypoints: Iterable[Waypoint]) -> None:
        """Replace the collection with previously saved waypoints"""
        restored = list(waypoints)
        ids = [w.id for w in restored]
        if len(ids) != len(set(ids)):
            raise InvalidInputError("Saved waypoints contain duplicate ids")
        self._waypoints = restored
        self._emit(WaypointChange("restored", True, True))

    async def wait_pending(self) -> None:
        """Wait for outstanding address backfills"""
        while True:
            pending = [t for t in self._pending if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
