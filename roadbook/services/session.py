"""
Itinerary session

Composes the waypoint manager, routing, enrichment, persistence and marker
reconciliation for one active user session, running on a single asyncio
event loop. Route refreshes are driven only by waypoint changes and compare
the coordinate basis explicitly; enrichment never triggers routing.
"""
import asyncio
import logging
from typing import Hashable, List, Optional, Set

from roadbook.errors import RoadbookError
from roadbook.models.enrichment import EnrichmentResult, LocationNarrative
from roadbook.models.geo import Coordinate, RouteSummary, Waypoint
from roadbook.models.saved_route import SavedRoute
from roadbook.services.enrichment.orchestrator import EnrichmentOrchestrator
from roadbook.services.map.marker_reconciliation import MarkerReconciler
from roadbook.services.persistence.persistence_bridge import PersistenceBridge
from roadbook.services.routing.route_computation import RouteComputation
from roadbook.services.routing.route_tracker import RouteTicket, RouteTracker, make_basis
from roadbook.services.waypoints.waypoint_manager import (
    WaypointChange,
    WaypointCollectionManager,
)
from roadbook.utils.geo import format_route_time, route_distance_km

logger = logging.getLogger(__name__)


class ItinerarySession:
    def __init__(
        self,
        manager: WaypointCollectionManager,
        route_computation: RouteComputation,
        orchestrator: Optional[EnrichmentOrchestrator],
        bridge: PersistenceBridge,
        reconciler: Optional[MarkerReconciler] = None,
        tracker: Optional[RouteTracker] = None,
    ):
        self.manager = manager
        self.route_computation = route_computation
        self.orchestrator = orchestrator
        self.bridge = bridge
        self.reconciler = reconciler or MarkerReconciler()
        self.tracker = tracker or RouteTracker()

        self.enrichment: Optional[EnrichmentResult] = None
        self.enrichment_loading = False
        self.notice: Optional[str] = None
        self._enrich_generation = 0
        self._tasks: Set[asyncio.Task] = set()

        self.manager.subscribe(self._on_waypoints_changed)

    # ── State ────────────────────────────────────────────────────────────

    @property
    def waypoints(self) -> List[Waypoint]:
        return self.manager.waypoints

    @property
    def route_summary(self) -> RouteSummary:
        return self.tracker.summary

    @property
    def route_path(self) -> List[Coordinate]:
        return self.tracker.path

    @property
    def route_duration_text(self) -> Optional[str]:
        """'4h 36min' for a ready route, None otherwise"""
        if not self.tracker.is_valid:
            return None
        return format_route_time(self.tracker.summary.total_duration_minutes)

    @property
    def straight_line_km(self) -> float:
        """As-the-crow-flies distance through the waypoints, in order"""
        return route_distance_km(self.manager.waypoints)

    # ── Waypoints ────────────────────────────────────────────────────────

    def add_waypoint(self, coordinate: Coordinate) -> Waypoint:
        return self.manager.add_waypoint(coordinate)

    def remove_waypoint(self, waypoint_id: str) -> bool:
        return self.manager.remove_waypoint(waypoint_id)

    def clear(self) -> None:
        self.manager.clear()

    def collapse_to_endpoints(self) -> List[Waypoint]:
        return self.manager.collapse_to_endpoints()

    def _on_waypoints_changed(self, change: WaypointChange) -> None:
        self.reconciler.sync_waypoints(self.manager.waypoints)

        if change.kind == "cleared":
            self._enrich_generation += 1
            self.enrichment = None
            self.enrichment_loading = False
            self.reconciler.sync_places(None)

        if change.invalidates_route:
            self._start_refresh()

    def _start_refresh(self) -> None:
        """Mark the route pending now; the engine call runs as a task"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the caller drives refresh_route() explicitly
            return
        ticket = self._begin_refresh()
        if ticket is None:
            return
        task = loop.create_task(self._await_route(ticket))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ── Routing ──────────────────────────────────────────────────────────

    async def refresh_route(self) -> bool:
        """Recompute the route if the waypoint basis changed.

        Returns True when a result was applied. Stale responses (the basis
        changed while the engine was working) are dropped.
        """
        ticket = self._begin_refresh()
        if ticket is None:
            return False
        return await self._await_route(ticket)

    def _begin_refresh(self) -> Optional[RouteTicket]:
        basis = make_basis(self.manager.coordinates())
        if len(basis) < 2:
            self.tracker.reset()
            self.reconciler.clear_route()
            return None
        if not self.tracker.needs_refresh(basis):
            return None

        ticket = self.tracker.begin(basis)
        self.reconciler.begin_computing(basis)
        return ticket

    async def _await_route(self, ticket: RouteTicket) -> bool:
        try:
            result = await self.route_computation.compute_route(list(ticket.basis))
        except RoadbookError as exc:
            if self.tracker.fail(ticket, f"Unable to compute a route: {exc.message}"):
                self.reconciler.clear_route()
                self.notice = self.tracker.notice
                logger.warning("Route computation failed: %s", exc.message)
            return False
        except Exception:
            logger.exception("Unexpected route computation failure")
            if self.tracker.fail(ticket, "Unable to compute a route"):
                self.reconciler.clear_route()
                self.notice = self.tracker.notice
            return False

        if not self.tracker.complete(ticket, result):
            return False
        self.reconciler.display(ticket.basis, result.path)
        return True

    # ── Enrichment ───────────────────────────────────────────────────────

    async def enrich(self) -> Optional[EnrichmentResult]:
        """Run enrichment for the current waypoints; the latest call wins.

        A result is applied even when waypoints changed while it was in
        flight; use orphaned_narratives() to find entries whose waypoint
        is gone.
        """
        if self.orchestrator is None:
            self.notice = "Place suggestions are not configured"
            return None

        self._enrich_generation += 1
        generation = self._enrich_generation
        self.enrichment_loading = True
        self.notice = None
        try:
            result = await self.orchestrator.enrich(self.manager.waypoints)
        except RoadbookError as exc:
            if generation == self._enrich_generation:
                self.notice = exc.message
                logger.warning("Enrichment failed: %s", exc.message)
            return None
        finally:
            if generation == self._enrich_generation:
                self.enrichment_loading = False

        if generation != self._enrich_generation:
            logger.debug("Dropping superseded enrichment result (generation %d)", generation)
            return None

        self.enrichment = result
        self.reconciler.sync_places(result)
        return result

    def narrative_for(self, waypoint_id: str) -> Optional[LocationNarrative]:
        if self.enrichment is None:
            return None
        for narrative in self.enrichment.narratives:
            if narrative.waypoint_id == waypoint_id:
                return narrative
        return None

    def orphaned_narratives(self) -> List[LocationNarrative]:
        """Narratives whose waypoint has been removed; still displayable"""
        if self.enrichment is None:
            return []
        present = {w.id for w in self.manager.waypoints}
        return [
            n
            for n in self.enrichment.narratives
            if n.waypoint_id is not None and n.waypoint_id not in present
        ]

    # ── Persistence ──────────────────────────────────────────────────────

    def save(self, owner_id: str, name: Optional[str] = None) -> SavedRoute:
        return self.bridge.save(self.manager.waypoints, self.enrichment, name, owner_id)

    def load(self, route_id: str, owner_id: str) -> SavedRoute:
        """Restore a saved route; routing reruns only if the basis differs"""
        route = self.bridge.get(route_id, owner_id)

        # A loaded enrichment supersedes anything still in flight
        self._enrich_generation += 1
        self.enrichment_loading = False
        self.enrichment = route.enrichment
        self.manager.restore(route.waypoints)
        self.reconciler.sync_places(self.enrichment)
        return route

    def delete_saved(self, route_id: str, owner_id: str) -> bool:
        return self.bridge.delete(route_id, owner_id)

    # ── Presentation ─────────────────────────────────────────────────────

    def hover(self, key: Optional[Hashable]) -> bool:
        return self.reconciler.set_hover(key)

    async def settle(self) -> None:
        """Wait for background route refreshes and address backfills"""
        while True:
            await self.manager.wait_pending()
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
