"""
Map/marker reconciliation

Keeps the marker sets, hover emphasis and route line in step with session
state. Waypoint changes touch only waypoint markers, enrichment changes only
POI markers, and hover only emphasis and the view center. Nothing here
performs I/O.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

from roadbook.models.enrichment import EnrichmentResult
from roadbook.models.geo import Coordinate, Waypoint

PoiKey = Tuple[int, int]


@dataclass
class Marker:
    key: Hashable
    coordinate: Coordinate
    label: str
    kind: str  # "waypoint" | "poi"
    emphasized: bool = False


@dataclass
class MarkerDiff:
    added: List[Hashable] = field(default_factory=list)
    removed: List[Hashable] = field(default_factory=list)
    updated: List[Hashable] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed or self.updated)


class RouteLineState(str, Enum):
    NO_ROUTE = "no_route"
    COMPUTING = "computing"
    DISPLAYED = "displayed"


@dataclass
class RouteLine:
    state: RouteLineState = RouteLineState.NO_ROUTE
    basis: Optional[Tuple[Coordinate, ...]] = None
    path: List[Coordinate] = field(default_factory=list)


@dataclass
class MapView:
    center: Coordinate = field(default_factory=lambda: Coordinate(lat=48.8566, lng=2.3522))
    zoom: int = 6


class MarkerReconciler:
    def __init__(self, view: Optional[MapView] = None):
        self.waypoint_markers: Dict[str, Marker] = {}
        self.poi_markers: Dict[PoiKey, Marker] = {}
        # POIs listed without a marker because they have no coordinate
        self.unplaced_places: List[PoiKey] = []
        self.route_line = RouteLine()
        self.view = view or MapView()
        self.hovered: Optional[Hashable] = None

    # ── Markers ──────────────────────────────────────────────────────────

    def sync_waypoints(self, waypoints: Sequence[Waypoint]) -> MarkerDiff:
        wanted = {
            w.id: Marker(w.id, w.coordinate, w.address, "waypoint") for w in waypoints
        }
        return self._reconcile(self.waypoint_markers, wanted)

    def sync_places(self, enrichment: Optional[EnrichmentResult]) -> MarkerDiff:
        wanted: Dict[PoiKey, Marker] = {}
        unplaced: List[PoiKey] = []
        if enrichment is not None:
            for key, place in enrichment.places():
                if place.coordinate is None:
                    unplaced.append(key)
                    continue
                wanted[key] = Marker(key, place.coordinate, place.name, "poi")
        self.unplaced_places = unplaced
        return self._reconcile(self.poi_markers, wanted)

    def _reconcile(self, current: Dict, wanted: Dict) -> MarkerDiff:
        diff = MarkerDiff()
        for key in list(current):
            if key not in wanted:
                del current[key]
                diff.removed.append(key)
                if self.hovered == key:
                    self.hovered = None

        for key, marker in wanted.items():
            existing = current.get(key)
            if existing is None:
                marker.emphasized = key == self.hovered
                current[key] = marker
                diff.added.append(key)
            elif (existing.coordinate, existing.label) != (marker.coordinate, marker.label):
                existing.coordinate = marker.coordinate
                existing.label = marker.label
                diff.updated.append(key)
        return diff

    def marker_for(self, key: Hashable) -> Optional[Marker]:
        if isinstance(key, tuple):
            return self.poi_markers.get(key)
        return self.waypoint_markers.get(key)

    # ── Hover ────────────────────────────────────────────────────────────

    def set_hover(self, key: Optional[Hashable]) -> bool:
        """Emphasize one marker and recenter on it at the current zoom"""
        if key == self.hovered:
            return False

        previous = self.marker_for(self.hovered) if self.hovered is not None else None
        if previous is not None:
            previous.emphasized = False

        self.hovered = None
        if key is None:
            return True

        marker = self.marker_for(key)
        if marker is None:
            return previous is not None
        marker.emphasized = True
        self.hovered = key
        self.view = MapView(center=marker.coordinate, zoom=self.view.zoom)
        return True

    # ── Route line ───────────────────────────────────────────────────────

    def begin_computing(self, basis: Tuple[Coordinate, ...]) -> None:
        line = self.route_line
        if line.state == RouteLineState.DISPLAYED and basis == line.basis:
            raise RuntimeError("Route line is already displayed for this waypoint sequence")
        line.state = RouteLineState.COMPUTING
        line.basis = basis

    def display(self, basis: Tuple[Coordinate, ...], path: Sequence[Coordinate]) -> None:
        line = self.route_line
        if line.state != RouteLineState.COMPUTING:
            raise RuntimeError(f"Cannot display a route from state {line.state.value}")
        line.state = RouteLineState.DISPLAYED
        line.basis = basis
        line.path = list(path)

    def clear_route(self) -> None:
        """Failure, or fewer than 2 waypoints"""
        self.route_line = RouteLine()
