from .enrichment import EnrichmentResult, LocationNarrative, PaidStatus, PlaceOfInterest
from .geo import Coordinate, RouteResult, RouteStatus, RouteSummary, Waypoint
from .saved_route import SavedRoute

__all__ = [
    "Coordinate",
    "EnrichmentResult",
    "LocationNarrative",
    "PaidStatus",
    "PlaceOfInterest",
    "RouteResult",
    "RouteStatus",
    "RouteSummary",
    "SavedRoute",
    "Waypoint",
]
