"""
Route computation: marshals waypoints to the routing engine and derives the
displayed distance/duration summary from its first alternative.
"""
import logging
import math
from typing import Sequence

from roadbook.errors import InvalidInputError, UpstreamUnavailableError
from roadbook.models.geo import Coordinate, RouteResult, RouteStatus, RouteSummary
from roadbook.services.routing.routing_engine import RoutingEngine

logger = logging.getLogger(__name__)


def summarize(distance_m: float, time_s: float) -> RouteSummary:
    """Convert engine meters/seconds to km (1 decimal) and whole minutes.

    465000 m, 16560 s -> 465.0 km, 276 min
    """
    km = math.floor(distance_m / 1000 * 10 + 0.5) / 10
    hours = math.floor(time_s / 3600)
    minutes = math.floor((time_s % 3600) / 60)
    return RouteSummary(
        total_distance_km=km,
        total_duration_minutes=hours * 60 + minutes,
        status=RouteStatus.READY,
    )


class RouteComputation:
    def __init__(self, engine: RoutingEngine, profile: str = "driving"):
        self.engine = engine
        self.profile = profile

    async def compute_route(self, coordinates: Sequence[Coordinate]) -> RouteResult:
        if len(coordinates) < 2:
            raise InvalidInputError("At least 2 coordinates are required to compute a route")

        routes = await self.engine.route(list(coordinates), self.profile)
        if not routes:
            raise UpstreamUnavailableError("Routing engine returned no route", provider="osrm")

        # Alternatives are disabled; only the first route is used
        best = routes[0]
        summary = summarize(best.total_distance_m, best.total_time_s)
        logger.info(
            "Route computed through %d points: %.1f km, %d min",
            len(coordinates),
            summary.total_distance_km,
            summary.total_duration_minutes,
        )
        return RouteResult(path=best.geometry, summary=summary)
