from .osrm_engine import OSRMRoutingEngine
from .route_computation import RouteComputation, summarize
from .route_tracker import RouteTicket, RouteTracker, make_basis
from .routing_engine import EngineRoute, RoutingEngine

__all__ = [
    "EngineRoute",
    "OSRMRoutingEngine",
    "RouteComputation",
    "RouteTicket",
    "RouteTracker",
    "RoutingEngine",
    "make_basis",
    "summarize",
]
