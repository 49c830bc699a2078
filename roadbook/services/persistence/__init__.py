from .persistence_bridge import PersistenceBridge, default_route_name
from .route_store import InMemoryRouteStore, MongoRouteStore, RouteStore

__all__ = [
    "InMemoryRouteStore",
    "MongoRouteStore",
    "PersistenceBridge",
    "RouteStore",
    "default_route_name",
]
