from .marker_reconciliation import (
    MapView,
    Marker,
    MarkerDiff,
    MarkerReconciler,
    RouteLine,
    RouteLineState,
)

__all__ = [
    "MapView",
    "Marker",
    "MarkerDiff",
    "MarkerReconciler",
    "RouteLine",
    "RouteLineState",
]
