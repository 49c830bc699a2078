"""Small geographic helpers used for display and sanity checks."""
from __future__ import annotations

import math
from typing import Sequence

from roadbook.models.geo import Coordinate, Waypoint

EARTH_RADIUS_KM = 6371


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two points (Haversine formula)"""
    lat1_rad = math.radians(a.lat)
    lat2_rad = math.radians(b.lat)
    delta_lat = math.radians(b.lat - a.lat)
    delta_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_KM * c


def route_distance_km(waypoints: Sequence[Waypoint]) -> float:
    """Straight-line distance through the waypoints, in order."""
    if len(waypoints) < 2:
        return 0.0
    return sum(
        haversine_km(waypoints[i].coordinate, waypoints[i + 1].coordinate)
        for i in range(len(waypoints) - 1)
    )


def format_route_time(minutes: float) -> str:
    """Format 276 -> '4h 36min', 12 -> '12 min'."""
    hours = int(minutes // 60)
    mins = int(math.floor(minutes % 60 + 0.5))
    if hours > 0:
        return f"{hours}h {mins}min"
    return f"{mins} min"
