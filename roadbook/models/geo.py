"""
Geographic value types: coordinates, waypoints and route summaries
"""
from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """Immutable WGS-84 point"""
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Waypoint(BaseModel):
    """User-placed point; only the address may change after creation"""
    id: str = Field(..., min_length=1)
    coordinate: Coordinate
    address: str


class RouteStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    ABSENT = "absent"


class RouteSummary(BaseModel):
    """Distance/time summary for the current waypoint sequence"""
    total_distance_km: float = 0.0
    total_duration_minutes: float = 0.0
    status: RouteStatus = RouteStatus.ABSENT

    @classmethod
    def absent(cls) -> "RouteSummary":
        return cls(status=RouteStatus.ABSENT)

    @classmethod
    def pending(cls) -> "RouteSummary":
        return cls(status=RouteStatus.PENDING)


class RouteResult(BaseModel):
    """Driven path plus its summary"""
    path: List[Coordinate] = []
    summary: RouteSummary
