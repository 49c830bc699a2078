from typing import List, Optional
from pydantic import BaseModel, Field

from roadbook.models.enrichment import EnrichmentResult
from roadbook.models.geo import Coordinate, Waypoint


class ComputeRouteRequest(BaseModel):
    coordinates: List[Coordinate] = Field(..., min_length=2)


class EnrichRequest(BaseModel):
    waypoints: List[Waypoint] = Field(..., min_length=2)


class SaveRouteRequest(BaseModel):
    name: Optional[str] = None
    waypoints: List[Waypoint] = Field(..., min_length=2)
    enrichment: Optional[EnrichmentResult] = None
