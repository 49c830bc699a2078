"""
Response models for the geocoding and saved-route endpoints
"""
from typing import List, Optional
from pydantic import BaseModel

from roadbook.models.geo import Coordinate
from roadbook.models.saved_route import SavedRoute


class ReverseGeocodeResponse(BaseModel):
    """Address for a coordinate (fallback string when the provider fails)"""
    address: str


class ForwardGeocodeResponse(BaseModel):
    """Coordinate for an address, null when nothing matched"""
    address: str
    coordinate: Optional[Coordinate] = None


class SavedRouteList(BaseModel):
    """Owner's routes, most recent first"""
    routes: List[SavedRoute] = []
    total_count: int = 0


class DeleteRouteResponse(BaseModel):
    deleted: bool = True
    message: str = "Route deleted successfully"
