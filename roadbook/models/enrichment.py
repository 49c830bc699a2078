"""
Enrichment models: per-waypoint narratives and their places of interest
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from roadbook.models.geo import Coordinate


class PaidStatus(str, Enum):
    FREE = "free"
    PAID = "paid"
    UNKNOWN = "unknown"
    PRICE = "price"  # raw price text kept in PlaceOfInterest.price


class PlaceOfInterest(BaseModel):
    """Suggested place; coordinate stays None when geocoding finds nothing"""
    name: str = ""
    address: str = ""
    context: str = ""
    paid_status: PaidStatus = PaidStatus.UNKNOWN
    price: Optional[str] = None
    coordinate: Optional[Coordinate] = None


class LocationNarrative(BaseModel):
    """Model-written narrative for one waypoint"""
    origin_address: str
    introduction: str = ""
    established_date: str = ""
    places_of_interest: List[PlaceOfInterest] = []
    # Captured at enrichment time; survives reordering or removal of waypoints
    waypoint_id: Optional[str] = None


class EnrichmentResult(BaseModel):
    """Result of one enrichment call, replaced wholesale by the next"""
    narratives: List[LocationNarrative] = []

    def places(self):
        """Yield ((narrative_index, poi_index), place) for every POI"""
        for n_idx, narrative in enumerate(self.narratives):
            for p_idx, place in enumerate(narrative.places_of_interest):
                yield (n_idx, p_idx), place
