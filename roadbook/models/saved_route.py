"""
Saved route record as stored per owner
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from roadbook.models.enrichment import EnrichmentResult
from roadbook.models.geo import Waypoint


class SavedRoute(BaseModel):
    """One record per save action"""
    id: str
    owner_id: str
    name: str
    waypoints: List[Waypoint]
    enrichment: Optional[EnrichmentResult] = None
    created_at: datetime
