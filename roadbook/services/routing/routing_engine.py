from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Sequence

from roadbook.models.geo import Coordinate


@dataclass
class EngineRoute:
    """One alternative as returned by the routing engine, in engine units"""
    total_distance_m: float
    total_time_s: float
    geometry: List[Coordinate] = field(default_factory=list)


class RoutingEngine(ABC):
    """Routing engine abstract interface"""

    @abstractmethod
    async def route(
        self, coordinates: Sequence[Coordinate], profile: str = "driving"
    ) -> List[EngineRoute]:
        """Return route alternatives through the coordinates, in order.

        Raises UpstreamUnavailableError when the engine is unreachable or
        answers with something that is not a route.
        """
        pass
