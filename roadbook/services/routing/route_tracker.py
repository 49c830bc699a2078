"""
Tracks which coordinate sequence the displayed route was computed from, so
the route is recomputed only when that basis changes and stale engine
responses are dropped.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from roadbook.models.geo import Coordinate, RouteResult, RouteStatus, RouteSummary

logger = logging.getLogger(__name__)

Basis = Tuple[Coordinate, ...]


def make_basis(coordinates: Sequence[Coordinate]) -> Basis:
    return tuple(coordinates)


@dataclass(frozen=True)
class RouteTicket:
    generation: int
    basis: Basis


class RouteTracker:
    def __init__(self):
        self.generation = 0
        self.basis: Optional[Basis] = None
        self.summary: RouteSummary = RouteSummary.absent()
        self.path: List[Coordinate] = []
        self.notice: Optional[str] = None
        self._in_flight: Optional[RouteTicket] = None

    @property
    def is_valid(self) -> bool:
        """True when a ready route exists for the recorded basis"""
        return (
            self.basis is not None
            and self._in_flight is None
            and self.summary.status == RouteStatus.READY
        )

    def needs_refresh(self, basis: Basis) -> bool:
        if len(basis) < 2:
            # Nothing to compute; caller resets instead
            return False
        return basis != self.basis

    def begin(self, basis: Basis) -> RouteTicket:
        self.generation += 1
        ticket = RouteTicket(self.generation, basis)
        self.basis = basis
        self._in_flight = ticket
        self.summary = RouteSummary.pending()
        self.notice = None
        return ticket

    def is_current(self, ticket: RouteTicket) -> bool:
        return ticket.generation == self.generation

    def complete(self, ticket: RouteTicket, result: RouteResult) -> bool:
        if not self.is_current(ticket):
            logger.debug("Dropping stale route result (generation %d)", ticket.generation)
            return False
        self.summary = result.summary
        self.path = list(result.path)
        self._in_flight = None
        return True

    def fail(self, ticket: RouteTicket, message: str) -> bool:
        if not self.is_current(ticket):
            logger.debug("Dropping stale route failure (generation %d)", ticket.generation)
            return False
        self.summary = RouteSummary.absent()
        self.path = []
        self.basis = None
        self.notice = message
        self._in_flight = None
        return True

    def reset(self) -> None:
        """Below 2 waypoints: no route, and any in-flight response is stale"""
        self.generation += 1
        self.basis = None
        self.summary = RouteSummary.absent()
        self.path = []
        self._in_flight = None
