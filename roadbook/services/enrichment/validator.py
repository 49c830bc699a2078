"""Validation and repair of raw narrative payloads from the language model."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from roadbook.errors import EnrichmentMismatchError, MalformedModelResponseError
from roadbook.models.enrichment import LocationNarrative, PaidStatus, PlaceOfInterest

_UNKNOWN_VALUES = {"", "unknown", "n/a", "none"}
_PAID_VALUES = {"yes", "paid", "true"}
_FREE_VALUES = {"no", "free", "false"}


def parse_paid_status(value: object) -> Tuple[PaidStatus, Optional[str]]:
    """Map the model's free-text 'paid' field to (status, raw price text)"""
    if isinstance(value, bool):
        return (PaidStatus.PAID if value else PaidStatus.FREE), None
    if value is None:
        return PaidStatus.UNKNOWN, None

    text = str(value).strip()
    lowered = text.lower().rstrip(".")
    if lowered in _UNKNOWN_VALUES:
        return PaidStatus.UNKNOWN, None
    if lowered in _PAID_VALUES:
        return PaidStatus.PAID, None
    if lowered in _FREE_VALUES:
        return PaidStatus.FREE, None
    return PaidStatus.PRICE, text


class NarrativeValidator:
    """Validate and repair raw LLM output into LocationNarrative instances."""

    def validate(
        self, payload: Dict[str, Any], addresses: Sequence[str]
    ) -> List[LocationNarrative]:
        if not isinstance(payload, dict):
            raise MalformedModelResponseError("Language model response is not a JSON object")

        results = payload.get("results")
        if not isinstance(results, list):
            raise MalformedModelResponseError("Language model response has no 'results' list")

        if len(results) != len(addresses):
            raise EnrichmentMismatchError(expected=len(addresses), received=len(results))

        narratives = []
        for index, (entry, address) in enumerate(zip(results, addresses)):
            if not isinstance(entry, dict):
                raise MalformedModelResponseError(f"Result {index} is not an object")
            narratives.append(self._repair_narrative(entry, address))
        return narratives

    def _repair_narrative(self, entry: Dict[str, Any], address: str) -> LocationNarrative:
        places_raw = entry.get("placesToVisit")
        places = []
        if isinstance(places_raw, list):
            for place in places_raw:
                # Entries that are not objects are dropped, not fatal
                if isinstance(place, dict):
                    places.append(self._repair_place(place))

        return LocationNarrative(
            # Position defines the link; the echoed address is informational only
            origin_address=self._text(entry.get("address")) or address,
            introduction=self._text(entry.get("introduction")),
            established_date=self._text(entry.get("creationDate")),
            places_of_interest=places,
        )

    def _repair_place(self, place: Dict[str, Any]) -> PlaceOfInterest:
        status, price = parse_paid_status(place.get("paid"))
        return PlaceOfInterest(
            name=self._text(place.get("name")),
            address=self._text(place.get("address")),
            context=self._text(place.get("context")),
            paid_status=status,
            price=price,
        )

    @staticmethod
    def _text(value: object) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, (int, float)):
            return str(value)
        return ""
