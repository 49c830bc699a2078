import asyncio
import json

import pytest

from roadbook.errors import (
    EnrichmentMismatchError,
    MalformedModelResponseError,
    UpstreamUnavailableError,
)
from roadbook.models.enrichment import PaidStatus
from roadbook.models.geo import Coordinate, Waypoint
from roadbook.services.enrichment import (
    EnrichmentOrchestrator,
    NarrativeLLMClient,
    NarrativeValidator,
    parse_paid_status,
)

PARIS = Waypoint(id="wp-paris", coordinate=Coordinate(lat=48.8566, lng=2.3522), address="Paris, France")
LYON = Waypoint(id="wp-lyon", coordinate=Coordinate(lat=45.764, lng=4.8357), address="Lyon, France")

LOUVRE = Coordinate(lat=48.8606, lng=2.3376)
FOURVIERE = Coordinate(lat=45.7623, lng=4.8227)


def _narrative(address, places):
    return {
        "address": address,
        "introduction": f"About {address}",
        "creationDate": "52 BC",
        "placesToVisit": places,
    }


def _place(name, address, paid="No"):
    return {"name": name, "address": address, "context": f"Visit {name}", "paid": paid}


PAYLOAD = {
    "results": [
        _narrative(
            "Paris, France",
            [
                _place("Louvre", "Rue de Rivoli, Paris", paid="17 EUR"),
                _place("Hidden spot", "nonexistent place xyz123"),
            ],
        ),
        _narrative("Lyon, France", [_place("Fourviere", "Place de Fourviere, Lyon", paid="Yes")]),
    ]
}


class StubLLMClient:
    def __init__(self, payload):
        self.payload = payload
        self.received = []

    def generate(self, addresses):
        self.received.append(list(addresses))
        return self.payload


class StubGeocoder:
    def __init__(self, known=None, *, slow=(), broken=()):
        self.known = known or {}
        self.slow = set(slow)
        self.broken = set(broken)
        self.forward_calls = []

    async def reverse_geocode(self, coordinate):
        return "unused"

    async def forward_geocode(self, address):
        self.forward_calls.append(address)
        if address in self.slow:
            await asyncio.sleep(1)
        if address in self.broken:
            raise RuntimeError("provider exploded")
        return self.known.get(address)


def _orchestrator(payload=PAYLOAD, geocoder=None, **kwargs):
    geocoder = geocoder or StubGeocoder(
        {"Rue de Rivoli, Paris": LOUVRE, "Place de Fourviere, Lyon": FOURVIERE}
    )
    return EnrichmentOrchestrator(StubLLMClient(payload), geocoder, **kwargs), geocoder


def test_enrich_sends_addresses_in_order_and_links_waypoints():
    orchestrator, geocoder = _orchestrator()

    result = asyncio.run(orchestrator.enrich([PARIS, LYON]))

    assert orchestrator.llm_client.received == [["Paris, France", "Lyon, France"]]
    assert [n.waypoint_id for n in result.narratives] == ["wp-paris", "wp-lyon"]
    assert result.narratives[0].introduction == "About Paris, France"
    assert result.narratives[0].established_date == "52 BC"
    assert geocoder.forward_calls == [
        "Rue de Rivoli, Paris",
        "nonexistent place xyz123",
        "Place de Fourviere, Lyon",
    ]


def test_unresolved_place_stays_listed_without_coordinate():
    orchestrator, _ = _orchestrator()

    result = asyncio.run(orchestrator.enrich([PARIS, LYON]))

    paris_places = result.narratives[0].places_of_interest
    assert [p.name for p in paris_places] == ["Louvre", "Hidden spot"]
    assert paris_places[0].coordinate == LOUVRE
    assert paris_places[1].coordinate is None
    assert result.narratives[1].places_of_interest[0].coordinate == FOURVIERE


def test_mismatched_result_count_is_reported_not_truncated():
    payload = {"results": [PAYLOAD["results"][0]]}
    orchestrator, geocoder = _orchestrator(payload)

    with pytest.raises(EnrichmentMismatchError) as exc_info:
        asyncio.run(orchestrator.enrich([PARIS, LYON]))

    assert exc_info.value.expected == 2
    assert exc_info.value.received == 1
    assert exc_info.value.to_dict()["error"] == "enrichment_mismatch"
    assert geocoder.forward_calls == []


def test_slow_or_failing_geocodes_do_not_discard_other_places():
    geocoder = StubGeocoder(
        {"Rue de Rivoli, Paris": LOUVRE, "Place de Fourviere, Lyon": FOURVIERE},
        slow={"nonexistent place xyz123"},
        broken={"Place de Fourviere, Lyon"},
    )
    orchestrator, _ = _orchestrator(geocoder=geocoder, poi_timeout_s=0.05)

    result = asyncio.run(orchestrator.enrich([PARIS, LYON]))

    places = [place for _, place in result.places()]
    assert [p.coordinate for p in places] == [LOUVRE, None, None]
    assert len(geocoder.forward_calls) == 3


def test_places_without_address_are_not_geocoded():
    payload = {
        "results": [
            _narrative("Paris, France", [_place("Somewhere", "")]),
            _narrative("Lyon, France", []),
        ]
    }
    orchestrator, geocoder = _orchestrator(payload)

    result = asyncio.run(orchestrator.enrich([PARIS, LYON]))

    assert geocoder.forward_calls == []
    assert result.narratives[0].places_of_interest[0].coordinate is None


def test_enrich_reports_progress():
    orchestrator, _ = _orchestrator()
    progress = []

    asyncio.run(orchestrator.enrich([PARIS, LYON], on_progress=lambda d, t: progress.append((d, t))))

    assert progress == [(1, 3), (2, 3), (3, 3)]


@pytest.mark.parametrize(
    "raw,status,price",
    [
        ("Yes", PaidStatus.PAID, None),
        ("no", PaidStatus.FREE, None),
        ("Free", PaidStatus.FREE, None),
        ("", PaidStatus.UNKNOWN, None),
        (None, PaidStatus.UNKNOWN, None),
        ("N/A", PaidStatus.UNKNOWN, None),
        (True, PaidStatus.PAID, None),
        ("17 EUR", PaidStatus.PRICE, "17 EUR"),
        ("Adults 12€, children free", PaidStatus.PRICE, "Adults 12€, children free"),
    ],
)
def test_parse_paid_status(raw, status, price):
    assert parse_paid_status(raw) == (status, price)


def test_validator_repairs_missing_fields():
    payload = {
        "results": [
            {"placesToVisit": [{"name": "Museum"}, "not an object"]},
            {"address": "Lyon", "introduction": None, "placesToVisit": None},
        ]
    }

    narratives = NarrativeValidator().validate(payload, ["Paris, France", "Lyon, France"])

    assert narratives[0].origin_address == "Paris, France"
    assert narratives[0].introduction == ""
    assert [p.name for p in narratives[0].places_of_interest] == ["Museum"]
    assert narratives[0].places_of_interest[0].paid_status == PaidStatus.UNKNOWN
    assert narratives[1].origin_address == "Lyon"
    assert narratives[1].places_of_interest == []


def test_validator_rejects_payload_without_results_list():
    with pytest.raises(MalformedModelResponseError):
        NarrativeValidator().validate({"answer": "hello"}, ["Paris"])
    with pytest.raises(MalformedModelResponseError):
        NarrativeValidator().validate({"results": ["text"]}, ["Paris"])


class FakeCompletions:
    def __init__(self, content=None, *, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return {"choices": [{"message": {"role": "assistant", "content": self.content}}]}


class FakeOpenAI:
    def __init__(self, completions):
        self.chat = type("Chat", (), {"completions": completions})()


def test_llm_client_requests_json_object_mode():
    completions = FakeCompletions(json.dumps(PAYLOAD))
    client = NarrativeLLMClient(
        model="gpt-4o-mini", temperature=0.4, client=FakeOpenAI(completions)
    )

    payload = client.generate(["Paris, France", "Lyon, France"])

    assert payload == PAYLOAD
    call = completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["temperature"] == 0.4
    assert call["response_format"] == {"type": "json_object"}
    assert call["messages"][0]["role"] == "system"
    assert "- Paris, France\n- Lyon, France" in call["messages"][1]["content"]


def test_llm_client_extracts_json_wrapped_in_text():
    completions = FakeCompletions('Sure! {"results": []} Hope this helps.')
    client = NarrativeLLMClient(model="m", client=FakeOpenAI(completions))

    assert client.generate(["Paris"]) == {"results": []}


def test_llm_client_rejects_non_json_content():
    client = NarrativeLLMClient(
        model="m", client=FakeOpenAI(FakeCompletions("I cannot help with that."))
    )

    with pytest.raises(MalformedModelResponseError):
        client.generate(["Paris"])


def test_llm_client_wraps_transport_errors():
    client = NarrativeLLMClient(
        model="m", client=FakeOpenAI(FakeCompletions(error=ConnectionError("offline")))
    )

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        client.generate(["Paris"])
    assert exc_info.value.provider == "openai"
