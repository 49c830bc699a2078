import asyncio

import httpx

from roadbook.config import Settings
from roadbook.models.geo import Coordinate
from roadbook.services.geocoding import (
    APICounter,
    NominatimGeocodingService,
    NullGeocodeCache,
    RedisGeocodeCache,
    TTLGeocodeCache,
    build_cache,
    format_coordinate_fallback,
)
from roadbook.services.geocoding.cache import forward_key, reverse_key

LONDON = Coordinate(lat=51.5, lng=-0.1)


class RecordingHandler:
    """httpx MockTransport handler that records requests"""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


def run_with_service(handler, coro_factory, **kwargs):
    async def runner():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = NominatimGeocodingService(
                base_url="https://nominatim.test",
                user_agent="RoadbookTests/1.0",
                client=client,
                **kwargs,
            )
            return await coro_factory(service)

    return asyncio.run(runner())


def test_fallback_format_uses_six_decimals():
    assert format_coordinate_fallback(LONDON) == "51.500000, -0.100000"


def test_reverse_geocode_returns_display_name_and_sends_identity_headers():
    handler = RecordingHandler(
        lambda request: httpx.Response(200, json={"display_name": "Westminster, London"})
    )

    address = run_with_service(handler, lambda s: s.reverse_geocode(LONDON))

    assert address == "Westminster, London"
    request = handler.requests[0]
    assert request.url.path == "/reverse"
    assert request.url.params["format"] == "json"
    assert request.url.params["lat"] == "51.5"
    assert request.url.params["lon"] == "-0.1"
    assert request.url.params["zoom"] == "18"
    assert request.headers["user-agent"] == "RoadbookTests/1.0"
    assert request.headers["accept-language"] == "en"


def test_reverse_geocode_falls_back_on_http_error():
    handler = RecordingHandler(lambda request: httpx.Response(503, text="busy"))

    address = run_with_service(handler, lambda s: s.reverse_geocode(LONDON))

    assert address == "51.500000, -0.100000"


def test_reverse_geocode_falls_back_on_network_error():
    def respond(request):
        raise httpx.ConnectError("connection refused", request=request)

    address = run_with_service(RecordingHandler(respond), lambda s: s.reverse_geocode(LONDON))

    assert address == "51.500000, -0.100000"


def test_reverse_geocode_falls_back_on_malformed_body():
    for respond in (
        lambda request: httpx.Response(200, text="<html>not json</html>"),
        lambda request: httpx.Response(200, json={"error": "Unable to geocode"}),
        lambda request: httpx.Response(200, json=["unexpected"]),
    ):
        address = run_with_service(
            RecordingHandler(respond), lambda s: s.reverse_geocode(LONDON)
        )
        assert address == "51.500000, -0.100000"


def test_reverse_geocode_falls_back_when_daily_budget_is_spent():
    handler = RecordingHandler(
        lambda request: httpx.Response(200, json={"display_name": "unused"})
    )

    address = run_with_service(
        handler, lambda s: s.reverse_geocode(LONDON), counter=APICounter(0)
    )

    assert address == "51.500000, -0.100000"
    assert handler.requests == []


def test_forward_geocode_takes_first_result():
    handler = RecordingHandler(
        lambda request: httpx.Response(
            200,
            json=[
                {"lat": "48.8566", "lon": "2.3522", "display_name": "Paris"},
                {"lat": "33.6609", "lon": "-95.5555", "display_name": "Paris, Texas"},
            ],
        )
    )

    coordinate = run_with_service(handler, lambda s: s.forward_geocode("Paris, France"))

    assert coordinate == Coordinate(lat=48.8566, lng=2.3522)
    request = handler.requests[0]
    assert request.url.path == "/search"
    assert request.url.params["q"] == "Paris, France"
    assert request.url.params["format"] == "json"


def test_forward_geocode_returns_none_for_empty_results():
    handler = RecordingHandler(lambda request: httpx.Response(200, json=[]))

    coordinate = run_with_service(
        handler, lambda s: s.forward_geocode("nonexistent place xyz123")
    )

    assert coordinate is None


def test_forward_geocode_returns_none_on_failure_or_bad_values():
    for respond in (
        lambda request: httpx.Response(500),
        lambda request: httpx.Response(200, json=[{"lat": "north", "lon": "2.0"}]),
        lambda request: httpx.Response(200, json=[{"lat": "123.0", "lon": "2.0"}]),
    ):
        coordinate = run_with_service(
            RecordingHandler(respond), lambda s: s.forward_geocode("Somewhere")
        )
        assert coordinate is None


def test_forward_geocode_skips_blank_addresses():
    handler = RecordingHandler(lambda request: httpx.Response(200, json=[]))

    assert run_with_service(handler, lambda s: s.forward_geocode("   ")) is None
    assert handler.requests == []


def test_successful_lookups_are_cached_but_fallbacks_are_not():
    responses = iter(
        [
            httpx.Response(500),
            httpx.Response(200, json={"display_name": "Westminster, London"}),
        ]
    )
    handler = RecordingHandler(lambda request: next(responses))
    cache = TTLGeocodeCache(ttl_s=60)

    async def lookups(service):
        first = await service.reverse_geocode(LONDON)
        second = await service.reverse_geocode(LONDON)
        third = await service.reverse_geocode(LONDON)
        return first, second, third

    first, second, third = run_with_service(handler, lookups, cache=cache)

    assert first == "51.500000, -0.100000"
    assert second == "Westminster, London"
    assert third == "Westminster, London"
    assert len(handler.requests) == 2


def test_forward_results_are_cached_as_coordinates():
    handler = RecordingHandler(
        lambda request: httpx.Response(200, json=[{"lat": "45.764", "lon": "4.8357"}])
    )
    cache = TTLGeocodeCache(ttl_s=60)

    async def lookups(service):
        return [await service.forward_geocode("Lyon") for _ in range(3)]

    results = run_with_service(handler, lookups, cache=cache)

    assert results == [Coordinate(lat=45.764, lng=4.8357)] * 3
    assert len(handler.requests) == 1


def test_empty_injected_cache_and_counter_are_kept():
    cache = TTLGeocodeCache(ttl_s=60)
    counter = APICounter(max_calls_per_day=0)
    assert len(cache) == 0

    service = NominatimGeocodingService(cache=cache, counter=counter)

    assert service.cache is cache
    assert service.counter is counter


def test_memory_backend_from_settings_caches_lookups():
    handler = RecordingHandler(
        lambda request: httpx.Response(200, json={"display_name": "Westminster, London"})
    )
    cache = build_cache(Settings(geocode_cache_backend="memory"))

    async def lookups(service):
        return [await service.reverse_geocode(LONDON) for _ in range(2)]

    results = run_with_service(handler, lookups, cache=cache)

    assert results == ["Westminster, London"] * 2
    assert len(handler.requests) == 1
    assert len(cache) == 1


def test_ttl_cache_expires_entries():
    now = [1000.0]
    cache = TTLGeocodeCache(ttl_s=10, clock=lambda: now[0])
    cache.set("k", "v")

    assert cache.get("k") == "v"
    now[0] += 11
    assert cache.get("k") is None
    assert len(cache) == 0


def test_cache_keys_are_stable():
    assert reverse_key(LONDON) == "rb:geocode:reverse:51.500000,-0.100000"
    assert forward_key("Paris  France") == forward_key("paris france")
    assert forward_key("Paris") != forward_key("Lyon")


class BrokenRedis:
    def get(self, key):
        raise ConnectionError("redis down")

    def set(self, key, value, ex=None):
        raise ConnectionError("redis down")


class DictRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex


def test_redis_cache_degrades_to_miss():
    cache = RedisGeocodeCache(BrokenRedis(), ttl_s=60)

    cache.set("k", {"lat": 1.0, "lng": 2.0})
    assert cache.get("k") is None


def test_redis_cache_stores_json_with_ttl():
    client = DictRedis()
    cache = RedisGeocodeCache(client, ttl_s=60)

    cache.set("k", {"lat": 1.5, "lng": 2.25})

    assert client.data["k"] == '{"lat": 1.5, "lng": 2.25}'
    assert client.ttls["k"] == 60
    assert cache.get("k") == {"lat": 1.5, "lng": 2.25}


def test_build_cache_selects_backend():
    assert isinstance(build_cache(Settings(geocode_cache_backend="none")), NullGeocodeCache)
    assert isinstance(build_cache(Settings(geocode_cache_backend="memory")), TTLGeocodeCache)
    assert isinstance(
        build_cache(Settings(geocode_cache_backend="redis", redis_url="")), NullGeocodeCache
    )


def test_api_counter_tracks_remaining_calls():
    counter = APICounter(max_calls_per_day=2)

    assert counter.can_make_call()
    counter.record_call()
    counter.record_call()

    assert not counter.can_make_call()
    assert counter.get_remaining_calls() == 0
