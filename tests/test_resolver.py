import asyncio
from pathlib import Path

import httpx
import pytest
import structlog

from placecore.fetch.session import PageSession
from placecore.geocode.resolver import PlaceResolver, build_place_url, resolve_many
from placecore.models import Coordinate, FetchFailure, NotFound, ResolvedLocation
from placecore.observability.metrics import MetricsRegistry
from placecore.settings import ResolverSettings

FIXTURES = Path(__file__).parent / "fixtures" / "html"


def _fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def _resolver(handler, **kwargs) -> PlaceResolver:
    return PlaceResolver(transport=httpx.MockTransport(handler), **kwargs)


def test_resolve_embedded_page_sends_one_request():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=_fixture("place_embedded.html"))

    result = _resolver(handler).resolve("Thrissur, Kerala")

    assert isinstance(result, ResolvedLocation)
    assert result.ok
    assert result.coordinate == Coordinate(latitude=10.5276, longitude=76.2144)
    assert result.stage == "embedded_json"
    assert result.address == "Thrissur, Kerala 680001"
    assert result.postal_code == "680001"
    assert len(seen) == 1
    request = seen[0]
    assert str(request.url).startswith("https://www.google.com/maps/place/Thrissur")
    assert request.headers["User-Agent"].startswith("Mozilla/5.0")
    assert request.headers["Accept-Language"] == "en-US,en;q=0.9"
    timeout = request.extensions["timeout"]
    assert timeout["connect"] == 10.0
    assert timeout["read"] == 10.0


def test_build_place_url_encodes_name():
    url = build_place_url("https://maps.example/place/", "Café & Bar, Kochi")
    assert url == "https://maps.example/place/Caf%C3%A9+%26+Bar%2C+Kochi"


def test_configured_timeouts_reach_the_request():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text="[null,null,[1.5,2.5]]")

    settings = ResolverSettings(connect_timeout=3.0, read_timeout=7.0)
    _resolver(handler, settings=settings).resolve("anywhere")
    assert seen[0].extensions["timeout"]["connect"] == 3.0
    assert seen[0].extensions["timeout"]["read"] == 7.0


def test_page_without_coordinates_is_not_found():
    result = _resolver(lambda request: httpx.Response(200, text=_fixture("place_no_coords.html"))).resolve("Atlantis")
    assert isinstance(result, NotFound)
    assert not result.ok
    assert result.reason == "no coordinates found"


def test_out_of_range_candidate_is_not_found():
    result = _resolver(lambda request: httpx.Response(200, text="[null,null,[76.2,90.0001]]")).resolve("North")
    assert isinstance(result, NotFound)
    assert "invalid coordinates" in result.reason


def test_boundary_coordinates_accepted():
    result = _resolver(lambda request: httpx.Response(200, text="[null,null,[180.0,90.0]]")).resolve("Pole")
    assert isinstance(result, ResolvedLocation)
    assert result.coordinate == Coordinate(90.0, 180.0)


def test_non_2xx_is_fetch_failure():
    result = _resolver(lambda request: httpx.Response(503, text="busy")).resolve("Kochi")
    assert isinstance(result, FetchFailure)
    assert "HTTP 503" in result.detail


@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("read timed out"),
    ],
)
def test_transport_errors_are_fetch_failures(error):
    def handler(request):
        raise error

    result = _resolver(handler).resolve("Kochi")
    assert isinstance(result, FetchFailure)
    assert result.place == "Kochi"
    assert result.detail


def test_blank_place_skips_network():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, text="")

    result = _resolver(handler).resolve("   ")
    assert isinstance(result, NotFound)
    assert calls == []


def test_metrics_are_recorded():
    metrics = MetricsRegistry()
    pages = {
        "good": _fixture("place_embedded.html"),
        "empty": _fixture("place_no_coords.html"),
    }

    def handler(request):
        name = request.url.path.rsplit("/", 1)[-1]
        if name not in pages:
            return httpx.Response(404)
        return httpx.Response(200, text=pages[name])

    resolver = _resolver(handler, metrics=metrics)
    resolver.resolve("good")
    resolver.resolve("empty")
    resolver.resolve("missing")

    assert metrics.get("resolutions") == 3
    assert metrics.get("resolved") == 1
    assert metrics.get("not_found") == 1
    assert metrics.get("fetch_errors") == 1
    assert metrics.get("stage_embedded_json") == 1
    assert metrics.get("pages_fetched") == 3


def test_resolve_leaves_caller_context_bound():
    seen = []

    def handler(request):
        seen.append(structlog.contextvars.get_contextvars())
        return httpx.Response(200, text=_fixture("place_embedded.html"))

    structlog.contextvars.bind_contextvars(request_id="batch-1")
    try:
        _resolver(handler).resolve("Thrissur")
        assert seen == [{"request_id": "batch-1", "place": "Thrissur"}]
        assert structlog.contextvars.get_contextvars() == {"request_id": "batch-1"}
    finally:
        structlog.contextvars.clear_contextvars()

def test_resolve_through_file_session():
    settings = ResolverSettings(base_url=f"file://{FIXTURES}/")
    resolver = PlaceResolver(settings, session=PageSession(None))
    result = resolver.resolve("place_static_map.html")
    assert isinstance(result, ResolvedLocation)
    assert result.coordinate == Coordinate(43.64, -79.39)
    assert result.postal_code == "M5V 3L9"


def test_missing_file_is_fetch_failure():
    settings = ResolverSettings(base_url=f"file://{FIXTURES}/")
    result = PlaceResolver(settings, session=PageSession(None)).resolve("does_not_exist.html")
    assert isinstance(result, FetchFailure)


def test_resolve_many_preserves_order():
    pages = {
        "a": "[null,null,[1.5,2.5]]",
        "b": "@3.25,4.75",
        "c": "nothing here",
    }

    def handler(request):
        return httpx.Response(200, text=pages[request.url.path.rsplit("/", 1)[-1]])

    resolver = _resolver(handler)
    results = asyncio.run(resolve_many(resolver, ["a", "b", "c", ""], concurrency=2))

    assert [result.status for result in results] == ["resolved", "resolved", "not_found", "not_found"]
    assert results[0].coordinate == Coordinate(2.5, 1.5)
    assert results[1].coordinate == Coordinate(4.75, 3.25)
