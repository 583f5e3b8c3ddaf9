import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.cache import TTLCache  # noqa: E402
from app.core.rate_limit import FixedWindowRateLimiter  # noqa: E402
from app.core.store import GeocodingProxy  # noqa: E402
from app.schemas.pydantic_ import QueryKind  # noqa: E402
from app.utils.geoapify import format_reverse_label, to_autocomplete_result  # noqa: E402
from app.utils.providers import GeocodingProvider  # noqa: E402


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def geoapify_props(formatted: str, **extra: Any) -> Dict[str, Any]:
    props = {
        "formatted": formatted,
        "lat": 32.08,
        "lon": 34.78,
        "place_id": f"pid-{formatted}",
        "result_type": "street",
    }
    props.update(extra)
    return props


def osm_record(display_name: str, **address: str) -> Dict[str, Any]:
    return {
        "display_name": display_name,
        "lat": "32.0853",
        "lon": "34.7818",
        "address": address,
    }


class FakeGeoapify(GeocodingProvider):
    name = "fake-geoapify"
    kinds = frozenset({QueryKind.AUTOCOMPLETE})

    def __init__(self):
        self.features: List[Dict[str, Any]] = []
        self.reverse_props: Optional[Dict[str, Any]] = None
        self.error: Optional[Exception] = None
        self.calls = 0
        self.reverse_calls = 0

    def autocomplete(self, query):
        self.calls += 1
        if self.error:
            raise self.error
        return [to_autocomplete_result(p) for p in self.features][: query.limit]

    def reverse(self, lat, lon):
        self.reverse_calls += 1
        if self.error:
            raise self.error
        return format_reverse_label(self.reverse_props, lat, lon)


class FakeNominatim(GeocodingProvider):
    name = "fake-nominatim"
    kinds = frozenset({QueryKind.STREET, QueryKind.CITY, QueryKind.COUNTRY, QueryKind.ADDRESS})

    def __init__(self):
        self.records: List[Dict[str, Any]] = []
        self.error: Optional[Exception] = None
        self.calls = 0
        self.queries = []

    def search(self, query):
        self.calls += 1
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.records)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def geoapify():
    return FakeGeoapify()


@pytest.fixture
def nominatim():
    return FakeNominatim()


@pytest.fixture
def proxy(clock, geoapify, nominatim):
    return GeocodingProxy(
        providers=[geoapify, nominatim],
        cache=TTLCache(default_ttl=600, timer=clock),
        autocomplete_limiter=FixedWindowRateLimiter(30, 60, timer=clock),
        search_limiter=FixedWindowRateLimiter(30, 60, timer=clock),
        reverse_limiter=FixedWindowRateLimiter(30, 60, timer=clock),
    )


@pytest.fixture
def client(proxy):
    from app.main import create_app

    with TestClient(create_app(proxy)) as c:
        yield c
