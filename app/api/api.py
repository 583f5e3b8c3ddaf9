# app/api/api.py
from typing import Optional

from fastapi import APIRouter, Query, Request

from app.core.registry import get_store
from app.schemas.pydantic_ import dump

router = APIRouter(prefix="/api")


def client_key(request: Request) -> str:
    """Best-effort requester identity; forwarded-for is spoofable and that is fine here."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


@router.get("/geoapify/autocomplete")
def autocomplete(
    request: Request,
    text: Optional[str] = Query(None, description="Free-text address, 3+ characters"),
    limit: Optional[str] = Query(None, description="Maximum results (default 5)"),
):
    """Structured address suggestions from Geoapify (Hebrew & English)."""
    store = get_store()
    results = store.autocomplete(text, limit, client_key(request))
    return [dump(r) for r in results]


@router.get("/geocoding/search")
def search(
    request: Request,
    q: Optional[str] = Query(None, description="Free text, 2+ characters"),
    kind: Optional[str] = Query(None, alias="type", description="street | city | country | address"),
    limit: Optional[str] = Query(None),
    country: Optional[str] = Query(None, description="Optional country context"),
    city: Optional[str] = Query(None, description="Optional city context"),
):
    """
    Ranked, deduplicated suggestions from OpenStreetMap for street/city/country,
    or the single best coordinate match (or null) for type=address.
    """
    store = get_store()
    result = store.search(q, kind, limit, client_key(request), country=country, city=city)
    if isinstance(result, list) or result is None:
        return result
    return dump(result)


@router.get("/geoapify/reverse")
def reverse(
    request: Request,
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None),
):
    """Human-readable "city, state, country" label for a point."""
    store = get_store()
    return dump(store.reverse(lat, lon, client_key(request)))
