# app/utils/geocode.py
"""
Free-text lookups against OpenStreetMap Nominatim via geopy.

Nominatim returns many loosely-ranked records; this module only fetches
them. Deduplication and ranking live in ``app.utils.ranking``.
"""

import logging
from typing import Any, Dict, List, Optional

import geopy.exc
from geopy.geocoders import Nominatim

from app.core.config import (
    GEOCODER_DOMAIN,
    GEOCODER_LANGUAGE,
    GEOCODER_SCHEME,
    GEOCODER_TIMEOUT,
    GEOCODER_USER_AGENT,
)
from app.schemas.pydantic_ import GeoQuery, QueryKind
from app.utils.providers import GeocodingProvider, translate_geopy_error

log = logging.getLogger(__name__)

# featuretype sent per kind; address lookups are unrestricted and single-result
FEATURE_TYPES = {
    QueryKind.STREET: "street",
    QueryKind.CITY: "city",
    QueryKind.COUNTRY: "country",
}


def build_geolocator(adapter_factory=None) -> Nominatim:
    """Construct the Nominatim geocoder safely."""
    return Nominatim(
        user_agent=GEOCODER_USER_AGENT,
        timeout=GEOCODER_TIMEOUT,
        domain=GEOCODER_DOMAIN,
        scheme=GEOCODER_SCHEME,
        adapter_factory=adapter_factory,
    )


def with_context(query: GeoQuery) -> str:
    """Append country/city context to the free text the way users type it."""
    text = query.text
    if query.kind is QueryKind.STREET:
        if query.country:
            text += f", {query.country}"
        if query.city:
            text += f", {query.city}"
    elif query.kind is QueryKind.CITY and query.country:
        text += f", {query.country}"
    return text


class NominatimProvider(GeocodingProvider):
    """Community free-text provider for street/city/country/address search."""

    name = "nominatim"
    kinds = frozenset({QueryKind.STREET, QueryKind.CITY, QueryKind.COUNTRY, QueryKind.ADDRESS})

    def __init__(self, geolocator: Optional[Nominatim] = None, language: str = GEOCODER_LANGUAGE):
        self.geolocator = geolocator or build_geolocator()
        self.language = language

    def search(self, query: GeoQuery) -> List[Dict[str, Any]]:
        if query.kind is QueryKind.ADDRESS:
            params = dict(limit=1, addressdetails=True)
        else:
            params = dict(
                limit=query.limit,
                addressdetails=True,
                featuretype=FEATURE_TYPES[query.kind],
            )

        try:
            locations = self.geolocator.geocode(
                with_context(query),
                exactly_one=False,
                language=self.language,
                **params,
            )
        except geopy.exc.GeopyError as e:
            raise translate_geopy_error(self.name, e) from e

        return [loc.raw for loc in locations or []]
