# app/utils/geoapify.py
"""
Geoapify address autocomplete and reverse geocoding.

geopy ships no Geoapify geocoder, so :class:`Geoapify` follows the shape of
geopy's own geocoders: it builds the URL and hands transport, timeouts and
HTTP error mapping to ``Geocoder._call_geocoder``.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import geopy.exc
from geopy.geocoders.base import DEFAULT_SENTINEL, Geocoder

from app.core.config import (
    GEOAPIFY_DOMAIN,
    GEOAPIFY_LANG,
    GEOCODER_TIMEOUT,
    GEOCODER_USER_AGENT,
    get_geoapify_api_key,
)
from app.core.errors import ConfigurationError
from app.schemas.pydantic_ import (
    AutocompleteResult,
    GeoQuery,
    QueryKind,
    ReverseComponents,
    ReverseResult,
)
from app.utils.providers import GeocodingProvider, translate_geopy_error

log = logging.getLogger(__name__)


class Geoapify(Geocoder):
    """Thin geopy-style client for https://api.geoapify.com/v1/geocode."""

    autocomplete_path = "/v1/geocode/autocomplete"
    reverse_path = "/v1/geocode/reverse"

    def __init__(
        self,
        api_key: str,
        *,
        domain: str = GEOAPIFY_DOMAIN,
        scheme: Optional[str] = None,
        timeout=DEFAULT_SENTINEL,
        proxies=DEFAULT_SENTINEL,
        user_agent: Optional[str] = None,
        ssl_context=DEFAULT_SENTINEL,
        adapter_factory=None,
    ):
        super().__init__(
            scheme=scheme,
            timeout=timeout,
            proxies=proxies,
            user_agent=user_agent,
            ssl_context=ssl_context,
            adapter_factory=adapter_factory,
        )
        self.api_key = api_key
        self.domain = domain.strip("/")
        self.autocomplete_api = "%s://%s%s" % (self.scheme, self.domain, self.autocomplete_path)
        self.reverse_api = "%s://%s%s" % (self.scheme, self.domain, self.reverse_path)

    def autocomplete(
        self,
        text: str,
        *,
        limit: int = 5,
        lang: Optional[str] = GEOAPIFY_LANG,
        timeout=DEFAULT_SENTINEL,
    ) -> List[Dict[str, Any]]:
        """Return the raw ``properties`` of each feature Geoapify suggests."""
        params = {"text": text, "limit": limit, "apiKey": self.api_key}
        if lang:
            params["lang"] = lang
        url = "?".join((self.autocomplete_api, urlencode(params)))
        return self._call_geocoder(
            url, self._parse_features, timeout=timeout, headers={"Accept": "application/json"}
        )

    def reverse(self, query, *, timeout=DEFAULT_SENTINEL) -> Optional[Dict[str, Any]]:
        """Return the properties of the best match for a point, or None."""
        lat, lon = self._coerce_point_to_string(query).split(",")
        params = {"lat": lat, "lon": lon, "format": "json", "apiKey": self.api_key}
        url = "?".join((self.reverse_api, urlencode(params)))
        return self._call_geocoder(
            url, self._parse_reverse, timeout=timeout, headers={"Accept": "application/json"}
        )

    @staticmethod
    def _parse_features(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        features = (payload or {}).get("features") or []
        return [f.get("properties") or {} for f in features]

    @staticmethod
    def _parse_reverse(payload: Any) -> Optional[Dict[str, Any]]:
        # GeoJSON (`features`) and format=json (`results`) both occur in the wild.
        if not isinstance(payload, dict):
            return None
        features = payload.get("features")
        if isinstance(features, list) and features:
            return features[0].get("properties") or {}
        results = payload.get("results")
        if isinstance(results, list) and results:
            return results[0]
        return payload or None


def to_autocomplete_result(props: Dict[str, Any]) -> AutocompleteResult:
    return AutocompleteResult(
        formatted=props.get("formatted") or "",
        street=props.get("street"),
        house_number=props.get("housenumber"),
        city=props.get("city") or props.get("suburb"),
        postcode=props.get("postcode"),
        state=props.get("state"),
        country=props.get("country"),
        country_code=props.get("country_code"),
        lat=props["lat"],
        lon=props["lon"],
        place_id=str(props.get("place_id") or ""),
        result_type=props.get("result_type") or "unknown",
    )


def format_reverse_label(
    props: Optional[Dict[str, Any]], lat: float, lon: float
) -> ReverseResult:
    """
    Short "city, state, country" label for a point. Falls back to the
    provider's formatted address, then to the bare coordinates.
    """
    props = props or {}
    formatted = props.get("formatted") or None

    parts: List[str] = []
    for part in (props.get("city"), props.get("state"), props.get("country")):
        if part and part.strip() and part not in parts:
            parts.append(part)

    if parts:
        label = ", ".join(parts)
    elif formatted:
        label = formatted
    else:
        label = f"{lat:.2f}, {lon:.2f}"

    return ReverseResult(
        formatted=label,
        raw_formatted=formatted,
        components=ReverseComponents(
            city=props.get("city") or None,
            state=props.get("state") or None,
            country=props.get("country") or None,
            country_code=props.get("country_code") or None,
        ),
        lat=lat,
        lon=lon,
    )


class GeoapifyProvider(GeocodingProvider):
    """Structured-address provider: autocomplete and reverse lookups."""

    name = "geoapify"
    kinds = frozenset({QueryKind.AUTOCOMPLETE})

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        timeout: float = GEOCODER_TIMEOUT,
        lang: Optional[str] = GEOAPIFY_LANG,
        adapter_factory=None,
        key_loader=get_geoapify_api_key,
    ):
        self._api_key = api_key
        self._key_loader = key_loader
        self.timeout = timeout
        self.lang = lang
        self.adapter_factory = adapter_factory
        self._client: Optional[Geoapify] = None

    @property
    def client(self) -> Geoapify:
        api_key = self._api_key or (self._key_loader() if self._key_loader else None)
        if not api_key:
            raise ConfigurationError(detail="GEOAPIFY_API_KEY is not configured")
        if self._client is None or self._client.api_key != api_key:
            self._client = Geoapify(
                api_key,
                timeout=self.timeout,
                user_agent=GEOCODER_USER_AGENT,
                adapter_factory=self.adapter_factory,
            )
        return self._client

    def autocomplete(self, query: GeoQuery) -> List[AutocompleteResult]:
        client = self.client
        try:
            features = client.autocomplete(query.text, limit=query.limit, lang=self.lang)
        except geopy.exc.GeopyError as e:
            raise translate_geopy_error(self.name, e) from e
        return [to_autocomplete_result(p) for p in features if "lat" in p and "lon" in p]

    def reverse(self, lat: float, lon: float) -> ReverseResult:
        client = self.client
        try:
            props = client.reverse((lat, lon))
        except geopy.exc.GeopyError as e:
            raise translate_geopy_error(self.name, e) from e
        return format_reverse_label(props, lat, lon)
