# app/core/store.py
"""
GeocodingProxy: the per-request pipeline in front of the upstream geocoders.

validate -> rate limit -> cache -> provider -> process -> cache write -> respond
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from app.core.cache import CacheSweeper, TTLCache
from app.core.config import (
    CACHE_CLEANUP_INTERVAL_SEC,
    GEOCODER_CACHE_TTL_SEC,
    IS_PRODUCTION,
    REVERSE_CACHE_TTL_SEC,
)
from app.core.errors import (
    ConfigurationError,
    GeoProxyError,
    RateLimitExceeded,
    UnknownError,
    UpstreamRateLimited,
    UpstreamUnavailable,
    ValidationError,
)
from app.core.rate_limit import FixedWindowRateLimiter
from app.schemas.pydantic_ import (
    SEARCH_KINDS,
    AddressResult,
    AutocompleteResult,
    GeoQuery,
    QueryKind,
    ReverseResult,
)
from app.utils.geoapify import GeoapifyProvider, format_reverse_label
from app.utils.geocode import NominatimProvider
from app.utils.providers import GeocodingProvider
from app.utils.ranking import process_suggestions

log = logging.getLogger(__name__)

SearchResult = Union[List[str], Optional[AddressResult]]


@dataclass(frozen=True)
class EndpointMessages:
    """Client-facing wording differs per endpoint; the status codes do not."""

    rate_limited: str
    upstream_rate_limited: str
    upstream_failed: str = UpstreamUnavailable.default_message


AUTOCOMPLETE_MESSAGES = EndpointMessages(
    rate_limited="Rate limit exceeded. Please try again in a moment.",
    upstream_rate_limited=(
        "Service temporarily unavailable due to high traffic. Please try again later."
    ),
)
SEARCH_MESSAGES = EndpointMessages(
    rate_limited="Rate limit exceeded. Please try again later.",
    upstream_rate_limited=(
        "OpenStreetMap service is temporarily unavailable due to high traffic. "
        "Please try again later."
    ),
)
REVERSE_MESSAGES = EndpointMessages(
    rate_limited="Rate limit exceeded. Please try again shortly.",
    upstream_rate_limited="Geoapify rate limit exceeded. Please try again later.",
)


def _snippet(text: str, limit: int = 40) -> str:
    return text if len(text) <= limit else text[:limit] + "…"


def parse_coordinates(lat_raw: Optional[str], lon_raw: Optional[str]) -> tuple[float, float]:
    if not lat_raw or not lon_raw:
        raise ValidationError("Missing required parameters: lat and lon")
    try:
        lat, lon = float(lat_raw), float(lon_raw)
    except ValueError:
        raise ValidationError("Invalid coordinates supplied")
    if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        raise ValidationError("Invalid coordinates supplied")
    if lat == 0 and lon == 0:
        raise ValidationError("Coordinates (0,0) are not supported")
    return lat, lon


@dataclass
class GeocodingProxy:
    """
    Owns the shared limiter/cache state and the provider registry.

    Constructed once at start-up; ``start()``/``stop()`` drive the cache
    sweeper and ``reset()`` exists for test isolation.
    """

    providers: Sequence[GeocodingProvider]
    cache: TTLCache = field(default_factory=TTLCache)
    autocomplete_limiter: FixedWindowRateLimiter = field(default_factory=FixedWindowRateLimiter)
    search_limiter: FixedWindowRateLimiter = field(default_factory=FixedWindowRateLimiter)
    reverse_limiter: FixedWindowRateLimiter = field(default_factory=FixedWindowRateLimiter)
    cache_ttl: float = GEOCODER_CACHE_TTL_SEC
    reverse_cache_ttl: float = REVERSE_CACHE_TTL_SEC
    cleanup_interval: float = CACHE_CLEANUP_INTERVAL_SEC
    _sweeper: Optional[CacheSweeper] = field(default=None, init=False, repr=False)

    # ---- lifecycle ---------------------------------------------------------
    def start(self) -> None:
        if self._sweeper is None:
            self._sweeper = CacheSweeper(self.cache, interval=self.cleanup_interval)
        self._sweeper.start()

    def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.stop()

    def reset(self) -> None:
        self.autocomplete_limiter.reset()
        self.search_limiter.reset()
        self.reverse_limiter.reset()
        self.cache.clear()

    # ---- provider selection -----------------------------------------------
    def provider_for(self, kind: QueryKind) -> GeocodingProvider:
        for provider in self.providers:
            if provider.supports(kind):
                return provider
        raise ConfigurationError(detail=f"No provider registered for kind={kind.value}")

    def reverse_provider(self) -> GeocodingProvider:
        return self.provider_for(QueryKind.AUTOCOMPLETE)

    # ---- endpoints ---------------------------------------------------------
    def autocomplete(
        self, text: Optional[str], limit: Any, client_key: str
    ) -> List[AutocompleteResult]:
        query = GeoQuery.build(
            text,
            QueryKind.AUTOCOMPLETE,
            limit,
            missing_message="Missing required parameter: text",
        )
        return self._run(query, client_key, self.autocomplete_limiter, AUTOCOMPLETE_MESSAGES)

    def search(
        self,
        q: Optional[str],
        kind: Optional[str],
        limit: Any,
        client_key: str,
        country: Optional[str] = None,
        city: Optional[str] = None,
    ) -> SearchResult:
        # q is validated before type
        if q is None or len(q.strip()) < 2:
            raise ValidationError("Query must be at least 2 characters long")
        try:
            query_kind = QueryKind(kind)
        except ValueError:
            raise ValidationError("Invalid type parameter")
        if query_kind not in SEARCH_KINDS:
            raise ValidationError("Invalid type parameter")

        query = GeoQuery.build(q, query_kind, limit, country, city)
        return self._run(query, client_key, self.search_limiter, SEARCH_MESSAGES)

    def reverse(
        self, lat_raw: Optional[str], lon_raw: Optional[str], client_key: str
    ) -> ReverseResult:
        lat, lon = parse_coordinates(lat_raw, lon_raw)

        if not self.reverse_limiter.check(client_key):
            raise RateLimitExceeded(REVERSE_MESSAGES.rate_limited)

        cache_key = f"geoapify:reverse:{lat:.4f}:{lon:.4f}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            result = self.reverse_provider().reverse(lat, lon)
        except (ConfigurationError, UpstreamRateLimited) as e:
            raise self._public_error(e, "reverse", f"{lat},{lon}", REVERSE_MESSAGES) from e
        except Exception as e:
            # a label built from the coordinates beats an error in the UI
            self._log_failure(e, "reverse", f"{lat},{lon}")
            return format_reverse_label(None, lat, lon)

        self.cache.set(cache_key, result, self.reverse_cache_ttl)
        return result

    # ---- pipeline ----------------------------------------------------------
    def _run(
        self,
        query: GeoQuery,
        client_key: str,
        limiter: FixedWindowRateLimiter,
        messages: EndpointMessages,
    ):
        if not limiter.check(client_key):
            raise RateLimitExceeded(messages.rate_limited)

        cache_key = query.cache_key
        hit = self.cache.get(cache_key, _MISS)
        if hit is not _MISS:
            log.debug("cache hit %s", cache_key)
            return hit

        try:
            result = self._fetch(query)
        except Exception as e:
            raise self._public_error(e, query.kind.value, query.text, messages) from e

        self.cache.set(cache_key, result, self.cache_ttl)
        return result

    def _fetch(self, query: GeoQuery):
        provider = self.provider_for(query.kind)

        if query.kind is QueryKind.AUTOCOMPLETE:
            return provider.autocomplete(query)

        records = provider.search(query)
        if query.kind is QueryKind.ADDRESS:
            return to_address_result(records)
        return process_suggestions(records, query.text, query.kind, query.limit)

    def _public_error(
        self, error: Exception, kind: str, text: str, messages: EndpointMessages
    ) -> GeoProxyError:
        self._log_failure(error, kind, text)
        if isinstance(error, ConfigurationError):
            return ConfigurationError(detail=error.detail)
        if isinstance(error, UpstreamRateLimited):
            return UpstreamRateLimited(
                messages.upstream_rate_limited,
                detail=error.detail,
                upstream_status=error.upstream_status,
            )
        if isinstance(error, UpstreamUnavailable):
            return UpstreamUnavailable(
                messages.upstream_failed,
                detail=error.detail,
                upstream_status=error.upstream_status,
            )
        return UnknownError(detail=repr(error))

    @staticmethod
    def _log_failure(error: Exception, kind: str, text: str) -> None:
        if isinstance(error, ConfigurationError):
            log.error("Geocoder configuration error kind=%s: %s", kind, error.detail)
            return
        if IS_PRODUCTION:
            return
        status = getattr(error, "upstream_status", None)
        if isinstance(error, GeoProxyError):
            log.warning(
                "Geocoding failed kind=%s q=%r upstream_status=%s: %s",
                kind, _snippet(text), status, error.detail,
            )
        else:
            log.exception("Unexpected geocoding error kind=%s q=%r", kind, _snippet(text))


_MISS = object()


def to_address_result(records: List[Dict[str, Any]]) -> Optional[AddressResult]:
    if not records:
        return None
    first = records[0]
    return AddressResult(
        lat=float(first["lat"]),
        lng=float(first["lon"]),
        display_name=first.get("display_name") or "",
        address=first.get("address"),
    )


def build_store() -> GeocodingProxy:
    """Wire the production providers; called once from the app lifespan."""
    return GeocodingProxy(providers=[GeoapifyProvider(), NominatimProvider()])
