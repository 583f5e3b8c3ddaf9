# app/utils/providers.py
"""
Capability interface every upstream geocoding provider implements, and the
translation from geopy's exception hierarchy into the proxy's error taxonomy.
"""

import logging
from abc import ABC
from typing import Any, Dict, FrozenSet, List

import geopy.exc

from app.core.errors import ConfigurationError, UpstreamRateLimited, UpstreamUnavailable
from app.schemas.pydantic_ import AutocompleteResult, GeoQuery, QueryKind, ReverseResult

log = logging.getLogger(__name__)


def upstream_status(error: BaseException) -> int | None:
    """HTTP status of the response behind a geopy error, when there was one."""
    return getattr(error.__cause__, "status_code", None)


def translate_geopy_error(provider: str, error: geopy.exc.GeopyError) -> Exception:
    """
    Map a geopy failure onto our taxonomy. Only the provider name and status
    code survive; response bodies stay in the server log.
    """
    status = upstream_status(error)
    detail = f"{provider} request failed: {type(error).__name__} (status={status})"

    if isinstance(
        error,
        (geopy.exc.GeocoderAuthenticationFailure, geopy.exc.GeocoderInsufficientPrivileges),
    ):
        return ConfigurationError(detail=detail)
    if isinstance(error, geopy.exc.ConfigurationError):
        return ConfigurationError(detail=detail)
    if isinstance(error, geopy.exc.GeocoderQuotaExceeded):
        return UpstreamRateLimited(detail=detail, upstream_status=status or 429)
    return UpstreamUnavailable(detail=detail, upstream_status=status)


class GeocodingProvider(ABC):
    """
    One upstream geocoding service.

    ``kinds`` declares which query kinds the provider can answer; the proxy
    routes on that instead of comparing type strings.
    """

    name: str = "provider"
    kinds: FrozenSet[QueryKind] = frozenset()

    def supports(self, kind: QueryKind) -> bool:
        return kind in self.kinds

    def autocomplete(self, query: GeoQuery) -> List[AutocompleteResult]:
        raise NotImplementedError(f"{self.name} does not support autocomplete")

    def search(self, query: GeoQuery) -> List[Dict[str, Any]]:
        """Raw free-text records shaped like ``{display_name, lat, lon, address}``."""
        raise NotImplementedError(f"{self.name} does not support free-text search")

    def reverse(self, lat: float, lon: float) -> ReverseResult:
        raise NotImplementedError(f"{self.name} does not support reverse geocoding")
