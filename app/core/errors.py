# app/core/errors.py
"""
Error taxonomy shared by the proxy pipeline and the HTTP layer.

Every error carries a client-safe ``message`` that is rendered as
``{"error": message}`` and an optional server-only ``detail`` that is
only ever logged.
"""

from typing import Optional


class GeoProxyError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(detail or self.message)


class ValidationError(GeoProxyError):
    """Caller input violates a precondition."""

    status_code = 400
    default_message = "Invalid request"


class RateLimitExceeded(GeoProxyError):
    """Our own per-client limit was hit."""

    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class UpstreamUnavailable(GeoProxyError):
    """The provider failed, timed out or could not be reached."""

    status_code = 503
    default_message = "Geocoding service temporarily unavailable. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        detail: Optional[str] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message, detail=detail)
        self.upstream_status = upstream_status


class UpstreamRateLimited(UpstreamUnavailable):
    """The provider itself answered with too-many-requests."""

    default_message = (
        "Service temporarily unavailable due to high traffic. Please try again later."
    )


class ConfigurationError(GeoProxyError):
    """Missing or rejected provider credential. Detail is never shown to callers."""

    status_code = 500
    default_message = "Service configuration error"


class UnknownError(GeoProxyError):
    status_code = 500
    default_message = "Internal server error"
