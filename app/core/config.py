# app/core/config.py
import os


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
IS_PRODUCTION = APP_ENV == "production"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ---- Upstream geocoders ----------------------------------------------------
GEOCODER_DOMAIN = os.getenv("GEOCODER_DOMAIN", "nominatim.openstreetmap.org")
GEOCODER_SCHEME = os.getenv("GEOCODER_SCHEME", "https")
GEOCODER_TIMEOUT = _env_float("GEOCODER_TIMEOUT", 5.0)
GEOCODER_USER_AGENT = os.getenv(
    "GEOCODER_USER_AGENT", "SkateGuide/1.0 (https://skateguide.com)"
)
GEOCODER_LANGUAGE = "en-US,en;q=0.9"

GEOAPIFY_DOMAIN = os.getenv("GEOAPIFY_DOMAIN", "api.geoapify.com")
GEOAPIFY_LANG = os.getenv("GEOAPIFY_LANG", "he")

# ---- Rate limiting (per client, per endpoint) ------------------------------
RATE_LIMIT_WINDOW_SEC = _env_float("RATE_LIMIT_WINDOW_SEC", 60.0)
RATE_LIMIT_MAX_REQUESTS = _env_int("RATE_LIMIT_MAX_REQUESTS", 30)

# ---- Result cache ----------------------------------------------------------
GEOCODER_CACHE_SIZE = _env_int("GEOCODER_CACHE_SIZE", 10_000)
GEOCODER_CACHE_TTL_SEC = _env_float("GEOCODER_CACHE_TTL_SEC", 10 * 60)
REVERSE_CACHE_TTL_SEC = _env_float("REVERSE_CACHE_TTL_SEC", 6 * 60 * 60)
CACHE_CLEANUP_INTERVAL_SEC = _env_float("CACHE_CLEANUP_INTERVAL_SEC", 10 * 60)

# ---- Query shape -----------------------------------------------------------
DEFAULT_LIMIT = 5
MAX_LIMIT = 20


def get_geoapify_api_key() -> str | None:
    """Read the Geoapify credential at call time so a rotated key is picked up."""
    key = os.getenv("GEOAPIFY_API_KEY", "").strip()
    return key or None
