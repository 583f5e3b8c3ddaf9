# app/core/registry.py
from typing import Optional

from app.core.store import GeocodingProxy

_store: Optional[GeocodingProxy] = None


def set_store(store: Optional[GeocodingProxy]) -> None:
    global _store
    _store = store


def get_store() -> GeocodingProxy:
    if _store is None:
        raise RuntimeError("GeocodingProxy not initialised; is the app lifespan running?")
    return _store
