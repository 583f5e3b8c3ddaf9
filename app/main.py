# app/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.api import router
from app.core.config import IS_PRODUCTION, LOG_LEVEL
from app.core.errors import GeoProxyError, UnknownError
from app.core.registry import set_store
from app.core.store import GeocodingProxy, build_store

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


def create_app(proxy: Optional[GeocodingProxy] = None) -> FastAPI:
    """Build the service. Pass ``proxy`` to run against injected providers."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = proxy or build_store()
        set_store(store)
        store.start()
        log.info("Geocoding proxy ready (production=%s)", IS_PRODUCTION)
        try:
            yield
        finally:
            store.stop()
            set_store(None)

    app = FastAPI(title="SkateGuide geocoding proxy", lifespan=lifespan)
    app.include_router(router)

    @app.exception_handler(GeoProxyError)
    async def geo_proxy_error(request: Request, exc: GeoProxyError):
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        log.exception("Unhandled error on %s", request.url.path)
        err = UnknownError()
        return JSONResponse({"error": err.message}, status_code=err.status_code)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
