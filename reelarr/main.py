# reelarr/main.py

from contextlib import asynccontextmanager

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from reelarr.api.routers import patterns, radarr, rss, tmdb
from reelarr.api.routers import settings as settings_router
from reelarr.core.config import get_settings_store
from reelarr.core.exceptions import ReelarrError
from reelarr.core.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    provider = app.dependency_overrides.get(get_settings_store, get_settings_store)
    store = provider()
    settings = store.get()
    logger.info(
        "Loaded settings from %s: %d patterns, %d feeds, %d Radarr instances",
        store.path, len(settings.patterns), len(settings.rss_feeds), len(settings.radarr_instances),
    )
    yield
    logger.info("Shutting down")


app = FastAPI(title="Reelarr API", lifespan=lifespan)


@app.exception_handler(ReelarrError)
@app.exception_handler(httpx.HTTPError)
async def upstream_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# API routers
api = APIRouter(prefix="/api")
api.include_router(settings_router.router, prefix="/settings")
api.include_router(patterns.router)
api.include_router(rss.router,     prefix="/rss")
api.include_router(tmdb.router)
api.include_router(radarr.router,  prefix="/radarr")
app.include_router(api)
