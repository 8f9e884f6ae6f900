"""Main entry point for the Curation application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from curation_stage.api.v1 import (
    articles_router,
    faqs_router,
    galleries_router,
    services_router,
    system_router,
)
from curation_stage.core.errors import ContentError
from curation_stage.core.settings import settings
from curation_stage.services.asset_worker import AssetMaintenanceWorker
from curation_stage.services.assets import PUBLIC_PREFIX, AssetStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Role-moderated content API for articles, services, FAQs and galleries",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(articles_router, prefix="/api/v1")
app.include_router(services_router, prefix="/api/v1")
app.include_router(faqs_router, prefix="/api/v1")
app.include_router(galleries_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")

# Promoted images are served straight from the upload root.
app.mount(
    f"/{PUBLIC_PREFIX}",
    StaticFiles(directory=settings.upload_root, check_dir=False),
    name=PUBLIC_PREFIX,
)


@app.exception_handler(ContentError)
async def content_error_handler(request: Request, exc: ContentError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    elif exc.status_code == 403:
        logger.warning("Denied %s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.on_event("startup")
async def on_startup() -> None:
    store: AssetStore | None = getattr(app.state, "asset_store", None)
    if store is None:
        store = AssetStore.from_settings(settings)
        app.state.asset_store = store
    store.ensure_dirs()
    if settings.asset_sweep_on_startup:
        store.sweep_orphans(0)

    worker = AssetMaintenanceWorker.from_settings(store, settings)
    await worker.start()
    app.state.asset_worker = worker


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: AssetMaintenanceWorker | None = getattr(app.state, "asset_worker", None)
    if worker:
        await worker.stop()
    app.state.asset_worker = None

    store: AssetStore | None = getattr(app.state, "asset_store", None)
    if store:
        store.close()
    app.state.asset_store = None


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("curation_stage.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
