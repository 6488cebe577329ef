"""
Main FastAPI application for MediaRelay.
Wires configuration, storage, the record store and the routes together.
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .config import APP_DESCRIPTION, APP_TITLE, OriginSettings, load_origin_settings
from .database import db_instance, get_media_collection, init_database
from .routes import api_media, api_uploads, cdn, media, web
from .services.media_service import MediaService
from .services.origin_client import OriginClient
from .services.proxy import ProxyFetcher
from .services.record_store import MemoryRecordStore, PostgresRecordStore, RecordStore
from .services.storage_service import StorageService

_LOG_SINKS_ADDED = False


def configure_logging() -> None:
    """Add the rotating file sinks once per process."""
    global _LOG_SINKS_ADDED
    if _LOG_SINKS_ADDED:
        return
    os.makedirs(config.LOG_DIR, exist_ok=True)
    logger.add(
        os.path.join(config.LOG_DIR, "mediarelay.log"),
        rotation="1 day",
        retention=config.LOG_RETENTION,
        level=config.LOG_LEVEL,
    )
    logger.add(
        os.path.join(config.LOG_DIR, "errors.log"),
        rotation="1 day",
        retention=config.LOG_RETENTION,
        level="ERROR",
    )
    _LOG_SINKS_ADDED = True


def init_components(
    app: FastAPI,
    origin_settings: OriginSettings,
    http_client: httpx.AsyncClient,
    record_store: RecordStore,
    upload_dir: str = config.UPLOAD_DIR,
    strict_lookup: bool = config.CDN_STRICT_LOOKUP,
) -> None:
    """Build the request-independent components and attach them to app state."""
    origin = OriginClient(origin_settings, http_client) if origin_settings.upload_enabled else None
    storage = StorageService(upload_dir, origin=origin)

    app.state.origin_settings = origin_settings
    app.state.http_client = http_client
    app.state.record_store = record_store
    app.state.proxy_fetcher = ProxyFetcher(http_client, timeout=origin_settings.fetch_timeout)
    app.state.media_service = MediaService(record_store, storage)
    app.state.cdn_strict_lookup = strict_lookup


async def _select_record_store() -> RecordStore:
    await init_database()
    collection = get_media_collection()
    if collection is None:
        logger.warning("Postgres unavailable; media records will be kept in memory only")
        return MemoryRecordStore()
    return PostgresRecordStore(collection)


@asynccontextmanager
async def lifespan(app: FastAPI):
    origin_settings = app.state.origin_settings
    http_client = httpx.AsyncClient(follow_redirects=True)
    try:
        record_store = await _select_record_store()
        init_components(app, origin_settings, http_client, record_store)
        storage_mode = "asset origin" if origin_settings.upload_enabled else f"local '{config.UPLOAD_DIR}'"
        logger.info(f"{APP_TITLE} started; storing uploads in {storage_mode}")
        yield
    finally:
        await http_client.aclose()
        await db_instance.disconnect()
        logger.info(f"{APP_TITLE} stopped")


def create_app(origin_settings: Optional[OriginSettings] = None) -> FastAPI:
    configure_logging()
    app = FastAPI(title=APP_TITLE, description=APP_DESCRIPTION, lifespan=lifespan)
    app.state.origin_settings = origin_settings or load_origin_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(web.router)
    app.include_router(cdn.router)
    app.include_router(media.router)
    app.include_router(api_uploads.router)
    app.include_router(api_media.router, prefix="/api")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        path = request.url.path
        if path.startswith("/api") or path == "/upload":
            return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return PlainTextResponse("Internal server error", status_code=500)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)
