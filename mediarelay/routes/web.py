"""
Static page routes for MediaRelay.
Serves the upload page and the admin page from the public directory.
"""

from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse
from loguru import logger

from .. import config

router = APIRouter()


def _page(name: str) -> FileResponse:
    path = Path(config.PUBLIC_DIR) / name
    if not path.is_file():
        logger.error(f"Static page missing: {path}")
        raise HTTPException(status_code=404, detail="Page not found")
    return FileResponse(path, media_type="text/html")


@router.get("/", include_in_schema=False)
async def home():
    return _page("index.html")


@router.get("/admin", include_in_schema=False)
async def admin():
    return _page("admin.html")
