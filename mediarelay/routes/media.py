"""
Media routes for serving locally stored uploads.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from loguru import logger

from ..models.media import StorageBackend
from ..services.media_service import MediaService
from ..services.storage_service import StorageError
from ..utils.validation import is_valid_identifier
from .deps import get_media_service

router = APIRouter()


@router.get("/media/{filename}")
async def serve_uploaded_media(
    filename: str,
    media_service: MediaService = Depends(get_media_service),
):
    """Serve a file from the upload directory if a record exists for it."""
    if not is_valid_identifier(filename):
        raise HTTPException(status_code=400, detail="Invalid filename")

    record = await media_service.get(filename)
    if record is None:
        raise HTTPException(status_code=404, detail="Media not found")
    if record.storage != StorageBackend.LOCAL:
        # Origin-hosted media only exists behind the CDN proxy
        raise HTTPException(status_code=404, detail="Media not found")

    try:
        file_path = media_service.storage.local_path(filename)
    except StorageError as exc:
        raise HTTPException(status_code=400, detail="Invalid filename") from exc

    if not file_path.is_file():
        logger.warning(f"Record exists but file is missing for '{filename}'")
        raise HTTPException(status_code=404, detail="Media not found")

    return FileResponse(file_path, media_type=record.mimetype)
