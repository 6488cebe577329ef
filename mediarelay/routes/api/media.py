"""
Media API routes for MediaRelay.
Provides list, delete and statistics endpoints for uploaded media.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger

from ...services.media_service import MediaService
from ...services.storage_service import StorageError
from ..deps import get_media_service

router = APIRouter()


@router.get("/media")
async def list_media(media_service: MediaService = Depends(get_media_service)):
    """Return every media record, newest first."""
    try:
        records = await media_service.list_media()
    except Exception:
        logger.exception("Error listing media")
        raise HTTPException(status_code=500, detail="Server error")

    return JSONResponse(
        content=[
            {**record.model_dump(mode="json"), "url": MediaService.public_path(record)}
            for record in records
        ]
    )


@router.delete("/media/{identifier}")
async def delete_media(
    identifier: str,
    media_service: MediaService = Depends(get_media_service),
):
    """Delete a media record and its stored bytes."""
    if "/" in identifier or "\\" in identifier:
        raise HTTPException(status_code=400, detail="Invalid identifier")

    try:
        deleted = await media_service.delete(identifier)
    except StorageError as exc:
        logger.error(f"Storage error deleting '{identifier}': {exc}")
        raise HTTPException(status_code=500, detail="Failed to delete media") from exc
    except Exception:
        logger.exception(f"Error deleting '{identifier}'")
        raise HTTPException(status_code=500, detail="Server error")

    if not deleted:
        raise HTTPException(status_code=404, detail="Media not found")

    return JSONResponse(
        status_code=200,
        content={"success": True, "message": "Media deleted successfully"},
    )


@router.get("/stats")
async def get_stats(media_service: MediaService = Depends(get_media_service)):
    """
    Get aggregate statistics for all stored media.

    Returns:
        dict: totalMedia, totalImages, totalVideos and totalSize in bytes
    """
    try:
        stats = await media_service.stats()
    except Exception:
        logger.exception("Error computing media stats")
        raise HTTPException(status_code=500, detail="Server error")
    return stats.to_response()
