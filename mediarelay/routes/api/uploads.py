"""
Upload routes for MediaRelay.
Handles multipart media uploads (API).
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse
from loguru import logger

from ...services.media_service import MediaService, UploadRejected
from ...services.storage_service import StorageError
from ..deps import get_media_service

router = APIRouter()

CHUNK_SIZE = 1024 * 1024


async def _read_limited(file: UploadFile, limit: int) -> bytes:
    """Read the upload in chunks, stopping one byte past ``limit``."""
    chunks = []
    total = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
        total += len(chunk)
        if total > limit:
            break
    return b"".join(chunks)


@router.post("/upload")
async def upload_media(
    request: Request,
    media: Optional[UploadFile] = File(None),
    media_service: MediaService = Depends(get_media_service),
):
    """Upload one image or video file from the ``media`` form field."""
    if media is None:
        return JSONResponse(status_code=400, content={"error": "Media file not found"})

    try:
        data = await _read_limited(media, media_service.max_file_size)
        record = await media_service.upload(data, media.filename or "", media.content_type)
    except UploadRejected as e:
        logger.warning(f"Upload rejected for '{media.filename}': {e.message}")
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    except StorageError as e:
        logger.error(f"Storage error uploading '{media.filename}': {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to store media"})
    except Exception:
        logger.exception(f"Error uploading '{media.filename}'")
        return JSONResponse(status_code=500, content={"error": "Server error"})
    finally:
        await media.close()

    url = str(request.base_url).rstrip("/") + MediaService.public_path(record)
    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": "Media uploaded successfully!",
            "url": url,
            "type": record.kind.value,
        },
    )
