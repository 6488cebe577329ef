"""
CDN proxy route.

Resolves the media kind through the record store, builds the origin's
transform URL from the ``w``/``q``/``f`` query parameters and streams the
transformed bytes back with long-lived cache headers.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response
from loguru import logger

from ..config import OriginSettings
from ..models.media import MediaKind
from ..services.proxy import ProxyFetcher, UpstreamError
from ..services.record_store import RecordStore
from ..services.transform import InvalidOptions, build_transform_url, parse_transform_options
from ..utils.validation import is_valid_identifier
from .deps import get_origin_settings, get_proxy_fetcher, get_record_store, get_strict_lookup

router = APIRouter()

NOT_AVAILABLE = "Media not available"


async def resolve_kind(
    store: RecordStore, identifier: str, strict: bool = False
) -> Optional[MediaKind]:
    """Return the stored kind, the image fallback, or None under strict lookup."""
    record = await store.find_by_identifier(identifier)
    if record is not None:
        return record.kind
    if strict:
        return None
    logger.warning(f"No record for '{identifier}'; proxying as image")
    return MediaKind.IMAGE


@router.get("/cdn/")
async def cdn_missing_identifier():
    return PlainTextResponse("Media identifier is required", status_code=400)


@router.get("/cdn/{identifier}")
async def cdn_proxy(
    identifier: str,
    w: Optional[str] = Query(None, description="Target width in pixels"),
    q: Optional[str] = Query(None, description="Quality, defaults to auto"),
    f: Optional[str] = Query(None, description="Output format, defaults to auto"),
    store: RecordStore = Depends(get_record_store),
    fetcher: ProxyFetcher = Depends(get_proxy_fetcher),
    origin: OriginSettings = Depends(get_origin_settings),
    strict_lookup: bool = Depends(get_strict_lookup),
) -> Response:
    """Serve a transformed variant of a stored asset through the proxy."""
    if not identifier.strip():
        return PlainTextResponse("Media identifier is required", status_code=400)
    if not is_valid_identifier(identifier):
        return PlainTextResponse("Invalid media identifier", status_code=400)

    try:
        options = parse_transform_options(w, q, f)
    except InvalidOptions as exc:
        return PlainTextResponse(str(exc), status_code=400)

    try:
        kind = await resolve_kind(store, identifier, strict_lookup)
        if kind is None:
            logger.warning(f"CDN request for unknown media '{identifier}'")
            return PlainTextResponse(NOT_AVAILABLE, status_code=404)

        url = build_transform_url(origin.delivery_base, kind, identifier, options)
        return await fetcher.fetch(url, kind)
    except UpstreamError as exc:
        logger.warning(f"CDN proxy failed for '{identifier}': {exc}")
        return PlainTextResponse(NOT_AVAILABLE, status_code=404)
    except Exception:
        logger.exception(f"Unexpected error proxying '{identifier}'")
        return PlainTextResponse("Internal server error", status_code=500)
