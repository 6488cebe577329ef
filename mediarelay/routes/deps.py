"""
Request-scoped accessors for the components created at startup.
"""

from fastapi import Request

from ..config import OriginSettings
from ..services.media_service import MediaService
from ..services.proxy import ProxyFetcher
from ..services.record_store import RecordStore


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_media_service(request: Request) -> MediaService:
    return request.app.state.media_service


def get_proxy_fetcher(request: Request) -> ProxyFetcher:
    return request.app.state.proxy_fetcher


def get_origin_settings(request: Request) -> OriginSettings:
    return request.app.state.origin_settings


def get_strict_lookup(request: Request) -> bool:
    return request.app.state.cdn_strict_lookup
