"""
Upstream fetcher for the CDN proxy.

All failure detection happens on the upstream status line and headers. Once
a response is returned the body is streamed to the client chunk by chunk and
the upstream connection is released when the stream finishes or the client
goes away.
"""

from __future__ import annotations

from typing import AsyncIterator, Dict, Optional

import httpx
from fastapi.responses import StreamingResponse
from loguru import logger

from ..config import CDN_CACHE_CONTROL
from ..models.media import MediaKind

DEFAULT_CONTENT_TYPES = {
    MediaKind.IMAGE: "image/jpeg",
    MediaKind.VIDEO: "video/mp4",
}


class UpstreamError(Exception):
    """Raised when the asset origin cannot deliver the requested variant."""

    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status = status
        self.reason = reason
        detail = f"status {status}" if status is not None else reason or "request failed"
        super().__init__(f"Upstream fetch failed for {url}: {detail}")


def default_content_type(kind: MediaKind) -> str:
    return DEFAULT_CONTENT_TYPES[MediaKind(kind)]


class ProxyFetcher:
    """Fetch transformed assets from the origin and relay them as a stream."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 10.0):
        self._client = client
        self._timeout = timeout

    async def fetch(self, url: str, kind: MediaKind) -> StreamingResponse:
        request = self._client.build_request("GET", url, timeout=self._timeout)
        try:
            upstream = await self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise UpstreamError(url, reason="timeout") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(url, reason=str(exc) or exc.__class__.__name__) from exc

        if not upstream.is_success:
            await upstream.aclose()
            raise UpstreamError(url, status=upstream.status_code)

        headers = self._response_headers(upstream)
        content_type = upstream.headers.get("content-type") or default_content_type(kind)
        logger.debug(f"Streaming {url} as {content_type}")
        return StreamingResponse(
            self._relay(upstream),
            status_code=200,
            media_type=content_type,
            headers=headers,
        )

    @staticmethod
    def _response_headers(upstream: httpx.Response) -> Dict[str, str]:
        headers = {
            "Cache-Control": CDN_CACHE_CONTROL,
            "Access-Control-Allow-Origin": "*",
        }
        # Only forward a length when the body is relayed unchanged
        content_length = upstream.headers.get("content-length")
        if content_length and "content-encoding" not in upstream.headers:
            headers["Content-Length"] = content_length
        return headers

    @staticmethod
    async def _relay(upstream: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in upstream.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            # Headers are already sent; re-raising makes the server drop the connection
            logger.warning(f"Upstream stream interrupted for {upstream.request.url}: {exc}")
            raise
        finally:
            await upstream.aclose()
