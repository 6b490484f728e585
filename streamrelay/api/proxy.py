"""Relay endpoints for third-party HLS streams.

``/api/proxy-manifest`` fetches any upstream resource on the player's
behalf.  Playlists are buffered and rewritten so every reference points
back here; everything else (segments, keys, init sections) is streamed
through in bounded chunks with its range headers intact.

``/api/proxy-m3u`` is the plain variant used to load a playlist file once
for display, with no rewriting and no streaming.
"""

import logging
from collections.abc import AsyncIterator

import anyio
import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse

from streamrelay.config import settings
from streamrelay.errors import BadRequest, RelayError, UpstreamHTTPError, UpstreamUnreachable
from streamrelay.relay.classifier import (
    MANIFEST_MAGIC,
    Payload,
    classify_body,
    decode_manifest,
    is_manifest_candidate,
)
from streamrelay.relay.rewriter import base_from_url, rewrite_manifest
from streamrelay.relay.target import resolve_target
from streamrelay.relay.upstream import fetch_text, get_client, open_upstream

logger = logging.getLogger("relay.proxy")

router = APIRouter(prefix="/api")

MANIFEST_MEDIA_TYPE = "application/vnd.apple.mpegurl"

_CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

# Headers copied from an opaque upstream response.  Content-Range,
# Accept-Ranges and Content-Length are what make seeking work.
_FORWARD_HEADERS = (
    "content-type",
    "content-range",
    "accept-ranges",
    "content-length",
    "content-encoding",
)


def _error_response(exc: RelayError) -> Response:
    return PlainTextResponse(exc.message, status_code=exc.status_code, headers=_CORS_HEADERS)


async def _close(upstream: httpx.Response):
    # Shielded so the close still finishes when the request is being cancelled.
    with anyio.CancelScope(shield=True):
        await upstream.aclose()


async def _relay_body(
    request: Request,
    upstream: httpx.Response,
    chunks: AsyncIterator[bytes] | None = None,
    head: bytes = b"",
):
    """Copy the upstream body chunk by chunk until it ends or the client leaves.

    *head* is any prefix already pulled off *chunks* (defaults to the raw
    upstream body).  Headers are already on the wire by the time this runs,
    so failures are logged and the stream just ends.
    """
    if chunks is None:
        chunks = upstream.aiter_raw(chunk_size=settings.stream_chunk_bytes)
    sent = 0
    try:
        if head:
            yield head
            sent += len(head)
        async for chunk in chunks:
            if await request.is_disconnected():
                logger.info("Client disconnected after %d bytes of %s", sent, upstream.url)
                break
            yield chunk
            sent += len(chunk)
    except httpx.HTTPError as exc:
        logger.warning(
            "Upstream stream aborted after %d bytes of %s: %s",
            sent, upstream.url, str(exc) or type(exc).__name__,
        )
    finally:
        await _close(upstream)


async def _read_head(chunks: AsyncIterator[bytes]) -> bytes:
    """Pull just enough of the body to decide whether it carries the playlist marker."""
    head = b""
    async for chunk in chunks:
        head += chunk
        if len(decode_manifest(head).lstrip()) >= len(MANIFEST_MAGIC):
            break
    return head


def _stream_opaque(request: Request, upstream: httpx.Response) -> Response:
    headers = {
        **_CORS_HEADERS,
        "Cache-Control": f"public, max-age={settings.segment_cache_max_age_s}",
    }

    if upstream.is_stream_consumed:
        # Nothing left to stream; send what was buffered.  The body is
        # decoded, so the raw length/encoding no longer apply.
        if "content-type" in upstream.headers:
            headers["content-type"] = upstream.headers["content-type"]
        if "content-range" in upstream.headers:
            headers["content-range"] = upstream.headers["content-range"]
        if "accept-ranges" in upstream.headers:
            headers["accept-ranges"] = upstream.headers["accept-ranges"]
        return Response(content=upstream.content, status_code=upstream.status_code, headers=headers)

    for key in _FORWARD_HEADERS:
        if key in upstream.headers:
            headers[key] = upstream.headers[key]

    return StreamingResponse(
        _relay_body(request, upstream),
        status_code=upstream.status_code,
        headers=headers,
    )


@router.get("/proxy-manifest")
async def proxy_manifest(request: Request, url: str | None = None):
    """Relay one upstream resource, rewriting it when it is a playlist."""
    try:
        target = resolve_target(url)
        upstream = await open_upstream(get_client(), target, request.headers.get("range"))
    except RelayError as exc:
        return _error_response(exc)

    content_type = upstream.headers.get("content-type")
    payload = Payload.OPAQUE
    body = b""
    if is_manifest_candidate(content_type, upstream.url):
        # Only the prefix is read until the marker check passes; a
        # mislabelled segment must still stream.
        chunks = upstream.aiter_bytes(chunk_size=settings.stream_chunk_bytes)
        handed_off = False
        try:
            body = await _read_head(chunks)
            payload = classify_body(body)
            if payload is Payload.MANIFEST:
                body += b"".join([chunk async for chunk in chunks])
            else:
                handed_off = True
        except httpx.HTTPError as exc:
            logger.warning("Reading manifest from %s failed: %s", upstream.url, exc)
            return _error_response(UpstreamUnreachable(str(exc) or type(exc).__name__))
        finally:
            # _relay_body owns the response once a non-manifest body is streamed.
            if not handed_off:
                await _close(upstream)

    if payload is Payload.OPAQUE:
        return _stream_opaque(request, upstream)

    if payload is Payload.MANIFEST:
        rewritten = rewrite_manifest(decode_manifest(body), base_from_url(upstream.url))
        return Response(content=rewritten, media_type=MANIFEST_MEDIA_TYPE, headers=_CORS_HEADERS)

    # Payload.NON_CONFORMING_TEXT: looked like a playlist, isn't one
    # (an error page at a .m3u8 path, or media labelled text/plain).
    # Hand it back untouched, streaming the rest behind the prefix.
    logger.info(
        "Not rewriting %s: body lacks the #EXTM3U marker (content-type=%s)",
        upstream.url, content_type,
    )
    headers = dict(_CORS_HEADERS)
    for key in ("content-type", "content-range", "accept-ranges"):
        if key in upstream.headers:
            headers[key] = upstream.headers[key]
    # The body is relayed decoded, so the upstream length only holds
    # when there was no content encoding.
    if "content-length" in upstream.headers and "content-encoding" not in upstream.headers:
        headers["content-length"] = upstream.headers["content-length"]
    return StreamingResponse(
        _relay_body(request, upstream, chunks, body),
        status_code=upstream.status_code,
        headers=headers,
    )


@router.get("/proxy-m3u")
async def proxy_m3u(url: str | None = None):
    """Fetch a playlist file as-is so the UI can parse it."""
    try:
        target = resolve_target(url, missing_message="URL is required")
        content = await fetch_text(get_client(), target)
    except BadRequest as exc:
        return JSONResponse({"error": exc.message}, status_code=400, headers=_CORS_HEADERS)
    except UpstreamHTTPError as exc:
        message = f"Failed to fetch: {exc.status_code} {exc.reason}".rstrip()
        return JSONResponse({"error": message}, status_code=500, headers=_CORS_HEADERS)
    except RelayError as exc:
        return JSONResponse({"error": exc.message}, status_code=500, headers=_CORS_HEADERS)
    return PlainTextResponse(content, headers=_CORS_HEADERS)
