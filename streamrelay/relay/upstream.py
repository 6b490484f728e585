"""Outbound requests to the upstream origin.

Requests carry browser-like headers (many CDNs reject obvious bots and
check Referer/Origin) and follow redirects; the post-redirect URL is what
manifests get resolved against.  A failed fetch is never retried; the
player already has its own recovery.
"""

import logging

import httpx

from streamrelay.config import settings
from streamrelay.errors import BadRequest, UpstreamHTTPError, UpstreamUnreachable
from streamrelay.relay.target import Target

logger = logging.getLogger("relay.upstream")

SUCCESS_STATUSES = (200, 206)

# Shared async client, created lazily and closed at shutdown.
_client: httpx.AsyncClient | None = None


def get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            timeout=settings.upstream_timeout,
            follow_redirects=True,
            max_redirects=settings.upstream_max_redirects,
        )
    return _client


async def close_client():
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def build_upstream_headers(target: Target, range_header: str | None = None) -> dict[str, str]:
    headers = {
        "User-Agent": settings.upstream_user_agent,
        "Accept": "*/*",
        "Accept-Language": settings.upstream_accept_language,
        "Connection": "keep-alive",
        "Referer": f"{target.origin}/",
        "Origin": target.origin,
    }
    if range_header:
        headers["Range"] = range_header
    return headers


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


async def open_upstream(
    client: httpx.AsyncClient,
    target: Target,
    range_header: str | None = None,
) -> httpx.Response:
    """Send the GET and return the response with its body still unread.

    The caller owns the returned response and must ``aclose()`` it.
    Raises ``UpstreamHTTPError`` for any status other than 200/206 and
    ``UpstreamUnreachable`` for transport failures.
    """
    try:
        request = client.build_request(
            "GET", target.url, headers=build_upstream_headers(target, range_header)
        )
        response = await client.send(request, stream=True, follow_redirects=True)
    except httpx.InvalidURL:
        raise BadRequest("Invalid URL")
    except httpx.HTTPError as exc:
        logger.warning("Upstream unreachable: %s (%s)", target.url, _describe(exc))
        raise UpstreamUnreachable(_describe(exc)) from exc

    if response.status_code not in SUCCESS_STATUSES:
        await response.aclose()
        logger.info("Upstream returned %d for %s", response.status_code, target.url)
        raise UpstreamHTTPError(response.status_code, response.reason_phrase)

    if range_header:
        logger.debug(
            "Range %s -> %d %s", range_header, response.status_code,
            response.headers.get("content-range", "-"),
        )
    return response


async def fetch_text(client: httpx.AsyncClient, target: Target) -> str:
    """Fetch *target* fully and return it as text (no rewriting)."""
    try:
        response = await client.get(
            target.url, headers=build_upstream_headers(target), follow_redirects=True
        )
    except httpx.InvalidURL:
        raise BadRequest("Invalid URL")
    except httpx.HTTPError as exc:
        logger.warning("Playlist fetch failed: %s (%s)", target.url, _describe(exc))
        raise UpstreamUnreachable(_describe(exc)) from exc

    if not response.is_success:
        raise UpstreamHTTPError(response.status_code, response.reason_phrase)
    return response.text
