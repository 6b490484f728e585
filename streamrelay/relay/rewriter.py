"""HLS manifest rewriting.

Every reference in a manifest (segment and sub-playlist lines, plus the
``URI="..."`` attribute of ``#EXT-X-KEY``, ``#EXT-X-MAP``, ``#EXT-X-MEDIA``
and friends) is resolved against the URL that actually served the manifest
and replaced with a relay URL, so the player fetches everything through us.
"""

import re
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from streamrelay.relay.target import origin_of

PROXY_ROUTE = "/api/proxy-manifest"
_PROXY_PREFIX = f"{PROXY_ROUTE}?url="

_URI_ATTR = re.compile(r'URI="([^"]*)"')
_ABSOLUTE = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class ResolvedBase:
    origin: str
    dir_path: str


def base_from_url(final_url: str | httpx.URL) -> ResolvedBase:
    """Derive origin and directory from the post-redirect manifest URL.

    >>> base_from_url("https://cdn.example.com/live/ch1/index.m3u8?token=x")
    ResolvedBase(origin='https://cdn.example.com', dir_path='https://cdn.example.com/live/ch1/')
    """
    url = httpx.URL(final_url) if isinstance(final_url, str) else final_url
    origin = origin_of(url)
    path = url.raw_path.split(b"?", 1)[0].decode("ascii") or "/"
    dir_path = path[: path.rfind("/") + 1] or "/"
    return ResolvedBase(origin=origin, dir_path=origin + dir_path)


def resolve_reference(ref: str, base: ResolvedBase) -> str:
    if _ABSOLUTE.match(ref):
        return ref
    if ref.startswith("/"):
        return base.origin + ref
    return base.dir_path + ref


def proxy_url(absolute: str) -> str:
    return _PROXY_PREFIX + quote(absolute, safe="")


def _relay(ref: str, base: ResolvedBase) -> str:
    # Already routed through us (manifest rewritten twice).
    if ref.startswith(_PROXY_PREFIX):
        return ref
    return proxy_url(resolve_reference(ref, base))


def rewrite_manifest(text: str, base: ResolvedBase) -> str:
    """Rewrite every reference in *text* to go through the relay.

    Directive, comment and blank lines are kept byte-for-byte except for
    their ``URI="..."`` values.  Any other line is a reference and is
    replaced as a whole.
    """
    lines = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            line = _URI_ATTR.sub(lambda m: f'URI="{_relay(m.group(1), base)}"', line)
        else:
            line = _relay(stripped, base)
        lines.append(line)
    return "\n".join(lines)
