"""Decide whether an upstream payload is a rewritable manifest."""

from enum import Enum

import httpx

MANIFEST_MAGIC = "#EXTM3U"

# Substrings of Content-Type that mark a (possible) playlist.  text/plain is
# included because plenty of origins mislabel their manifests.
_MANIFEST_CONTENT_TYPES = ("mpegurl", "text/plain")
_MANIFEST_EXTENSIONS = (".m3u8", ".m3u")


class Payload(Enum):
    MANIFEST = "manifest"
    OPAQUE = "opaque"
    NON_CONFORMING_TEXT = "non_conforming_text"


def is_manifest_candidate(content_type: str | None, final_url: str | httpx.URL) -> bool:
    """Header and URL signals only; the body still has to pass ``classify_body``."""
    ct = (content_type or "").lower()
    if any(marker in ct for marker in _MANIFEST_CONTENT_TYPES):
        return True
    url = httpx.URL(final_url) if isinstance(final_url, str) else final_url
    return url.path.lower().endswith(_MANIFEST_EXTENSIONS)


def decode_manifest(body: bytes) -> str:
    return body.decode("utf-8-sig", errors="replace")


def classify_body(body: bytes) -> Payload:
    if decode_manifest(body).lstrip().startswith(MANIFEST_MAGIC):
        return Payload.MANIFEST
    return Payload.NON_CONFORMING_TEXT
