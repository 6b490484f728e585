"""Target resolution: validate the caller-supplied ``url`` parameter."""

from dataclasses import dataclass

import httpx

from streamrelay.errors import BadRequest

_ALLOWED_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class Target:
    url: str
    origin: str


def origin_of(url: httpx.URL) -> str:
    """Return ``scheme://host[:port]`` for *url*, omitting default ports."""
    host = url.raw_host.decode("ascii")
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    if url.port is not None:
        return f"{url.scheme}://{host}:{url.port}"
    return f"{url.scheme}://{host}"


def resolve_target(raw: str | None, missing_message: str = "URL required") -> Target:
    """Validate *raw* as an absolute http(s) URL.

    Raises ``BadRequest`` before any network I/O when the value is missing
    or cannot be used as an upstream target.
    """
    if raw is None or not raw.strip():
        raise BadRequest(missing_message)
    raw = raw.strip()

    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, ValueError):
        raise BadRequest("Invalid URL")

    if url.scheme not in _ALLOWED_SCHEMES or not url.host:
        raise BadRequest("Invalid URL")

    return Target(url=raw, origin=origin_of(url))
