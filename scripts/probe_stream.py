#!/usr/bin/env python3
"""
Stream Probe: walk a stream through a running relay.

Loads the given stream URL via /api/proxy-manifest, follows the first
reference of each playlist level down to a media segment, then requests
a byte range of that segment. Useful for checking that an origin works
through the relay before pointing a player at it.

Usage:
    python3 scripts/probe_stream.py URL [--base-url http://localhost:3000] [--range bytes=0-1023]
"""

import argparse
import asyncio
import sys
from urllib.parse import quote

import httpx

MAX_DEPTH = 5


def first_reference(text: str) -> str | None:
    """Return the first non-comment, non-blank line of a playlist."""
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            return stripped
    return None


def _show(label: str, res: httpx.Response):
    print(f"[{label}] {res.status_code} {res.headers.get('content-type', '-')}")
    for key in ("content-range", "accept-ranges", "content-length", "cache-control"):
        if key in res.headers:
            print(f"    {key}: {res.headers[key]}")


async def probe(base_url: str, stream_url: str, byte_range: str) -> bool:
    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        path = f"/api/proxy-manifest?url={quote(stream_url, safe='')}"

        for depth in range(MAX_DEPTH):
            res = await client.get(path)
            _show(f"level {depth}", res)
            if res.status_code not in (200, 206):
                print(f"Relay answered {res.status_code}: {res.text[:200]}")
                return False
            if "mpegurl" not in res.headers.get("content-type", ""):
                break
            ref = first_reference(res.text)
            if ref is None:
                print("Playlist has no references")
                return False
            print(f"    -> {ref}")
            path = ref
        else:
            print(f"Gave up after {MAX_DEPTH} playlist levels")
            return False

        res = await client.get(path, headers={"Range": byte_range})
        _show(f"range {byte_range}", res)
        return res.status_code in (200, 206)


async def main():
    parser = argparse.ArgumentParser(description="Stream relay probe")
    parser.add_argument("url", help="Upstream stream URL (playlist or media file)")
    parser.add_argument("--base-url", default="http://localhost:3000")
    parser.add_argument("--range", default="bytes=0-1023", help="Range to request on the final segment")
    args = parser.parse_args()

    print(f"Probing {args.url} via {args.base_url}")
    print()
    ok = await probe(args.base_url, args.url, args.range)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    asyncio.run(main())
