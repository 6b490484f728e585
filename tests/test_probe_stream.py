import httpx
import pytest

from scripts import probe_stream
from scripts.probe_stream import first_reference


def test_first_reference_skips_directives():
    text = "#EXTM3U\n\n#EXT-X-STREAM-INF:BANDWIDTH=1\n  /api/proxy-manifest?url=x  \nsecond\n"
    assert first_reference(text) == "/api/proxy-manifest?url=x"


def test_first_reference_none_when_only_directives():
    assert first_reference("#EXTM3U\n#EXT-X-ENDLIST\n") is None


@pytest.mark.anyio
async def test_probe_walks_down_to_a_segment(monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.params.get("url"), request.headers.get("range")))
        target = request.url.params.get("url")
        if target.endswith("master.m3u8"):
            return httpx.Response(
                200,
                headers={"content-type": "application/vnd.apple.mpegurl"},
                text="#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=1\n/api/proxy-manifest?url=https%3A%2F%2Fcdn%2Fseg.ts\n",
            )
        return httpx.Response(206, headers={"content-type": "video/mp2t", "content-range": "bytes 0-9/99"})

    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(probe_stream.httpx, "AsyncClient", client_factory)

    ok = await probe_stream.probe("http://relay.test", "https://cdn/master.m3u8", "bytes=0-9")
    assert ok is True
    assert seen == [
        ("https://cdn/master.m3u8", None),
        ("https://cdn/seg.ts", None),
        ("https://cdn/seg.ts", "bytes=0-9"),
    ]
