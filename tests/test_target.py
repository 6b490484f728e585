import pytest

from streamrelay.errors import BadRequest
from streamrelay.relay.target import Target, resolve_target


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_url_is_rejected(raw):
    with pytest.raises(BadRequest) as exc_info:
        resolve_target(raw)
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "URL required"


@pytest.mark.parametrize(
    "raw",
    [
        "not a url",
        "/relative/playlist.m3u8",
        "ftp://example.com/list.m3u8",
        "javascript:alert(1)",
        "http://",
        "http://example.com:abc/x",
    ],
)
def test_invalid_url_is_rejected(raw):
    with pytest.raises(BadRequest) as exc_info:
        resolve_target(raw)
    assert exc_info.value.message == "Invalid URL"


def test_valid_url_and_origin():
    target = resolve_target("  http://example.com/live/index.m3u8?token=1  ")
    assert target == Target(
        url="http://example.com/live/index.m3u8?token=1",
        origin="http://example.com",
    )


@pytest.mark.parametrize(
    "raw, origin",
    [
        ("https://Example.COM:443/a.m3u8", "https://example.com"),
        ("http://example.com:8080/a.m3u8", "http://example.com:8080"),
        ("http://[::1]:8000/a.m3u8", "http://[::1]:8000"),
    ],
)
def test_origin_normalization(raw, origin):
    assert resolve_target(raw).origin == origin
