"""Test configuration: isolate settings and stub the upstream network."""

import os

# Keep a developer's .env out of the test run; must be set before any
# streamrelay imports.
os.environ["STREAMRELAY_ENV_FILE"] = "/nonexistent/.env"
os.environ["STATIC_DIR"] = "/nonexistent/dist"

import httpx  # noqa: E402
import pytest  # noqa: E402

import streamrelay.relay.upstream as upstream_mod  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


class UpstreamStub:
    """Records outbound requests and answers them with a handler."""

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return await self.handler(request)


@pytest.fixture
def upstream(monkeypatch):
    """Install a MockTransport-backed client as the shared upstream client.

    Call the returned function with an async handler; it returns the
    ``UpstreamStub`` so tests can inspect what was sent.
    """
    def install(handler) -> UpstreamStub:
        stub = UpstreamStub(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(stub), follow_redirects=True)
        monkeypatch.setattr(upstream_mod, "_client", client)
        return stub

    return install
