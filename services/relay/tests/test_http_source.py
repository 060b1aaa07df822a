import asyncio

import httpx
import pytest

from services.relay.domain.errors import SourceFetchError
from services.relay.infrastructure.http_source import HttpRecordingSource


def _source(handler, *, method="POST") -> HttpRecordingSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpRecordingSource(method=method, client=client)


async def _read_all(source: HttpRecordingSource, url: str, token: str) -> bytes:
    async with source.open(url, token) as stream:
        return b"".join([piece async for piece in stream])


def test_streams_body_with_bearer_token():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"recording-bytes")

    source = _source(handler)

    body = asyncio.run(_read_all(source, "https://source.test/rec", "dl-token"))

    assert body == b"recording-bytes"
    assert seen[0].method == "POST"
    assert seen[0].headers["Authorization"] == "Bearer dl-token"
    assert str(seen[0].url) == "https://source.test/rec"


def test_get_method_is_configurable():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        return httpx.Response(200, content=b"x")

    asyncio.run(_read_all(_source(handler, method="GET"), "https://s.test/r", "t"))

    assert seen == ["GET"]


def test_non_200_status_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, content=b"unauthorized")

    with pytest.raises(SourceFetchError, match="bad status: 401"):
        asyncio.run(_read_all(_source(handler), "https://s.test/r", "t"))


def test_transport_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SourceFetchError, match="download source"):
        asyncio.run(_read_all(_source(handler), "https://s.test/r", "t"))
