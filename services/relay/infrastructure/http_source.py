from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from ..domain.errors import SourceFetchError

logger = logging.getLogger(__name__)


class HttpRecordingSource:
    """Streams a recording from its download URL with bearer-token auth."""

    def __init__(
        self,
        *,
        method: str = "POST",
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._method = method
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds, follow_redirects=True
        )

    @asynccontextmanager
    async def open(
        self, url: str, token: str
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        logger.info("Downloading recording from %s", url)
        request = self._client.build_request(
            self._method, url, headers={"Authorization": f"Bearer {token}"}
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"download source: {exc}") from exc

        try:
            logger.info(
                "Recording source responded with status %s", response.status_code
            )
            if response.status_code != httpx.codes.OK:
                raise SourceFetchError(f"bad status: {response.status_code}")
            yield _iter_bytes(response)
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()


async def _iter_bytes(response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for piece in response.aiter_bytes():
            yield piece
    except httpx.HTTPError as exc:
        raise SourceFetchError(f"read error: {exc}") from exc
