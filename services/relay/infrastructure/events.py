from __future__ import annotations

import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..application.interfaces import TransferEventPublisher
from ..domain.events import TransferEvent

LOGGER = logging.getLogger(__name__)


class LoggingTransferEventPublisher(TransferEventPublisher):
    async def publish(self, event: TransferEvent) -> None:
        LOGGER.info(event.to_payload())


class RedisTransferEventPublisher(TransferEventPublisher):
    def __init__(self, *, host: str, port: int, db: int, channel: str) -> None:
        self._redis = aioredis.Redis(host=host, port=port, db=db)
        self._channel = channel

    async def publish(self, event: TransferEvent) -> None:
        try:
            await self._redis.publish(self._channel, json.dumps(event.to_payload()))
        except RedisError as exc:
            LOGGER.error(
                "Failed to publish transfer event for %s: %s", event.transfer_id, exc
            )

    async def aclose(self) -> None:
        await self._redis.aclose()
