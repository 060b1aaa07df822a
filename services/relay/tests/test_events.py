import asyncio
import json
import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from redis.exceptions import ConnectionError as RedisConnectionError

from services.relay.domain.events import TransferEvent
from services.relay.domain.upload import TransferState
from services.relay.infrastructure.events import (
    LoggingTransferEventPublisher,
    RedisTransferEventPublisher,
)


def _event() -> TransferEvent:
    return TransferEvent(
        transfer_id="rec-1",
        event="recording.completed",
        state=TransferState.FINALIZED,
        bucket="bucket",
        object_key="zoom/05-01-2024/Team-Sync-1704448800.mp4",
        parts=2,
        bytes_transferred=7,
        error=None,
        occurred_at=datetime(2024, 1, 5, 10, 5, tzinfo=timezone.utc),
    )


def test_payload_shape():
    payload = _event().to_payload()

    assert payload["event"] == "recording"
    assert payload["source_event"] == "recording.completed"
    assert payload["state"] == "finalized"
    assert payload["occurred_at"] == "2024-01-05T10:05:00Z"


def test_redis_publisher_sends_json_to_channel():
    publisher = RedisTransferEventPublisher(
        host="localhost", port=6379, db=0, channel="recording_stored"
    )
    publisher._redis = AsyncMock()

    asyncio.run(publisher.publish(_event()))

    channel, message = publisher._redis.publish.await_args.args
    assert channel == "recording_stored"
    assert json.loads(message)["transfer_id"] == "rec-1"


def test_redis_failure_is_logged(caplog):
    publisher = RedisTransferEventPublisher(
        host="localhost", port=6379, db=0, channel="recording_stored"
    )
    publisher._redis = AsyncMock()
    publisher._redis.publish.side_effect = RedisConnectionError("down")

    with caplog.at_level(logging.ERROR):
        asyncio.run(publisher.publish(_event()))

    assert "rec-1" in caplog.text


def test_logging_publisher_logs_payload(caplog):
    with caplog.at_level(logging.INFO):
        asyncio.run(LoggingTransferEventPublisher().publish(_event()))

    assert "rec-1" in caplog.text
