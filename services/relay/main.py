from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.routes import create_router
from .api.status_routes import create_status_router
from .application.dto import TransferPolicy
from .application.interfaces import (
    MultipartUploadClient,
    RecordingSource,
    TransferEventPublisher,
)
from .application.transfer_recording import TransferRecordingUseCase
from .application.transfer_registry import TransferRegistry
from .application.webhook_auth import WebhookAuthenticator
from .config import RelayConfig, load_config
from .infrastructure.events import (
    LoggingTransferEventPublisher,
    RedisTransferEventPublisher,
)
from .infrastructure.http_source import HttpRecordingSource
from .infrastructure.s3_uploads import create_multipart_client

logger = logging.getLogger(__name__)


def create_event_publisher(config: RelayConfig) -> TransferEventPublisher:
    if config.redis_enabled:
        return RedisTransferEventPublisher(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            channel=config.redis_channel,
        )
    return LoggingTransferEventPublisher()


def build_app(
    config: RelayConfig | None = None,
    *,
    multipart_client: MultipartUploadClient | None = None,
    source: RecordingSource | None = None,
    publisher: TransferEventPublisher | None = None,
) -> FastAPI:
    cfg = config or load_config()

    multipart_client = multipart_client or create_multipart_client(cfg)
    source = source or HttpRecordingSource(
        method=cfg.source_method, timeout_seconds=cfg.source_timeout_seconds
    )
    publisher = publisher or create_event_publisher(cfg)

    transfer_use_case = TransferRecordingUseCase(
        multipart_client=multipart_client,
        source=source,
        policy=TransferPolicy(
            bucket=cfg.storage_bucket,
            object_prefix=cfg.storage_object_prefix,
            chunk_size_bytes=cfg.chunk_size_bytes,
            part_retry_attempts=cfg.part_retry_attempts,
            part_retry_backoff_seconds=cfg.part_retry_backoff_seconds,
            timeout_seconds=cfg.transfer_timeout_seconds,
        ),
    )
    registry = TransferRegistry(
        transfer_use_case,
        capacity=cfg.max_tracked_transfers,
        publisher=publisher,
    )
    authenticator = WebhookAuthenticator(cfg.webhook_secret_token)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Recording relay starting, bucket=%s prefix=%r",
            cfg.storage_bucket,
            cfg.storage_object_prefix,
        )
        yield
        await registry.shutdown()
        for resource in (source, publisher):
            aclose = getattr(resource, "aclose", None)
            if aclose is not None:
                await aclose()
        logger.info("Recording relay stopped")

    app = FastAPI(title="Recording Relay", lifespan=lifespan)
    app.state.registry = registry

    @app.get("/ping")
    async def ping():
        return {"message": "pong"}

    app.include_router(create_router(authenticator, registry))
    app.include_router(create_status_router(registry))

    return app
