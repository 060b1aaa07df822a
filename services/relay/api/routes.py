from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, List

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)
from starlette.requests import ClientDisconnect

from ..application.transfer_registry import TransferRegistry
from ..application.webhook_auth import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    WebhookAuthenticator,
)
from ..domain.errors import (
    AuthenticationError,
    MalformedNotificationError,
    RegistryFullError,
)
from ..domain.recording import (
    RECORDING_COMPLETED_EVENT,
    FileDescriptor,
    Notification,
    Recording,
)

logger = logging.getLogger(__name__)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalTimestamp = Annotated[datetime | None, BeforeValidator(_blank_to_none)]


class RecordingFilePayload(BaseModel):
    id: str = ""
    meeting_id: str = ""
    recording_start: OptionalTimestamp = None
    recording_end: OptionalTimestamp = None
    file_type: str = ""
    file_size: int = 0
    file_extension: str = ""
    file_name: str = ""
    download_url: str = ""
    status: str = ""
    recording_type: str = ""

    def to_domain(self) -> FileDescriptor:
        return FileDescriptor(
            file_name=self.file_name,
            file_size=self.file_size,
            download_url=self.download_url,
            file_extension=self.file_extension,
            file_id=self.id,
            file_type=self.file_type,
            recording_type=self.recording_type,
            status=self.status,
            recording_start=self.recording_start,
            recording_end=self.recording_end,
        )


class RecordingObjectPayload(BaseModel):
    id: int | str | None = None
    uuid: str = ""
    host_id: str = ""
    account_id: str = ""
    topic: str = ""
    type: int | None = None
    start_time: OptionalTimestamp = None
    password: str = ""
    timezone: str = ""
    duration: int = 0
    share_url: str = ""
    total_size: int = 0
    recording_count: int = 0
    recording_files: List[RecordingFilePayload] = Field(default_factory=list)


class RecordingPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: str = ""
    recording: RecordingObjectPayload | None = Field(default=None, alias="object")


class RecordingWebhookRequest(BaseModel):
    event: str
    event_ts: int = 0
    download_token: str = ""
    payload: RecordingPayload = Field(default_factory=RecordingPayload)

    @model_validator(mode="after")
    def _require_recording_start(self) -> "RecordingWebhookRequest":
        if self.event == RECORDING_COMPLETED_EVENT:
            recording = self.payload.recording
            if recording is None or recording.start_time is None:
                raise ValueError(
                    "recording.completed events require payload.object.start_time"
                )
        return self

    def to_domain(self) -> Notification:
        obj = self.payload.recording or RecordingObjectPayload()
        return Notification(
            event=self.event,
            event_ts=self.event_ts,
            download_token=self.download_token,
            account_id=self.payload.account_id,
            recording=Recording(
                topic=obj.topic,
                start_time=obj.start_time,
                recording_files=tuple(f.to_domain() for f in obj.recording_files),
                uuid=obj.uuid,
                recording_id="" if obj.id is None else str(obj.id),
                host_id=obj.host_id,
                account_id=obj.account_id,
                timezone=obj.timezone,
                duration=obj.duration,
                total_size=obj.total_size,
            ),
        )


def parse_notification(body: bytes) -> Notification:
    try:
        payload = RecordingWebhookRequest.model_validate_json(body)
    except ValidationError as exc:
        logger.warning("Rejected malformed webhook body: %s", exc)
        raise MalformedNotificationError("Invalid webhook payload") from exc
    return payload.to_domain()


class HandshakeResponsePayload(BaseModel):
    plainToken: str
    encryptedToken: str


class WebhookAcceptedResponse(BaseModel):
    message: str
    transfer_id: str


def create_router(
    authenticator: WebhookAuthenticator,
    registry: TransferRegistry,
) -> APIRouter:
    router = APIRouter(prefix="/api/v1", tags=["webhooks"])

    @router.post(
        "/",
        response_model=HandshakeResponsePayload | WebhookAcceptedResponse,
        status_code=status.HTTP_200_OK,
    )
    async def recording_webhook_endpoint(request: Request):
        try:
            body = await request.body()
        except ClientDisconnect as exc:
            logger.error("Failed to read request body: %s", exc)
            raise HTTPException(
                status_code=500, detail="Failed to read request body"
            ) from exc

        try:
            handshake = authenticator.authenticate(
                body,
                signature=request.headers.get(SIGNATURE_HEADER),
                timestamp=request.headers.get(TIMESTAMP_HEADER),
            )
        except AuthenticationError as exc:
            raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

        if handshake is not None:
            return HandshakeResponsePayload(**handshake.to_payload())

        try:
            record = registry.dispatch(parse_notification(body))
        except (MalformedNotificationError, RegistryFullError) as exc:
            raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

        return WebhookAcceptedResponse(
            message="file processing started", transfer_id=record.transfer_id
        )

    return router
