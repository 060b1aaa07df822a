from __future__ import annotations

import asyncio
import logging
from datetime import timezone
from typing import Callable, Optional, Sequence

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..domain.errors import (
    AssetNotFoundError,
    FinalizationError,
    PartSubmissionError,
    SessionOpenError,
)
from ..domain.recording import FileDescriptor, Notification, Recording
from ..domain.upload import PartRecord, TransferResult, TransferState, UploadSession
from .chunking import ChunkReader
from .dto import MP4, ContainerFormat, TransferPolicy
from .interfaces import MultipartUploadClient, RecordingSource

logger = logging.getLogger(__name__)

SessionObserver = Callable[[UploadSession], None]


async def _settle(call: asyncio.Future):
    """Await a blocking store call, letting it finish even when cancelled.

    Cancelling the await does not stop the worker thread, so on cancellation
    this waits for the call to settle before re-raising ``CancelledError``.
    """
    try:
        return await asyncio.shield(call)
    except asyncio.CancelledError:
        await asyncio.wait([call])
        if not call.cancelled():
            call.exception()
        raise


def _store_call(func, **kwargs) -> asyncio.Future:
    return asyncio.ensure_future(asyncio.to_thread(func, **kwargs))


def select_recording_asset(
    files: Sequence[FileDescriptor], container: ContainerFormat = MP4
) -> FileDescriptor:
    logger.debug(
        "Searching for %s file among %d recording files",
        container.file_extension,
        len(files),
    )
    for descriptor in files:
        if (descriptor.file_extension or "").upper() == container.file_extension:
            return descriptor
    raise AssetNotFoundError(f"{container.file_extension} file not found")


def build_recording_object_key(
    prefix: str, recording: Recording, container: ContainerFormat = MP4
) -> str:
    start = recording.start_time
    if start is None:
        raise ValueError("Recording start time is required to build an object key")
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    topic = recording.topic.replace(" ", "-")
    epoch = int(start.timestamp())
    segments = [
        prefix.strip("/"),
        f"{start.day:02d}-{start.month:02d}-{start.year}",
        f"{topic}-{epoch}.{container.object_extension}",
    ]
    return "/".join(segment for segment in segments if segment)


class TransferRecordingUseCase:
    def __init__(
        self,
        *,
        multipart_client: MultipartUploadClient,
        source: RecordingSource,
        policy: TransferPolicy,
        container: ContainerFormat = MP4,
    ) -> None:
        self._client = multipart_client
        self._source = source
        self._policy = policy
        self._container = container

    async def execute(
        self,
        notification: Notification,
        on_session: Optional[SessionObserver] = None,
    ) -> TransferResult:
        if not notification.is_recording_completed:
            logger.info(
                "Skipping non-recording event %s for %s",
                notification.event,
                notification.identity,
            )
            return TransferResult(
                identity=notification.identity, state=TransferState.SKIPPED
            )

        transfer = self._transfer(notification, on_session)
        if self._policy.timeout_seconds is None:
            return await transfer
        return await asyncio.wait_for(transfer, timeout=self._policy.timeout_seconds)

    async def _transfer(
        self, notification: Notification, on_session: Optional[SessionObserver]
    ) -> TransferResult:
        recording = notification.recording
        asset = select_recording_asset(recording.recording_files, self._container)
        logger.info(
            "Found %s file %s, size: %d bytes",
            self._container.file_extension,
            asset.file_name,
            asset.file_size,
        )

        session = UploadSession(
            bucket=self._policy.bucket,
            object_key=build_recording_object_key(
                self._policy.object_prefix, recording, self._container
            ),
            content_type=self._container.content_type,
        )
        logger.info("Generated object key: %s", session.object_key)
        if on_session is not None:
            on_session(session)

        await self._open_session(session)
        try:
            async with self._source.open(
                asset.download_url, notification.download_token
            ) as stream:
                await self._upload_parts(session, ChunkReader(stream))
            location = await self._finalize(session)
        except BaseException as exc:
            session.state = TransferState.FAILED
            await self._abort(session, exc)
            raise

        logger.info(
            "Stored recording %s at s3://%s/%s (%d parts, %d bytes)",
            notification.identity,
            session.bucket,
            session.object_key,
            len(session.parts),
            session.bytes_transferred,
        )
        return TransferResult(
            identity=notification.identity,
            state=session.state,
            bucket=session.bucket,
            object_key=session.object_key,
            upload_id=session.upload_id,
            parts=len(session.parts),
            bytes_transferred=session.bytes_transferred,
            location=location,
        )

    async def _open_session(self, session: UploadSession) -> None:
        call = _store_call(
            self._client.initiate_upload,
            bucket=session.bucket,
            object_key=session.object_key,
            content_type=session.content_type,
        )
        try:
            session.upload_id = await _settle(call)
        except asyncio.CancelledError as exc:
            session.state = TransferState.FAILED
            if not call.cancelled() and call.exception() is None:
                session.upload_id = call.result()
                await self._abort(session, exc)
            raise
        except Exception as exc:
            session.state = TransferState.FAILED
            raise SessionOpenError(f"failed to start multipart upload: {exc}") from exc
        session.state = TransferState.SESSION_OPENED
        logger.info("Started multipart upload with ID: %s", session.upload_id)

    async def _upload_parts(self, session: UploadSession, reader: ChunkReader) -> None:
        chunk_size = self._policy.chunk_size_bytes
        while True:
            chunk = await reader.read_chunk(chunk_size)
            if not chunk:
                break
            part_no = session.next_part_no
            session.state = TransferState.PART_IN_FLIGHT
            etag = await self._submit_part(session, part_no, chunk)
            session.record_part(PartRecord(part_no=part_no, etag=etag), len(chunk))
            logger.debug(
                "Uploaded part %d with %d bytes, ETag: %s", part_no, len(chunk), etag
            )
            if len(chunk) < chunk_size:
                break

    async def _submit_part(
        self, session: UploadSession, part_no: int, chunk: bytes
    ) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._policy.part_retry_attempts + 1),
            wait=wait_exponential(multiplier=self._policy.part_retry_backoff_seconds),
            retry=retry_if_exception_type(Exception),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    etag = await _settle(
                        _store_call(
                            self._client.upload_part,
                            bucket=session.bucket,
                            object_key=session.object_key,
                            upload_id=session.upload_id,
                            part_no=part_no,
                            body=chunk,
                        )
                    )
        except Exception as exc:
            raise PartSubmissionError(part_no, str(exc)) from exc
        return etag

    async def _finalize(self, session: UploadSession) -> Optional[str]:
        if not session.parts:
            raise FinalizationError("source stream was empty, no parts to complete")
        if not session.is_contiguous():
            raise FinalizationError(
                "part sequence is not contiguous from 1: "
                f"{[part.part_no for part in session.parts]}"
            )
        logger.info(
            "Completing multipart upload %s with %d parts",
            session.upload_id,
            len(session.parts),
        )
        try:
            location = await _settle(
                _store_call(
                    self._client.complete_upload,
                    bucket=session.bucket,
                    object_key=session.object_key,
                    upload_id=session.upload_id,
                    parts=[(part.part_no, part.etag) for part in session.parts],
                )
            )
        except Exception as exc:
            raise FinalizationError(f"complete upload: {exc}") from exc
        session.state = TransferState.FINALIZED
        return location

    async def _abort(self, session: UploadSession, cause: BaseException) -> None:
        if session.upload_id is None:
            return
        logger.error(
            "Aborting multipart upload %s for %s after %s: %s",
            session.upload_id,
            session.object_key,
            type(cause).__name__,
            cause,
        )
        try:
            await asyncio.to_thread(
                self._client.abort_upload,
                bucket=session.bucket,
                object_key=session.object_key,
                upload_id=session.upload_id,
            )
        except Exception as exc:
            logger.error(
                "Failed to abort multipart upload %s: %s", session.upload_id, exc
            )
            return
        logger.info("Aborted multipart upload %s", session.upload_id)
