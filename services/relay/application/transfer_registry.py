"""Tracks background recording transfers so their outcome stays queryable."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..domain.errors import RegistryFullError
from ..domain.events import TransferEvent
from ..domain.recording import Notification
from ..domain.upload import TransferResult, TransferState, UploadSession
from .interfaces import TransferEventPublisher
from .transfer_recording import TransferRecordingUseCase

logger = logging.getLogger(__name__)


@dataclass
class TransferRecord:
    transfer_id: str
    event: str
    started_at: datetime
    state: TransferState = TransferState.IDLE
    session: Optional[UploadSession] = None
    result: Optional[TransferResult] = None
    error: Optional[str] = None
    cancelled: bool = False
    finished_at: Optional[datetime] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.finished_at is not None

    def attach_session(self, session: UploadSession) -> None:
        self.session = session

    @property
    def current_state(self) -> TransferState:
        if self.done or self.session is None:
            return self.state
        return self.session.state

    @property
    def object_key(self) -> Optional[str]:
        return self.session.object_key if self.session else None

    @property
    def upload_id(self) -> Optional[str]:
        return self.session.upload_id if self.session else None

    @property
    def parts(self) -> int:
        return len(self.session.parts) if self.session else 0

    @property
    def bytes_transferred(self) -> int:
        return self.session.bytes_transferred if self.session else 0

    def finish(self, result: TransferResult) -> None:
        self.result = result
        self.state = result.state
        self.finished_at = datetime.now(timezone.utc)

    def fail(self, error: BaseException, *, cancelled: bool = False) -> None:
        self.state = TransferState.FAILED
        name = type(error).__name__
        self.error = f"{name}: {error}" if str(error) else name
        self.cancelled = cancelled
        self.finished_at = datetime.now(timezone.utc)

    def to_event(self) -> TransferEvent:
        return TransferEvent.now(
            transfer_id=self.transfer_id,
            event=self.event,
            state=self.state,
            bucket=self.session.bucket if self.session else None,
            object_key=self.object_key,
            parts=self.parts,
            bytes_transferred=self.bytes_transferred,
            error=self.error,
        )


def transfer_id_for(notification: Notification) -> str:
    """Recording transfers are keyed by recording, other events by event too."""
    if notification.is_recording_completed:
        return notification.identity
    return f"{notification.event}:{notification.identity}"


class TransferRegistry:
    """Bounded, process-wide registry of transfer tasks keyed by recording.

    A recording transfer that is still running for the same recording is
    returned instead of starting a second upload to the same object key.
    Finished records are evicted oldest first once ``capacity`` is reached.
    """

    def __init__(
        self,
        use_case: TransferRecordingUseCase,
        *,
        capacity: int,
        publisher: Optional[TransferEventPublisher] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("Registry capacity must be positive")
        self._use_case = use_case
        self._capacity = capacity
        self._publisher = publisher
        self._records: OrderedDict[str, TransferRecord] = OrderedDict()

    def dispatch(self, notification: Notification) -> TransferRecord:
        transfer_id = transfer_id_for(notification)
        existing = self._records.get(transfer_id)
        if existing is not None and not existing.done:
            logger.info(
                "Transfer %s is already running, not starting another", transfer_id
            )
            return existing
        if existing is not None:
            del self._records[transfer_id]

        self._make_room()
        record = TransferRecord(
            transfer_id=transfer_id,
            event=notification.event,
            started_at=datetime.now(timezone.utc),
        )
        self._records[transfer_id] = record
        record.task = asyncio.create_task(
            self._run(record, notification), name=f"transfer-{transfer_id}"
        )
        logger.info(
            "Dispatched transfer %s for event %s", transfer_id, notification.event
        )
        return record

    def get(self, transfer_id: str) -> Optional[TransferRecord]:
        return self._records.get(transfer_id)

    def records(self) -> list[TransferRecord]:
        return list(self._records.values())

    def running(self) -> list[TransferRecord]:
        return [record for record in self._records.values() if not record.done]

    async def shutdown(self) -> None:
        tasks = [record.task for record in self.running() if record.task is not None]
        if not tasks:
            return
        logger.info("Cancelling %d running transfers", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _make_room(self) -> None:
        if len(self._records) < self._capacity:
            return
        for transfer_id, record in self._records.items():
            if record.done:
                del self._records[transfer_id]
                return
        raise RegistryFullError(
            f"All {self._capacity} transfer slots are busy, try again later"
        )

    async def _run(self, record: TransferRecord, notification: Notification) -> None:
        try:
            result = await self._use_case.execute(
                notification, on_session=record.attach_session
            )
        except asyncio.CancelledError as exc:
            logger.error("Transfer %s was cancelled", record.transfer_id)
            record.fail(exc, cancelled=True)
            raise
        except Exception as exc:
            logger.exception("Transfer %s failed", record.transfer_id)
            record.fail(exc)
        else:
            record.finish(result)
            logger.info(
                "Transfer %s finished with state %s",
                record.transfer_id,
                result.state.value,
            )
        await self._publish(record)

    async def _publish(self, record: TransferRecord) -> None:
        if self._publisher is None:
            return
        try:
            await self._publisher.publish(record.to_event())
        except Exception as exc:
            logger.error(
                "Failed to publish transfer event for %s: %s", record.transfer_id, exc
            )
