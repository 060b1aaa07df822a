from __future__ import annotations

from typing import TYPE_CHECKING, AsyncContextManager, AsyncIterator, Protocol

if TYPE_CHECKING:
    from ..domain.events import TransferEvent


class MultipartUploadClient(Protocol):
    def initiate_upload(
        self, *, bucket: str, object_key: str, content_type: str
    ) -> str: ...

    def upload_part(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        part_no: int,
        body: bytes,
    ) -> str: ...

    def complete_upload(
        self,
        *,
        bucket: str,
        object_key: str,
        upload_id: str,
        parts: list[tuple[int, str]],
    ) -> str | None: ...

    def abort_upload(self, *, bucket: str, object_key: str, upload_id: str) -> None: ...


class RecordingSource(Protocol):
    """Opens a remote recording as a forward-only stream of byte pieces."""

    def open(
        self, url: str, token: str
    ) -> AsyncContextManager[AsyncIterator[bytes]]: ...


class TransferEventPublisher(Protocol):
    async def publish(self, event: "TransferEvent") -> None: ...
