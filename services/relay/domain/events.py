from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .upload import TransferState


@dataclass(frozen=True)
class TransferEvent:
    transfer_id: str
    event: str
    state: TransferState
    bucket: Optional[str]
    object_key: Optional[str]
    parts: int
    bytes_transferred: int
    error: Optional[str]
    occurred_at: datetime

    @classmethod
    def now(
        cls,
        *,
        transfer_id: str,
        event: str,
        state: TransferState,
        bucket: Optional[str] = None,
        object_key: Optional[str] = None,
        parts: int = 0,
        bytes_transferred: int = 0,
        error: Optional[str] = None,
    ) -> "TransferEvent":
        return cls(
            transfer_id=transfer_id,
            event=event,
            state=state,
            bucket=bucket,
            object_key=object_key,
            parts=parts,
            bytes_transferred=bytes_transferred,
            error=error,
            occurred_at=datetime.now(timezone.utc),
        )

    def to_payload(self) -> dict[str, object]:
        return {
            "event": "recording",
            "transfer_id": self.transfer_id,
            "source_event": self.event,
            "state": self.state.value,
            "bucket": self.bucket,
            "object_key": self.object_key,
            "parts": self.parts,
            "bytes_transferred": self.bytes_transferred,
            "error": self.error,
            "occurred_at": self.occurred_at.isoformat().replace("+00:00", "Z"),
        }
