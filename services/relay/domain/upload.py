from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class TransferState(str, Enum):
    IDLE = "idle"
    ASSET_SELECTED = "asset_selected"
    SESSION_OPENED = "session_opened"
    PART_IN_FLIGHT = "part_in_flight"
    PART_ACKNOWLEDGED = "part_acknowledged"
    FINALIZED = "finalized"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in {
            TransferState.FINALIZED,
            TransferState.FAILED,
            TransferState.SKIPPED,
        }


@dataclass(frozen=True)
class PartRecord:
    part_no: int
    etag: str


@dataclass
class UploadSession:
    """Working state of one multipart upload.

    Parts are only ever appended in submission order, so ``parts`` is the
    exact sequence handed to the store on completion.
    """

    bucket: str
    object_key: str
    content_type: str
    upload_id: Optional[str] = None
    parts: List[PartRecord] = field(default_factory=list)
    bytes_transferred: int = 0
    state: TransferState = TransferState.ASSET_SELECTED

    @property
    def next_part_no(self) -> int:
        return len(self.parts) + 1

    def record_part(self, part: PartRecord, size: int) -> None:
        if part.part_no != self.next_part_no:
            raise ValueError(
                f"Part {part.part_no} is out of sequence, expected {self.next_part_no}"
            )
        self.parts.append(part)
        self.bytes_transferred += size
        self.state = TransferState.PART_ACKNOWLEDGED

    def is_contiguous(self) -> bool:
        return all(part.part_no == index for index, part in enumerate(self.parts, 1))


@dataclass(frozen=True)
class TransferResult:
    identity: str
    state: TransferState
    bucket: Optional[str] = None
    object_key: Optional[str] = None
    upload_id: Optional[str] = None
    parts: int = 0
    bytes_transferred: int = 0
    location: Optional[str] = None
