from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

RECORDING_COMPLETED_EVENT = "recording.completed"
URL_VALIDATION_EVENT = "endpoint.url_validation"


@dataclass(frozen=True)
class FileDescriptor:
    file_name: str
    file_size: int
    download_url: str
    file_extension: str
    file_id: str = ""
    file_type: str = ""
    recording_type: str = ""
    status: str = ""
    recording_start: Optional[datetime] = None
    recording_end: Optional[datetime] = None


@dataclass(frozen=True)
class Recording:
    topic: str
    start_time: datetime
    recording_files: Sequence[FileDescriptor] = field(default_factory=tuple)
    uuid: str = ""
    recording_id: str = ""
    host_id: str = ""
    account_id: str = ""
    timezone: str = ""
    duration: int = 0
    total_size: int = 0


@dataclass(frozen=True)
class Notification:
    event: str
    event_ts: int
    download_token: str
    recording: Recording
    account_id: str = ""

    @property
    def identity(self) -> str:
        """Stable key for the recording this notification describes."""
        if self.recording.uuid:
            return self.recording.uuid
        if self.recording.recording_id:
            return self.recording.recording_id
        return f"event-{self.event_ts}"

    @property
    def is_recording_completed(self) -> bool:
        return self.event == RECORDING_COMPLETED_EVENT
