from dataclasses import dataclass
from typing import Optional

DEFAULT_CHUNK_SIZE_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class TransferPolicy:
    bucket: str
    object_prefix: str = ""
    chunk_size_bytes: int = DEFAULT_CHUNK_SIZE_BYTES
    part_retry_attempts: int = 0
    part_retry_backoff_seconds: float = 1.0
    timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class ContainerFormat:
    file_extension: str
    object_extension: str
    content_type: str


MP4 = ContainerFormat(
    file_extension="MP4", object_extension="mp4", content_type="video/mp4"
)
