from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

MIN_PART_SIZE_BYTES = 5 * 1024 * 1024


def _load_repo_env() -> None:
    """Load the nearest .env starting from this file upward."""
    current = Path(__file__).resolve()
    for candidate in [current.parent, *current.parents]:
        env_file = candidate / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or value == "":
        raise ValueError(f"Environment variable {name} is required")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RelayConfig:
    webhook_secret_token: str
    storage_bucket: str
    storage_object_prefix: str = ""
    storage_endpoint_url: str | None = None
    storage_region: str = "us-east-1"
    storage_access_key: str | None = None
    storage_secret_key: str | None = None
    chunk_size_bytes: int = MIN_PART_SIZE_BYTES
    part_retry_attempts: int = 0
    part_retry_backoff_seconds: float = 1.0
    source_method: str = "POST"
    source_timeout_seconds: float = 60.0
    transfer_timeout_seconds: float | None = None
    max_tracked_transfers: int = 256
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_channel: str = "recording_stored"
    log_level: str = "INFO"
    port: int = 8080

    def __post_init__(self) -> None:
        if self.chunk_size_bytes < MIN_PART_SIZE_BYTES:
            raise ValueError(
                f"chunk_size_bytes must be at least {MIN_PART_SIZE_BYTES} bytes"
            )
        if self.part_retry_attempts < 0:
            raise ValueError("part_retry_attempts must not be negative")
        if self.max_tracked_transfers < 1:
            raise ValueError("max_tracked_transfers must be positive")
        if self.source_method not in {"GET", "POST"}:
            raise ValueError("source_method must be GET or POST")


def load_config() -> RelayConfig:
    _load_repo_env()
    return RelayConfig(
        webhook_secret_token=_require_env("RELAY_WEBHOOK_SECRET_TOKEN"),
        storage_bucket=_require_env("RELAY_STORAGE_BUCKET"),
        storage_object_prefix=os.getenv("RELAY_STORAGE_OBJECT_PREFIX", ""),
        storage_endpoint_url=os.getenv("RELAY_STORAGE_ENDPOINT_URL") or None,
        storage_region=os.getenv("RELAY_STORAGE_REGION", "us-east-1"),
        storage_access_key=os.getenv("RELAY_STORAGE_ACCESS_KEY") or None,
        storage_secret_key=os.getenv("RELAY_STORAGE_SECRET_KEY") or None,
        chunk_size_bytes=_env_int("RELAY_CHUNK_SIZE_BYTES", MIN_PART_SIZE_BYTES),
        part_retry_attempts=_env_int("RELAY_PART_RETRY_ATTEMPTS", 0),
        part_retry_backoff_seconds=_env_float(
            "RELAY_PART_RETRY_BACKOFF_SECONDS", 1.0
        ),
        source_method=os.getenv("RELAY_SOURCE_METHOD", "POST").strip().upper(),
        source_timeout_seconds=_env_float("RELAY_SOURCE_TIMEOUT_SECONDS", 60.0),
        transfer_timeout_seconds=_env_float("RELAY_TRANSFER_TIMEOUT_SECONDS", None),
        max_tracked_transfers=_env_int("RELAY_MAX_TRACKED_TRANSFERS", 256),
        redis_enabled=_env_bool("RELAY_REDIS_ENABLED", False),
        redis_host=os.getenv("RELAY_REDIS_HOST", "localhost"),
        redis_port=_env_int("RELAY_REDIS_PORT", 6379),
        redis_db=_env_int("RELAY_REDIS_DB", 0),
        redis_channel=os.getenv("RELAY_REDIS_CHANNEL", "recording_stored"),
        log_level=os.getenv("RELAY_LOG_LEVEL", "INFO").upper(),
        port=_env_int("PORT", 8080),
    )
