from datetime import datetime, timedelta, timezone

import pytest

from services.relay.application.transfer_recording import (
    build_recording_object_key,
    select_recording_asset,
)
from services.relay.domain.errors import AssetNotFoundError
from services.relay.domain.recording import FileDescriptor, Recording


def _file(extension: str, name: str = "file") -> FileDescriptor:
    return FileDescriptor(
        file_name=name,
        file_size=10,
        download_url=f"https://example.test/{name}",
        file_extension=extension,
    )


def test_object_key_uses_prefix_date_topic_and_epoch():
    recording = Recording(
        topic="Team Sync",
        start_time=datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc),
    )

    key = build_recording_object_key("recordings", recording)

    assert key == "recordings/05-01-2024/Team-Sync-1704448800.mp4"


def test_object_key_is_deterministic():
    recording = Recording(
        topic="Weekly  Review",
        start_time=datetime(2024, 3, 17, 23, 30, tzinfo=timezone.utc),
    )

    first = build_recording_object_key("zoom/", recording)
    second = build_recording_object_key("zoom/", recording)

    assert first == second == "zoom/17-03-2024/Weekly--Review-1710718200.mp4"


def test_object_key_without_prefix_has_no_leading_separator():
    recording = Recording(
        topic="Standup",
        start_time=datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc),
    )

    key = build_recording_object_key("", recording)

    assert key == "05-01-2024/Standup-1704448800.mp4"


def test_object_key_keeps_date_in_recording_offset():
    tz = timezone(timedelta(hours=-5))
    recording = Recording(
        topic="Late",
        start_time=datetime(2024, 1, 4, 23, 0, tzinfo=tz),
    )

    key = build_recording_object_key("p", recording)

    assert key == "p/04-01-2024/Late-1704427200.mp4"


def test_naive_start_time_is_treated_as_utc():
    recording = Recording(topic="Naive", start_time=datetime(2024, 1, 5, 10, 0))

    key = build_recording_object_key("p", recording)

    assert key.endswith("Naive-1704448800.mp4")


def test_select_asset_returns_first_mp4():
    files = [_file("M4A", "audio"), _file("MP4", "first"), _file("MP4", "second")]

    asset = select_recording_asset(files)

    assert asset.file_name == "first"


def test_select_asset_ignores_case_of_extension():
    asset = select_recording_asset([_file("mp4", "lower")])

    assert asset.file_name == "lower"


def test_select_asset_without_mp4_raises():
    with pytest.raises(AssetNotFoundError):
        select_recording_asset([_file("M4A"), _file("TRANSCRIPT"), _file("CHAT")])
