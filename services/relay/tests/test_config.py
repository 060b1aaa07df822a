import pytest

from services.relay import config as config_module
from services.relay.config import MIN_PART_SIZE_BYTES, RelayConfig, load_config

ENV_NAMES = [
    "RELAY_WEBHOOK_SECRET_TOKEN",
    "RELAY_STORAGE_BUCKET",
    "RELAY_STORAGE_OBJECT_PREFIX",
    "RELAY_STORAGE_ENDPOINT_URL",
    "RELAY_CHUNK_SIZE_BYTES",
    "RELAY_PART_RETRY_ATTEMPTS",
    "RELAY_SOURCE_METHOD",
    "RELAY_TRANSFER_TIMEOUT_SECONDS",
    "RELAY_REDIS_ENABLED",
    "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(config_module, "_load_repo_env", lambda: None)
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RELAY_WEBHOOK_SECRET_TOKEN", "secret")
    monkeypatch.setenv("RELAY_STORAGE_BUCKET", "recordings")


def test_defaults():
    cfg = load_config()

    assert cfg.webhook_secret_token == "secret"
    assert cfg.storage_bucket == "recordings"
    assert cfg.storage_object_prefix == ""
    assert cfg.storage_endpoint_url is None
    assert cfg.chunk_size_bytes == MIN_PART_SIZE_BYTES
    assert cfg.part_retry_attempts == 0
    assert cfg.source_method == "POST"
    assert cfg.transfer_timeout_seconds is None
    assert cfg.redis_enabled is False
    assert cfg.port == 8080


def test_overrides(monkeypatch):
    monkeypatch.setenv("RELAY_STORAGE_OBJECT_PREFIX", "zoom")
    monkeypatch.setenv("RELAY_CHUNK_SIZE_BYTES", str(8 * 1024 * 1024))
    monkeypatch.setenv("RELAY_PART_RETRY_ATTEMPTS", "3")
    monkeypatch.setenv("RELAY_SOURCE_METHOD", "get")
    monkeypatch.setenv("RELAY_TRANSFER_TIMEOUT_SECONDS", "900")
    monkeypatch.setenv("RELAY_REDIS_ENABLED", "true")
    monkeypatch.setenv("PORT", "9000")

    cfg = load_config()

    assert cfg.storage_object_prefix == "zoom"
    assert cfg.chunk_size_bytes == 8 * 1024 * 1024
    assert cfg.part_retry_attempts == 3
    assert cfg.source_method == "GET"
    assert cfg.transfer_timeout_seconds == 900.0
    assert cfg.redis_enabled is True
    assert cfg.port == 9000


@pytest.mark.parametrize(
    "name", ["RELAY_WEBHOOK_SECRET_TOKEN", "RELAY_STORAGE_BUCKET"]
)
def test_required_variables(monkeypatch, name):
    monkeypatch.delenv(name)

    with pytest.raises(ValueError, match=name):
        load_config()


def test_chunk_size_below_store_minimum_is_rejected(monkeypatch):
    monkeypatch.setenv("RELAY_CHUNK_SIZE_BYTES", "1024")

    with pytest.raises(ValueError, match="chunk_size_bytes"):
        load_config()


def test_non_integer_value_is_rejected(monkeypatch):
    monkeypatch.setenv("RELAY_PART_RETRY_ATTEMPTS", "many")

    with pytest.raises(ValueError, match="RELAY_PART_RETRY_ATTEMPTS"):
        load_config()


def test_unknown_source_method_is_rejected():
    with pytest.raises(ValueError, match="source_method"):
        RelayConfig(
            webhook_secret_token="s", storage_bucket="b", source_method="PUT"
        )
