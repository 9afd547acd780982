"""Unit tests for environment-driven settings."""

import pytest

from filebridge.config.settings import MB, AppConfig, parse_base_url
from filebridge.domain.errors import ConfigurationError

_SETTINGS_VARS = [
    "PUBLIC_BASE_URL",
    "MAX_FILE_SIZE_MB",
    "MAX_FILES",
    "MAX_TOTAL_SIZE_MB",
    "UPLOAD_CONCURRENCY",
    "TRANSCODE_CONCURRENCY",
    "BRIDGE_TTL_SECONDS",
    "DOWNLOAD_TTL_SECONDS",
    "TOKEN_RETENTION_SECONDS",
    "TOKEN_CLEANUP_INTERVAL_SECONDS",
    "TOKEN_BACKEND",
    "STORAGE_BACKEND",
    "STORAGE_DIR",
    "SOCKETIO_ENABLED",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in _SETTINGS_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = AppConfig().validate()

    assert config.public_base_url is None
    assert config.limits.max_file_bytes == 100 * MB
    assert config.limits.max_total_bytes == 300 * MB
    assert config.limits.max_files == 10000
    assert config.tokens.bridge_ttl_seconds == 300
    assert config.tokens.download_ttl_seconds == 60
    assert config.tokens.backend == "memory"
    assert config.storage.backend == "memory"
    assert config.socketio_enabled is False
    assert config.max_request_bytes == 102 * MB


def test_overrides(clean_env):
    clean_env.setenv("MAX_FILE_SIZE_MB", "5")
    clean_env.setenv("TOKEN_BACKEND", "Redis")
    clean_env.setenv("SOCKETIO_ENABLED", "yes")
    clean_env.setenv("PUBLIC_BASE_URL", "http://192.168.0.10:8000/")

    config = AppConfig().validate()

    assert config.limits.max_file_bytes == 5 * MB
    assert config.tokens.backend == "redis"
    assert config.socketio_enabled is True
    assert config.public_base_url == "http://192.168.0.10:8000"


def test_all_problems_reported_together(clean_env):
    clean_env.setenv("MAX_FILE_SIZE_MB", "lots")
    clean_env.setenv("BRIDGE_TTL_SECONDS", "0")
    clean_env.setenv("STORAGE_BACKEND", "s3")
    clean_env.setenv("PUBLIC_BASE_URL", "ftp://example.com")

    with pytest.raises(ConfigurationError) as exc_info:
        AppConfig().validate()

    message = str(exc_info.value)
    assert "MAX_FILE_SIZE_MB must be an integer" in message
    assert "BRIDGE_TTL_SECONDS must be > 0" in message
    assert "STORAGE_BACKEND" in message
    assert "PUBLIC_BASE_URL invalid" in message


def test_file_size_cap(clean_env):
    clean_env.setenv("MAX_FILE_SIZE_MB", "101")
    with pytest.raises(ConfigurationError):
        AppConfig().validate()


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("http://192.168.1.5:8000", "http://192.168.1.5:8000"),
        ("https://files.lan/", "https://files.lan"),
        ("  http://host  ", "http://host"),
    ],
)
def test_parse_base_url_valid(raw, expected):
    assert parse_base_url(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "192.168.1.5:8000",
        "ftp://host",
        "http://",
        "http://user:pw@host",
        "http://host/app",
        "http://host/?q=1",
        "http://host/#frag",
    ],
)
def test_parse_base_url_invalid(raw):
    with pytest.raises(ValueError):
        parse_base_url(raw)
