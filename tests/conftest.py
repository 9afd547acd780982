"""
Fixtures shared by every FileBridge test directory.

Also registers the Hypothesis profiles (pick one with
``--hypothesis-profile``) and tags each test with a marker named after
the directory it lives in.
"""

import io
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import HealthCheck, Phase, settings

from filebridge.domain.file_registry import FileRegistry
from filebridge.domain.text_encoding import TextEncodingService
from filebridge.domain.tokens import BridgeTokenManager, DownloadTokenManager
from filebridge.infrastructure.in_memory_file_record_repository import (
    InMemoryFileRecordRepository,
)
from filebridge.infrastructure.in_memory_file_storage_repository import (
    InMemoryFileStorageRepository,
)
from filebridge.infrastructure.in_memory_token_repository import InMemoryTokenRepository

# Profiles: default locally, ci for more examples, dev for quick loops
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile("default")


KIB = 1024


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def payload(data: bytes) -> io.BytesIO:
    return io.BytesIO(data)


# =============================================================================
# Domain Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryFileStorageRepository:
    return InMemoryFileStorageRepository()


@pytest.fixture
def record_repository() -> InMemoryFileRecordRepository:
    return InMemoryFileRecordRepository()


@pytest.fixture
def registry(record_repository, storage, clock) -> FileRegistry:
    """Registry with small limits: 5 files, 64 KiB total, 32 KiB per file."""
    return FileRegistry(
        record_repository,
        storage,
        TextEncodingService(),
        max_files=5,
        max_total_bytes=64 * KIB,
        max_file_bytes=32 * KIB,
        clock=clock,
    )


@pytest.fixture
def token_repository() -> InMemoryTokenRepository:
    return InMemoryTokenRepository()


@pytest.fixture
def download_manager(token_repository, registry, clock) -> DownloadTokenManager:
    return DownloadTokenManager(token_repository, registry, ttl_seconds=60, clock=clock)


@pytest.fixture
def bridge_manager(token_repository, registry, download_manager, clock) -> BridgeTokenManager:
    return BridgeTokenManager(
        token_repository, registry, download_manager, ttl_seconds=300, clock=clock
    )


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app_env(monkeypatch):
    """Environment for an application using in-memory backends only."""
    env = {
        "PUBLIC_BASE_URL": "http://192.168.1.20:8000",
        "TOKEN_BACKEND": "memory",
        "STORAGE_BACKEND": "memory",
        "SOCKETIO_ENABLED": "false",
        "TOKEN_CLEANUP_INTERVAL_SECONDS": "0",
        "MAX_FILE_SIZE_MB": "1",
        "MAX_TOTAL_SIZE_MB": "3",
        "LOG_LEVEL": "WARNING",
    }
    for name, value in env.items():
        monkeypatch.setenv(name, value)
    return env


@pytest.fixture
def app(app_env):
    from app_factory import create_app, shutdown_app

    application = create_app()
    application.config["TESTING"] = True
    yield application
    shutdown_app(application)


@pytest.fixture
def client(app):
    return app.test_client()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (require external services)"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (full workflows)"
    )
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    - tests/unit/* -> @pytest.mark.unit
    - tests/integration/* -> @pytest.mark.integration
    - tests/e2e/* -> @pytest.mark.e2e
    - tests/property/* -> @pytest.mark.property
    """
    for item in items:
        test_path = str(item.fspath).replace("\\", "/")
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)
        elif "/property/" in test_path:
            item.add_marker(pytest.mark.property)
