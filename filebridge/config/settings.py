"""
Application Settings

Environment-driven configuration. Each settings class reads its variables
on construction; ``AppConfig.validate()`` checks everything at once and
reports every problem in a single ConfigurationError.
"""

import os
from typing import List, Optional
from urllib.parse import urlsplit

from ..domain.errors import ConfigurationError

MB = 1024 * 1024
MAX_FILE_SIZE_MB_LIMIT = 100


def _env_int(name: str, default: int, errors: List[str]) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer, got {raw!r}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_base_url(raw: str) -> str:
    """
    Validate a phone-reachable origin and return it without trailing slash.

    Raises:
        ValueError: If the URL is not a bare http(s) origin
    """
    parts = urlsplit(raw.strip())
    if parts.scheme not in ("http", "https"):
        raise ValueError("scheme must be http or https")
    if not parts.hostname:
        raise ValueError("host is required")
    if parts.username or parts.password:
        raise ValueError("userinfo is not allowed")
    if parts.path not in ("", "/") or parts.query or parts.fragment:
        raise ValueError("must be an origin without path, query or fragment")
    return f"{parts.scheme}://{parts.netloc}"


class LimitsConfig:
    """Size and concurrency limits."""

    def __init__(self, errors: Optional[List[str]] = None):
        errors = errors if errors is not None else []
        self.max_file_size_mb = _env_int("MAX_FILE_SIZE_MB", 100, errors)
        self.max_files = _env_int("MAX_FILES", 10000, errors)
        self.max_total_size_mb = _env_int("MAX_TOTAL_SIZE_MB", 300, errors)
        self.upload_concurrency = _env_int("UPLOAD_CONCURRENCY", 16, errors)
        self.transcode_concurrency = _env_int("TRANSCODE_CONCURRENCY", 2, errors)

    @property
    def max_file_bytes(self) -> int:
        return self.max_file_size_mb * MB

    @property
    def max_total_bytes(self) -> int:
        return self.max_total_size_mb * MB

    def validate(self, errors: List[str]) -> None:
        if self.max_file_size_mb <= 0:
            errors.append("MAX_FILE_SIZE_MB must be > 0")
        if self.max_file_size_mb > MAX_FILE_SIZE_MB_LIMIT:
            errors.append(f"MAX_FILE_SIZE_MB must be <= {MAX_FILE_SIZE_MB_LIMIT}")
        if self.max_files <= 0:
            errors.append("MAX_FILES must be > 0")
        if self.max_total_size_mb <= 0:
            errors.append("MAX_TOTAL_SIZE_MB must be > 0")
        if self.upload_concurrency <= 0:
            errors.append("UPLOAD_CONCURRENCY must be > 0")
        if self.transcode_concurrency <= 0:
            errors.append("TRANSCODE_CONCURRENCY must be > 0")


class TokenConfig:
    """Token lifetimes and the token backend."""

    def __init__(self, errors: Optional[List[str]] = None):
        errors = errors if errors is not None else []
        self.bridge_ttl_seconds = _env_int("BRIDGE_TTL_SECONDS", 300, errors)
        self.download_ttl_seconds = _env_int("DOWNLOAD_TTL_SECONDS", 60, errors)
        self.retention_seconds = _env_int("TOKEN_RETENTION_SECONDS", 3600, errors)
        self.cleanup_interval_seconds = _env_int(
            "TOKEN_CLEANUP_INTERVAL_SECONDS", 30, errors
        )
        self.backend = os.getenv("TOKEN_BACKEND", "memory").strip().lower()

    def validate(self, errors: List[str]) -> None:
        if self.bridge_ttl_seconds <= 0:
            errors.append("BRIDGE_TTL_SECONDS must be > 0")
        if self.download_ttl_seconds <= 0:
            errors.append("DOWNLOAD_TTL_SECONDS must be > 0")
        if self.retention_seconds < 0:
            errors.append("TOKEN_RETENTION_SECONDS must be >= 0")
        if self.cleanup_interval_seconds < 0:
            errors.append("TOKEN_CLEANUP_INTERVAL_SECONDS must be >= 0")
        if self.backend not in ("memory", "redis"):
            errors.append("TOKEN_BACKEND must be 'memory' or 'redis'")


class StorageConfig:
    """Where file bytes are kept."""

    def __init__(self):
        self.backend = os.getenv("STORAGE_BACKEND", "memory").strip().lower()
        self.directory = os.getenv("STORAGE_DIR", "/tmp/filebridge")

    def validate(self, errors: List[str]) -> None:
        if self.backend not in ("memory", "local"):
            errors.append("STORAGE_BACKEND must be 'memory' or 'local'")
        if self.backend == "local" and not self.directory.strip():
            errors.append("STORAGE_DIR is required for local storage")


class AppConfig:
    """Application configuration."""

    def __init__(self):
        self._parse_errors: List[str] = []

        self.api_version = os.getenv("API_VERSION", "v1")
        self.flask_env = os.getenv("FLASK_ENV", "development")
        self.is_production = self.flask_env == "production"
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        # Phone-reachable origin for QR codes; request origin is used when unset
        self.public_base_url = os.getenv("PUBLIC_BASE_URL", "").strip() or None

        # SocketIO pushes list changes to open desktop pages
        self.socketio_enabled = _env_bool("SOCKETIO_ENABLED", False)

        self.limits = LimitsConfig(self._parse_errors)
        self.tokens = TokenConfig(self._parse_errors)
        self.storage = StorageConfig()

    @property
    def max_request_bytes(self) -> int:
        """Upload request cap: file limit plus multipart overhead."""
        return self.limits.max_file_bytes + 2 * MB

    def validate(self) -> "AppConfig":
        """
        Check every setting.

        Raises:
            ConfigurationError: Listing all invalid settings
        """
        errors = list(self._parse_errors)
        if self.public_base_url:
            try:
                self.public_base_url = parse_base_url(self.public_base_url)
            except ValueError as e:
                errors.append(f"PUBLIC_BASE_URL invalid: {e}")
        self.limits.validate(errors)
        self.tokens.validate(errors)
        self.storage.validate(errors)

        if errors:
            raise ConfigurationError("; ".join(errors))
        return self
