"""File registry: metadata and lifecycle of stored files."""

from .entities import FileRecord, RegistryStats, TranscodeOutcome
from .repositories import FileRecordRepository
from .services import FileRegistry, normalize_name, upload_name

__all__ = [
    "FileRecord",
    "FileRecordRepository",
    "FileRegistry",
    "RegistryStats",
    "TranscodeOutcome",
    "normalize_name",
    "upload_name",
]
