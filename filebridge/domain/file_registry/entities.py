"""
File Registry Entities

Metadata for files held by the registry.
"""

import secrets
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class FileRecord:
    """
    Entity describing one stored file.

    Records are immutable snapshots; mutations produce a new record via
    ``replace`` so a reader never observes a half-applied change.

    Attributes:
        id: Opaque unique identifier
        name: User-facing display name (not unique)
        size_bytes: Size of the stored bytes
        is_text: Set at creation by content sniffing
        encoding: Detected or transcoded encoding, "Unknown" for binary
        created_at: Creation timestamp (UTC)
        storage_key: Key of the current byte blob in storage
    """
    id: str
    name: str
    size_bytes: int
    is_text: bool
    encoding: str
    created_at: datetime
    storage_key: str

    @staticmethod
    def new_id() -> str:
        """Generate a fresh file id (128 random bits, hex)."""
        return secrets.token_hex(16)

    @staticmethod
    def new_storage_key(file_id: str) -> str:
        """Generate a storage key for a new revision of a file's bytes."""
        return f"{file_id}/{secrets.token_hex(8)}"

    def renamed(self, new_name: str) -> "FileRecord":
        return replace(self, name=new_name)

    def with_content(
        self, storage_key: str, size_bytes: int, encoding: str
    ) -> "FileRecord":
        """Return a copy pointing at rewritten text bytes."""
        return replace(
            self, storage_key=storage_key, size_bytes=size_bytes, encoding=encoding
        )

    def to_dict(self) -> Dict[str, Any]:
        """Public representation (no storage details)."""
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "size_bytes": self.size_bytes,
            "encoding": self.encoding,
            "is_text": self.is_text,
        }

    def to_storage_dict(self) -> Dict[str, Any]:
        """Full representation for persistence."""
        data = self.to_dict()
        data["storage_key"] = self.storage_key
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        """Create FileRecord from a persisted dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            size_bytes=int(data["size_bytes"]),
            is_text=bool(data["is_text"]),
            encoding=data["encoding"],
            created_at=datetime.fromisoformat(data["created_at"]),
            storage_key=data["storage_key"],
        )


@dataclass(frozen=True)
class TranscodeOutcome:
    """Result of a transcode: the updated record plus how the bytes were produced."""
    record: FileRecord
    source_encoding: str
    lossy: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["source_encoding"] = self.source_encoding
        data["lossy"] = self.lossy
        return data


@dataclass(frozen=True)
class RegistryStats:
    """Current usage against the registry limits."""
    file_count: int
    total_bytes: int
    max_files: int
    max_total_bytes: int
    max_file_bytes: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_count": self.file_count,
            "total_bytes": self.total_bytes,
            "max_files": self.max_files,
            "max_total_bytes": self.max_total_bytes,
            "max_file_bytes": self.max_file_bytes,
        }
