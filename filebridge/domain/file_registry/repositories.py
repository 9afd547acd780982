"""
File Registry Repositories

Repository interface for file metadata persistence.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .entities import FileRecord


class FileRecordRepository(ABC):
    """
    Abstract repository for file metadata.

    Implementations are not required to be thread-safe: the registry
    serializes every access behind its own lock.
    """

    @abstractmethod
    def save(self, record: FileRecord) -> None:
        """Insert a new record, or replace the record with the same id in place."""
        pass

    @abstractmethod
    def get(self, file_id: str) -> Optional[FileRecord]:
        """Retrieve a record by id, None if absent."""
        pass

    @abstractmethod
    def delete(self, file_id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if a record was removed, False if it did not exist
        """
        pass

    @abstractmethod
    def list(self) -> List[FileRecord]:
        """All records in insertion order (oldest first)."""
        pass

    @abstractmethod
    def oldest(self) -> Optional[FileRecord]:
        """The earliest inserted record still present, None if empty."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def total_bytes(self) -> int:
        """Sum of ``size_bytes`` over all records."""
        pass
