"""
In-Memory File Record Repository

Insertion-ordered metadata store. Thread safety is provided by the
FileRegistry lock that guards every call.
"""

from collections import OrderedDict
from typing import List, Optional

from ..domain.file_registry.entities import FileRecord
from ..domain.file_registry.repositories import FileRecordRepository


class InMemoryFileRecordRepository(FileRecordRepository):
    """FileRecordRepository backed by an OrderedDict with a running byte total."""

    def __init__(self):
        self._records: "OrderedDict[str, FileRecord]" = OrderedDict()
        self._total_bytes = 0

    def save(self, record: FileRecord) -> None:
        previous = self._records.get(record.id)
        if previous is not None:
            self._total_bytes -= previous.size_bytes
        # Replacing an existing key keeps its position
        self._records[record.id] = record
        self._total_bytes += record.size_bytes

    def get(self, file_id: str) -> Optional[FileRecord]:
        return self._records.get(file_id)

    def delete(self, file_id: str) -> bool:
        record = self._records.pop(file_id, None)
        if record is None:
            return False
        self._total_bytes -= record.size_bytes
        return True

    def list(self) -> List[FileRecord]:
        return list(self._records.values())

    def oldest(self) -> Optional[FileRecord]:
        for record in self._records.values():
            return record
        return None

    def count(self) -> int:
        return len(self._records)

    def total_bytes(self) -> int:
        return self._total_bytes
