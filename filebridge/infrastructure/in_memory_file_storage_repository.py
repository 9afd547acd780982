"""
In-Memory File Storage Repository

Keeps blobs as immutable bytes objects. A reader gets its own BytesIO over
the bytes it opened, so later writes or deletes never affect it.
"""

import io
import threading
from typing import BinaryIO, Dict, Optional

from ..domain.file_storage.storage_repository import IFileStorageRepository


class InMemoryFileStorageRepository(IFileStorageRepository):
    """Dict-backed IFileStorageRepository."""

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def save(self, key: str, content: BinaryIO) -> int:
        if not key or not key.strip():
            raise ValueError("key cannot be empty")

        buffer = io.BytesIO()
        while True:
            chunk = content.read(64 * 1024)
            if not chunk:
                break
            buffer.write(chunk)

        data = buffer.getvalue()
        with self._lock:
            self._blobs[key] = data
        return len(data)

    def get(self, key: str) -> Optional[BinaryIO]:
        with self._lock:
            data = self._blobs.get(key)
        return io.BytesIO(data) if data is not None else None

    def delete(self, key: str) -> bool:
        with self._lock:
            self._blobs.pop(key, None)
        return True

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._blobs

    def get_size(self, key: str) -> Optional[int]:
        with self._lock:
            data = self._blobs.get(key)
        return len(data) if data is not None else None

    def keys(self):
        with self._lock:
            return sorted(self._blobs)
