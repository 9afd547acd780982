"""
File Storage Repository Interface

Abstract interface for physical byte storage of registry files.
The registry only needs to store, stream and remove byte blobs under an
opaque key; where and how the bytes live is an infrastructure concern.
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, Optional


class IFileStorageRepository(ABC):
    """
    Interface for blob storage keyed by opaque relative keys.

    Contract Guarantees:
    - save() is all-or-nothing: a failed or interrupted save leaves no blob
      under the key
    - get() returns None for missing keys instead of raising
    - delete() is idempotent: deleting a missing key succeeds
    - exists() and get_size() never raise

    Errors:
    - I/O failures surface as OSError; exceptions raised by the content
      stream itself (for example a size limit) propagate unchanged

    Thread Safety:
    - Implementations must be safe for concurrent use on distinct keys
    """

    @abstractmethod
    def save(self, key: str, content: BinaryIO) -> int:
        """
        Stream content into storage under ``key``, replacing any existing blob.

        Args:
            key: Relative storage key (e.g. ``'<file_id>/<revision>'``)
            content: Readable binary stream, consumed until EOF

        Returns:
            Number of bytes written

        Raises:
            OSError: If the blob cannot be written
            ValueError: If key is empty or escapes the storage root
        """
        pass  # pragma: no cover

    @abstractmethod
    def get(self, key: str) -> Optional[BinaryIO]:
        """
        Open a blob for streaming. The caller must close the returned stream.

        Returns:
            Binary stream positioned at the start, or None if the key is absent
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a blob.

        Returns:
            True if the blob was removed or did not exist

        Raises:
            OSError: If an existing blob could not be removed
        """
        pass  # pragma: no cover

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check whether a blob exists under ``key``."""
        pass  # pragma: no cover

    @abstractmethod
    def get_size(self, key: str) -> Optional[int]:
        """Size of the blob in bytes, or None if absent."""
        pass  # pragma: no cover
