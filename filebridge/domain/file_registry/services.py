"""
File Registry Services

Domain service owning file metadata and the lifecycle of stored bytes.
"""

import io
import logging
import threading
import unicodedata
from datetime import datetime
from typing import BinaryIO, Callable, List, Optional, Tuple, Union

from ..errors import (
    FileTooLargeError,
    InsufficientStorageError,
    InvalidArgumentError,
    NotFoundError,
    NotTextError,
    StorageError,
)
from ..file_storage.storage_repository import IFileStorageRepository
from ..text_encoding.services import TextEncodingService
from ..text_encoding.value_objects import AUTO, TextEncoding
from ..clock import utc_now
from .entities import FileRecord, RegistryStats, TranscodeOutcome
from .repositories import FileRecordRepository

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255


class LimitedSniffingReader:
    """
    Read-through wrapper for an upload stream.

    Keeps the first ``sample_size`` bytes for content sniffing and raises
    FileTooLargeError as soon as more than ``max_bytes`` have been read.
    """

    def __init__(self, stream: BinaryIO, max_bytes: Optional[int], sample_size: int):
        self._stream = stream
        self._max_bytes = max_bytes
        self._sample_size = sample_size
        self._sample = bytearray()
        self.bytes_read = 0

    @property
    def sample(self) -> bytes:
        return bytes(self._sample)

    def read(self, size: int = -1) -> bytes:
        chunk = self._stream.read(size)
        if not chunk:
            return b""

        self.bytes_read += len(chunk)
        if self._max_bytes is not None and self.bytes_read > self._max_bytes:
            raise FileTooLargeError(
                f"File exceeds the maximum size of {self._max_bytes} bytes"
            )

        missing = self._sample_size - len(self._sample)
        if missing > 0:
            self._sample.extend(chunk[:missing])
        return chunk


def normalize_name(name: Optional[str]) -> str:
    """
    Validate and normalize a display name.

    Raises:
        InvalidArgumentError: Empty, too long, or containing control
            characters or path separators
    """
    if name is None or not isinstance(name, str):
        raise InvalidArgumentError("Name is required")

    cleaned = name.strip()
    if not cleaned:
        raise InvalidArgumentError("Name cannot be empty")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidArgumentError(
            f"Name cannot be longer than {MAX_NAME_LENGTH} characters"
        )
    if "/" in cleaned or "\\" in cleaned:
        raise InvalidArgumentError("Name cannot contain path separators")
    if any(unicodedata.category(ch) == "Cc" for ch in cleaned):
        raise InvalidArgumentError("Name cannot contain control characters")
    return cleaned


def upload_name(filename: Optional[str]) -> str:
    """Display name for an uploaded file: the last path component of the client name."""
    if filename:
        filename = filename.replace("\\", "/").rsplit("/", 1)[-1]
    return normalize_name(filename)


class FileRegistry:
    """
    Domain service for the collection of stored files.

    All metadata transitions happen under a single lock. Byte transfer
    (saving an upload, reading a file for transcoding) happens outside
    it; each revision of a file's bytes lives under its own storage key so
    a transcode is committed by swapping keys under the lock.

    Capacity:
        Creating a file that does not fit evicts the oldest files first.
        A file that cannot fit even in an empty registry is rejected.

    List order:
        Ascending creation order (oldest first).
    """

    def __init__(
        self,
        record_repository: FileRecordRepository,
        storage: IFileStorageRepository,
        encoding_service: Optional[TextEncodingService] = None,
        max_files: int = 10000,
        max_total_bytes: int = 300 * 1024 * 1024,
        max_file_bytes: Optional[int] = 100 * 1024 * 1024,
        on_evict: Optional[Callable[[FileRecord], None]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize FileRegistry.

        Args:
            record_repository: Metadata persistence
            storage: Byte blob storage
            encoding_service: Content sniffing and transcoding
            max_files: Maximum number of files kept
            max_total_bytes: Maximum sum of stored sizes
            max_file_bytes: Maximum size of one upload (None for no limit)
            on_evict: Called with each record evicted to make room
            clock: Source of creation timestamps
        """
        if max_files <= 0 or max_total_bytes <= 0:
            raise ValueError("max_files and max_total_bytes must be > 0")

        self.record_repo = record_repository
        self.storage = storage
        self.encoding_service = encoding_service or TextEncodingService()
        self.max_files = max_files
        self.max_total_bytes = max_total_bytes
        self.max_file_bytes = max_file_bytes
        self.on_evict = on_evict
        self._clock = clock
        self._lock = threading.RLock()

    def list(self) -> List[FileRecord]:
        """All files, oldest first."""
        with self._lock:
            return self.record_repo.list()

    def get(self, file_id: str) -> FileRecord:
        """
        Retrieve a file record.

        Raises:
            NotFoundError: If the id is unknown
        """
        with self._lock:
            return self._get_locked(file_id)

    def exists(self, file_id: str) -> bool:
        with self._lock:
            return self.record_repo.get(file_id) is not None

    def stats(self) -> RegistryStats:
        with self._lock:
            return RegistryStats(
                file_count=self.record_repo.count(),
                total_bytes=self.record_repo.total_bytes(),
                max_files=self.max_files,
                max_total_bytes=self.max_total_bytes,
                max_file_bytes=self.max_file_bytes,
            )

    def create(self, name: str, stream: BinaryIO) -> FileRecord:
        """
        Store a new file from a byte stream.

        Args:
            name: Display name (validated and stripped)
            stream: Readable binary stream with the file content

        Returns:
            The new FileRecord

        Raises:
            InvalidArgumentError: Invalid name
            FileTooLargeError: Stream longer than ``max_file_bytes``
            InsufficientStorageError: File cannot fit within the limits
            StorageError: Bytes could not be written
        """
        name = normalize_name(name)
        file_id = FileRecord.new_id()
        storage_key = FileRecord.new_storage_key(file_id)
        # One byte past the sample tells sniff() the content was cut
        reader = LimitedSniffingReader(
            stream, self.max_file_bytes, TextEncodingService.SAMPLE_SIZE + 1
        )

        size = self._save_blob(storage_key, reader)
        sniff = self.encoding_service.sniff(reader.sample)

        record = FileRecord(
            id=file_id,
            name=name,
            size_bytes=size,
            is_text=sniff.is_text,
            encoding=sniff.encoding,
            created_at=self._clock(),
            storage_key=storage_key,
        )

        evicted: List[FileRecord] = []
        try:
            with self._lock:
                evicted = self._evict_to_fit_locked(size)
                self.record_repo.save(record)
        except Exception:
            self._discard_blob(storage_key)
            raise
        finally:
            for old in evicted:
                self._notify_evicted(old)

        logger.debug(
            f"Created file {file_id} ({size} bytes, is_text={record.is_text}, "
            f"encoding={record.encoding})"
        )
        return record

    def rename(self, file_id: str, new_name: str) -> FileRecord:
        """
        Rename a file. Renaming to the current name is a no-op.

        Raises:
            InvalidArgumentError: Invalid name
            NotFoundError: If the id is unknown
        """
        new_name = normalize_name(new_name)
        with self._lock:
            record = self._get_locked(file_id)
            if record.name == new_name:
                return record
            updated = record.renamed(new_name)
            self.record_repo.save(updated)
            return updated

    def delete(self, file_id: str) -> FileRecord:
        """
        Delete a file's bytes and metadata.

        The bytes are removed first; if that fails the record is kept and
        StorageError is raised.

        Returns:
            The removed record

        Raises:
            NotFoundError: If the id is unknown
            StorageError: Bytes could not be removed
        """
        with self._lock:
            record = self._get_locked(file_id)
            self._delete_blob(record.storage_key)
            self.record_repo.delete(file_id)
            return record

    def open(self, file_id: str) -> Tuple[FileRecord, BinaryIO]:
        """
        Open a file for streaming.

        The record and stream are taken together, so the stream always
        matches the returned metadata even if a transcode lands afterwards.
        The caller must close the stream.

        Raises:
            NotFoundError: If the id is unknown
            StorageError: Bytes are missing or unreadable
        """
        with self._lock:
            record = self._get_locked(file_id)
            stream = self._open_blob(record)
            return record, stream

    def transcode(
        self,
        file_id: str,
        source_encoding: str,
        target_encoding: str,
        strict: bool = False,
    ) -> FileRecord:
        """
        Rewrite a text file's bytes into another encoding.

        Unrepresentable characters are substituted unless ``strict``.
        See ``transcode_with_report`` for the substitution flag.
        """
        return self.transcode_with_report(
            file_id, source_encoding, target_encoding, strict
        ).record

    def transcode_with_report(
        self,
        file_id: str,
        source_encoding: Union[str, None],
        target_encoding: str,
        strict: bool = False,
    ) -> TranscodeOutcome:
        """
        Rewrite a text file's bytes into another encoding.

        Args:
            file_id: File to rewrite
            source_encoding: ``"auto"`` or an allowed encoding name
            target_encoding: Allowed encoding name
            strict: Fail instead of substituting unrepresentable characters

        Returns:
            TranscodeOutcome with the updated record and whether it was lossy

        Raises:
            UnsupportedEncodingError: Source or target outside the allow-list
            NotFoundError: If the id is unknown (or deleted meanwhile)
            NotTextError: The file is binary
            DecodeError: Bytes invalid under the source, or detection failed
            UnrepresentableCharacterError: ``strict`` and a character has no mapping
            InsufficientStorageError: New size would exceed the total limit
            StorageError: Bytes could not be read or written
        """
        target = TextEncoding.parse(target_encoding)
        source: Union[str, TextEncoding] = AUTO
        if source_encoding and source_encoding.strip().lower() != AUTO:
            source = TextEncoding.parse(source_encoding)

        snapshot = self.get(file_id)
        if not snapshot.is_text:
            raise NotTextError(f"File {file_id} is not a text file")

        content = self._read_blob(snapshot)
        encoded = self.encoding_service.transcode(content, source, target, strict)

        new_key = FileRecord.new_storage_key(file_id)
        new_size = self._save_blob(new_key, io.BytesIO(encoded.data))

        try:
            with self._lock:
                current = self._get_locked(file_id)
                new_total = (
                    self.record_repo.total_bytes() - current.size_bytes + new_size
                )
                if new_total > self.max_total_bytes:
                    raise InsufficientStorageError(
                        f"Transcoded size {new_size} would exceed the storage limit"
                    )
                updated = current.with_content(new_key, new_size, target.value)
                self.record_repo.save(updated)
        except Exception:
            self._discard_blob(new_key)
            raise

        self._discard_blob(current.storage_key)
        return TranscodeOutcome(
            record=updated, source_encoding=encoded.source.value, lossy=encoded.lossy
        )

    # Internal helpers

    def _get_locked(self, file_id: str) -> FileRecord:
        record = self.record_repo.get(file_id) if file_id else None
        if record is None:
            raise NotFoundError(f"File not found: {file_id}")
        return record

    def _evict_to_fit_locked(self, incoming_size: int) -> List[FileRecord]:
        if incoming_size > self.max_total_bytes:
            raise InsufficientStorageError(
                f"File of {incoming_size} bytes exceeds the total storage limit"
            )

        evicted = []
        while (
            self.record_repo.count() >= self.max_files
            or self.record_repo.total_bytes() + incoming_size > self.max_total_bytes
        ):
            oldest = self.record_repo.oldest()
            if oldest is None:
                raise InsufficientStorageError("Not enough storage for this file")
            self._delete_blob(oldest.storage_key)
            self.record_repo.delete(oldest.id)
            evicted.append(oldest)
        return evicted

    def _notify_evicted(self, record: FileRecord) -> None:
        logger.info(f"Evicted file {record.id} ({record.size_bytes} bytes) to free space")
        if self.on_evict is not None:
            self.on_evict(record)

    def _save_blob(self, key: str, stream) -> int:
        try:
            return self.storage.save(key, stream)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to store file bytes: {e}", e) from e

    def _open_blob(self, record: FileRecord) -> BinaryIO:
        try:
            stream = self.storage.get(record.storage_key)
        except OSError as e:
            raise StorageError(f"Failed to read file bytes: {e}", e) from e
        if stream is None:
            raise StorageError(f"Bytes missing for file {record.id}")
        return stream

    def _read_blob(self, record: FileRecord) -> bytes:
        stream = self._open_blob(record)
        try:
            return stream.read()
        except OSError as e:
            raise StorageError(f"Failed to read file bytes: {e}", e) from e
        finally:
            stream.close()

    def _delete_blob(self, key: str) -> None:
        try:
            self.storage.delete(key)
        except OSError as e:
            raise StorageError(f"Failed to delete file bytes: {e}", e) from e

    def _discard_blob(self, key: str) -> None:
        try:
            self.storage.delete(key)
        except OSError as e:
            logger.warning(f"Could not remove unused blob {key}: {e}")

