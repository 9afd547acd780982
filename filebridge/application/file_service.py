"""
File Service

Application service for the desktop file list: upload, rename, delete and
transcode, with concurrency limits and domain event publication.
"""

import logging
from typing import BinaryIO, List, Optional

from ..domain.clock import utc_now
from ..domain.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileEvictedEvent,
    FileRenamedEvent,
    FileTranscodedEvent,
)
from ..domain.file_registry.entities import FileRecord, RegistryStats, TranscodeOutcome
from ..domain.file_registry.services import FileRegistry, upload_name
from ..domain.text_encoding.value_objects import source_encodings, target_encodings
from .concurrency_limiter import ConcurrencyLimiter
from .event_publisher import EventPublisher

logger = logging.getLogger(__name__)


class FileService:
    """
    Orchestrates file operations requested by the desktop client.

    Uploads and transcodes each take a slot from their limiter and fail
    with ServiceBusyError when none is free.
    """

    def __init__(
        self,
        file_registry: FileRegistry,
        event_publisher: EventPublisher,
        upload_limiter: ConcurrencyLimiter,
        transcode_limiter: ConcurrencyLimiter,
    ):
        self.file_registry = file_registry
        self.event_publisher = event_publisher
        self.upload_limiter = upload_limiter
        self.transcode_limiter = transcode_limiter

    def list_files(self) -> List[FileRecord]:
        return self.file_registry.list()

    def get_file(self, file_id: str) -> FileRecord:
        return self.file_registry.get(file_id)

    def stats(self) -> RegistryStats:
        return self.file_registry.stats()

    def upload(self, filename: Optional[str], stream: BinaryIO) -> FileRecord:
        """Store an uploaded file under the last path component of its client name."""
        with self.upload_limiter.slot():
            record = self.file_registry.create(upload_name(filename), stream)

        self.publish_created(record, via_bridge=False)
        return record

    def rename(self, file_id: str, new_name: str) -> FileRecord:
        before = self.file_registry.get(file_id)
        record = self.file_registry.rename(file_id, new_name)
        if record.name != before.name:
            self.event_publisher.publish(
                FileRenamedEvent(
                    aggregate_id=record.id,
                    occurred_at=utc_now(),
                    old_name=before.name,
                    new_name=record.name,
                )
            )
        return record

    def delete(self, file_id: str) -> FileRecord:
        record = self.file_registry.delete(file_id)
        self.event_publisher.publish(
            FileDeletedEvent(aggregate_id=record.id, occurred_at=utc_now(), name=record.name)
        )
        return record

    def transcode(
        self,
        file_id: str,
        source_encoding: Optional[str],
        target_encoding: str,
        strict: bool = False,
    ) -> TranscodeOutcome:
        """
        Rewrite a text file into ``target_encoding``.

        Lossy unless ``strict``: characters the target cannot represent are
        replaced by ``?`` and the outcome reports ``lossy=True``.
        """
        with self.transcode_limiter.slot():
            outcome = self.file_registry.transcode_with_report(
                file_id, source_encoding, target_encoding, strict
            )

        self.event_publisher.publish(
            FileTranscodedEvent(
                aggregate_id=outcome.record.id,
                occurred_at=utc_now(),
                source_encoding=outcome.source_encoding,
                target_encoding=outcome.record.encoding,
                size_bytes=outcome.record.size_bytes,
                lossy=outcome.lossy,
            )
        )
        return outcome

    @staticmethod
    def encodings() -> dict:
        return {"source": source_encodings(), "target": target_encodings()}

    def publish_created(self, record: FileRecord, via_bridge: bool) -> None:
        self.event_publisher.publish(
            FileCreatedEvent(
                aggregate_id=record.id,
                occurred_at=utc_now(),
                name=record.name,
                size_bytes=record.size_bytes,
                encoding=record.encoding,
                via_bridge=via_bridge,
            )
        )

    def publish_evicted(self, record: FileRecord) -> None:
        """Eviction callback for the FileRegistry."""
        self.event_publisher.publish(
            FileEvictedEvent(
                aggregate_id=record.id,
                occurred_at=utc_now(),
                name=record.name,
                size_bytes=record.size_bytes,
            )
        )
