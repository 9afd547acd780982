"""
Transfer Service

Application service for the phone handoff: issuing and consuming bridge
sessions and download grants, with event publication.
"""

import logging
from typing import BinaryIO, Optional

from ..domain.clock import utc_now
from ..domain.events import (
    BridgeConsumedEvent,
    BridgeIssuedEvent,
    DownloadGrantIssuedEvent,
    DownloadGrantRedeemedEvent,
)
from ..domain.file_registry.entities import FileRecord
from ..domain.file_registry.services import upload_name
from ..domain.tokens.entities import (
    BridgeKind,
    BridgeSession,
    DownloadGrant,
    token_prefix,
)
from ..domain.tokens.services import (
    BridgeTokenManager,
    DownloadHandle,
    DownloadTokenManager,
)
from .event_publisher import EventPublisher
from .file_service import FileService

logger = logging.getLogger(__name__)


class TransferService:
    """Orchestrates bridge and download-grant flows."""

    def __init__(
        self,
        bridge_manager: BridgeTokenManager,
        download_manager: DownloadTokenManager,
        file_service: FileService,
        event_publisher: EventPublisher,
    ):
        self.bridge_manager = bridge_manager
        self.download_manager = download_manager
        self.file_service = file_service
        self.event_publisher = event_publisher

    def issue_upload_bridge(self) -> BridgeSession:
        session = self.bridge_manager.issue_upload_bridge()
        self._publish_issued(session)
        return session

    def issue_download_bridge(self, file_id: str) -> BridgeSession:
        session = self.bridge_manager.issue_download_bridge(file_id)
        self._publish_issued(session)
        return session

    def inspect_bridge(self, token: str, kind: BridgeKind) -> BridgeSession:
        return self.bridge_manager.inspect(token, kind)

    def peek_bridge(self, token: str) -> BridgeSession:
        return self.bridge_manager.peek(token)

    def download_info(self, token: str) -> FileRecord:
        """Repeatable lookup of the file behind a download bridge."""
        return self.bridge_manager.resolve_for_download_info(token)

    def bridge_upload(
        self, token: str, filename: Optional[str], stream: BinaryIO
    ) -> FileRecord:
        """Create a file through an upload bridge, sharing the upload limiter."""
        name = upload_name(filename)
        with self.file_service.upload_limiter.slot():
            record, session = self.bridge_manager.consume_upload(token, name, stream)

        self._publish_consumed(session, record.id)
        self.file_service.publish_created(record, via_bridge=True)
        return record

    def bridge_download_token(self, token: str) -> DownloadGrant:
        """Exchange a download bridge for a single-use download grant."""
        grant, session = self.bridge_manager.consume_download(token)
        self._publish_consumed(session, grant.file_id)
        self._publish_grant(grant)
        return grant

    def issue_download_token(self, file_id: str) -> DownloadGrant:
        grant = self.download_manager.issue_for_file(file_id)
        self._publish_grant(grant)
        return grant

    def redeem_download(self, token: str) -> DownloadHandle:
        handle = self.download_manager.redeem(token)
        self.event_publisher.publish(
            DownloadGrantRedeemedEvent(
                aggregate_id=token_prefix(token),
                occurred_at=utc_now(),
                file_id=handle.record.id,
                name=handle.record.name,
                size_bytes=handle.record.size_bytes,
            )
        )
        return handle

    def _publish_issued(self, session: BridgeSession) -> None:
        self.event_publisher.publish(
            BridgeIssuedEvent(
                aggregate_id=token_prefix(session.token),
                occurred_at=utc_now(),
                kind=session.kind.value,
                expires_at=session.expires_at,
                target_file_id=session.target_file_id,
            )
        )

    def _publish_consumed(self, session: BridgeSession, file_id: str) -> None:
        self.event_publisher.publish(
            BridgeConsumedEvent(
                aggregate_id=token_prefix(session.token),
                occurred_at=utc_now(),
                kind=session.kind.value,
                file_id=file_id,
            )
        )

    def _publish_grant(self, grant: DownloadGrant) -> None:
        self.event_publisher.publish(
            DownloadGrantIssuedEvent(
                aggregate_id=token_prefix(grant.token),
                occurred_at=utc_now(),
                file_id=grant.file_id,
                expires_at=grant.expires_at,
            )
        )
