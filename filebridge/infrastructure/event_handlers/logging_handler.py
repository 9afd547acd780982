"""
Writes one log line per domain event.

Subscribed to DomainEvent at startup so file and token activity shows up
in the server log without the services logging it themselves.
"""

import logging

from ...domain.events import (
    BridgeConsumedEvent,
    BridgeIssuedEvent,
    DomainEvent,
    DownloadGrantIssuedEvent,
    DownloadGrantRedeemedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileEvictedEvent,
    FileRenamedEvent,
    FileTranscodedEvent,
)


class LoggingEventHandler:
    """Formats each known event type at its own level; unknown types go to DEBUG."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._formatters = {
            FileCreatedEvent: self._created,
            FileRenamedEvent: self._renamed,
            FileDeletedEvent: self._deleted,
            FileEvictedEvent: self._evicted,
            FileTranscodedEvent: self._transcoded,
            BridgeIssuedEvent: self._bridge_issued,
            BridgeConsumedEvent: self._bridge_consumed,
            DownloadGrantIssuedEvent: self._grant_issued,
            DownloadGrantRedeemedEvent: self._grant_redeemed,
        }

    def handle(self, event: DomainEvent) -> None:
        formatter = self._formatters.get(type(event))
        try:
            if formatter is None:
                self.logger.debug(
                    f"{type(event).__name__} for {event.aggregate_id} (no formatter)"
                )
            else:
                formatter(event)
        except Exception:
            # A broken log sink must not fail the request that raised the event
            self.logger.exception(f"Could not log {type(event).__name__}")

    def _created(self, event: FileCreatedEvent) -> None:
        origin = "bridge" if event.via_bridge else "desktop"
        self.logger.info(
            f"[{event.aggregate_id}] stored {event.name!r} via {origin} "
            f"({event.size_bytes} bytes, {event.encoding})"
        )

    def _renamed(self, event: FileRenamedEvent) -> None:
        self.logger.info(
            f"[{event.aggregate_id}] renamed {event.old_name!r} to {event.new_name!r}"
        )

    def _deleted(self, event: FileDeletedEvent) -> None:
        self.logger.info(f"[{event.aggregate_id}] deleted {event.name!r}")

    def _evicted(self, event: FileEvictedEvent) -> None:
        self.logger.warning(
            f"[{event.aggregate_id}] evicted {event.name!r} "
            f"({event.size_bytes} bytes) to make room"
        )

    def _transcoded(self, event: FileTranscodedEvent) -> None:
        emit = self.logger.warning if event.lossy else self.logger.info
        suffix = " with substitutions" if event.lossy else ""
        emit(
            f"[{event.aggregate_id}] converted {event.source_encoding} to "
            f"{event.target_encoding}{suffix} ({event.size_bytes} bytes)"
        )

    def _bridge_issued(self, event: BridgeIssuedEvent) -> None:
        target = f" for {event.target_file_id}" if event.target_file_id else ""
        self.logger.info(
            f"{event.kind} bridge {event.aggregate_id}{target} "
            f"valid until {event.expires_at.isoformat()}"
        )

    def _bridge_consumed(self, event: BridgeConsumedEvent) -> None:
        self.logger.info(
            f"{event.kind} bridge {event.aggregate_id} used for {event.file_id}"
        )

    def _grant_issued(self, event: DownloadGrantIssuedEvent) -> None:
        self.logger.debug(f"grant {event.aggregate_id} minted for {event.file_id}")

    def _grant_redeemed(self, event: DownloadGrantRedeemedEvent) -> None:
        self.logger.info(
            f"[{event.file_id}] download of {event.name!r} started "
            f"with grant {event.aggregate_id} ({event.size_bytes} bytes)"
        )
