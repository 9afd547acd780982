"""
WebSocket Event Handler

Translates domain events into WebSocket messages for open desktop pages.
"""

import logging

from ...api.websocket_events import emit_bridge_consumed, emit_files_changed
from ...config.socketio_config import is_socketio_enabled
from ...domain.events import (
    BridgeConsumedEvent,
    DomainEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileEvictedEvent,
    FileRenamedEvent,
    FileTranscodedEvent,
)

logger = logging.getLogger(__name__)

_FILE_EVENT_REASONS = {
    FileCreatedEvent: "created",
    FileRenamedEvent: "renamed",
    FileDeletedEvent: "deleted",
    FileEvictedEvent: "evicted",
    FileTranscodedEvent: "transcoded",
}


class WebSocketEventHandler:
    """
    Event handler that emits WebSocket messages for domain events.

    Checks that SocketIO is enabled before attempting to emit.
    """

    def handle(self, event: DomainEvent) -> None:
        if not is_socketio_enabled():
            return

        try:
            reason = _FILE_EVENT_REASONS.get(type(event))
            if reason is not None:
                emit_files_changed(reason, event.aggregate_id)
            elif isinstance(event, BridgeConsumedEvent):
                emit_bridge_consumed(
                    f"bridge:{event.aggregate_id}", event.kind, event.file_id
                )
        except Exception as e:
            logger.error(
                f"Error handling {event.__class__.__name__} for {event.aggregate_id}: {e}",
                exc_info=True,
            )
