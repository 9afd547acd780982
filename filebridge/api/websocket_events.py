"""
SocketIO events for desktop pages.

Clients connect, optionally join the room of the bridge whose QR code
they are showing, and then receive:

- ``files_changed`` (broadcast) whenever the file list changes
- ``bridge_consumed`` (room only) when the phone used that bridge
"""

import logging

from flask import request
from flask_socketio import emit, join_room, leave_room

from ..config.socketio_config import get_socketio
from ..domain.tokens.entities import token_prefix

logger = logging.getLogger(__name__)


def bridge_room(token: str) -> str:
    return f"bridge:{token_prefix(token)}"


def _token_from(payload) -> str:
    if isinstance(payload, dict):
        return payload.get("token") or ""
    return ""


def register_socketio_events(app):
    """Bind the connection and room handlers to the app's SocketIO server."""
    server = get_socketio()
    if server is None:
        logger.warning(f"No SocketIO server for {app.name}; events not registered")
        return

    @server.on("connect")
    def on_connect():
        logger.info(f"Page connected ({request.sid})")
        emit("connected", {"client_id": request.sid})

    @server.on("disconnect")
    def on_disconnect():
        logger.info(f"Page disconnected ({request.sid})")

    @server.on("subscribe_bridge")
    def on_subscribe(payload):
        token = _token_from(payload)
        if not token:
            emit("error", {"message": "token is required"})
            return
        join_room(bridge_room(token))
        emit("subscribed", {"bridge": token_prefix(token)})

    @server.on("unsubscribe_bridge")
    def on_unsubscribe(payload):
        token = _token_from(payload)
        if not token:
            emit("error", {"message": "token is required"})
            return
        leave_room(bridge_room(token))
        emit("unsubscribed", {"bridge": token_prefix(token)})


def _safe_emit(event: str, payload: dict, **kwargs) -> None:
    server = get_socketio()
    if server is None:
        return
    try:
        server.emit(event, payload, **kwargs)
    except Exception:
        # Push is best effort; pages fall back to polling
        logger.exception(f"Could not emit {event}")
    else:
        logger.debug(f"Emitted {event}: {payload}")


def emit_files_changed(reason, file_id):
    """Broadcast a list change (created, renamed, deleted, evicted, transcoded)."""
    _safe_emit("files_changed", {"reason": reason, "file_id": file_id})


def emit_bridge_consumed(room, kind, file_id):
    """Notify the page showing a bridge that the phone has used it."""
    _safe_emit("bridge_consumed", {"kind": kind, "file_id": file_id}, to=room)
