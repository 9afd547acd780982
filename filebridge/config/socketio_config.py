"""
Flask-SocketIO server for push notifications to desktop pages.

Created only when SOCKETIO_ENABLED is set; everything else in the app
works without it.
"""

import logging
import os
from typing import Optional

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)

_server: Optional[SocketIO] = None


def init_socketio(app) -> SocketIO:
    """
    Attach a SocketIO server to ``app``.

    With REDIS_URL set, emits go through Redis pub/sub so every worker
    process reaches every connected page.
    """
    global _server
    queue = os.getenv("REDIS_URL") or None
    _server = SocketIO(
        app,
        async_mode="threading",
        cors_allowed_origins="*",
        message_queue=queue,
        logger=False,
        engineio_logger=False,
    )
    logger.info(f"SocketIO ready, message queue: {queue or 'in-process'}")
    return _server


def get_socketio() -> Optional[SocketIO]:
    return _server


def is_socketio_enabled() -> bool:
    """True once init_socketio() has run for the current app."""
    return _server is not None


def reset_socketio() -> None:
    global _server
    _server = None
