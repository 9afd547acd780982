"""Domain event handlers."""

from .logging_handler import LoggingEventHandler
from .websocket_handler import WebSocketEventHandler

__all__ = ["LoggingEventHandler", "WebSocketEventHandler"]
