"""
Domain Events

Frozen facts published after a file or token changed state. The services
raise them; logging and SocketIO push subscribe to them.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class DomainEvent:
    """
    Common event header.

    ``aggregate_id`` is the file id for file events and the token prefix
    for bridge and grant events.
    """
    aggregate_id: str
    occurred_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON-ready dict; datetimes become ISO 8601 strings."""
        data: Dict[str, Any] = {"event_type": type(self).__name__}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = value.isoformat() if isinstance(value, datetime) else value
        return data


@dataclass(frozen=True)
class FileCreatedEvent(DomainEvent):
    """
    A file entered the registry.

    ``encoding`` is the detected label ("Unknown" for binary content);
    ``via_bridge`` marks phone uploads.
    """
    name: str
    size_bytes: int
    encoding: str
    via_bridge: bool = False


@dataclass(frozen=True)
class FileRenamedEvent(DomainEvent):
    old_name: str
    new_name: str


@dataclass(frozen=True)
class FileDeletedEvent(DomainEvent):
    name: str


@dataclass(frozen=True)
class FileEvictedEvent(DomainEvent):
    """The oldest file was dropped to admit a newer one."""
    name: str
    size_bytes: int


@dataclass(frozen=True)
class FileTranscodedEvent(DomainEvent):
    """Stored bytes were rewritten; ``lossy`` means characters were substituted."""
    source_encoding: str
    target_encoding: str
    size_bytes: int
    lossy: bool


@dataclass(frozen=True)
class BridgeIssuedEvent(DomainEvent):
    kind: str
    expires_at: datetime
    target_file_id: Optional[str] = None


@dataclass(frozen=True)
class BridgeConsumedEvent(DomainEvent):
    """The second device used a bridge; ``file_id`` is the file created or handed off."""
    kind: str
    file_id: str


@dataclass(frozen=True)
class DownloadGrantIssuedEvent(DomainEvent):
    file_id: str
    expires_at: datetime


@dataclass(frozen=True)
class DownloadGrantRedeemedEvent(DomainEvent):
    """A grant was spent and the file started streaming."""
    file_id: str
    name: str
    size_bytes: int
