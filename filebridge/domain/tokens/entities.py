"""
Token Entities

Single-use, short-lived tokens that link a desktop intent to a request
from a second device, and the bearer grants used for direct downloads.
"""

import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import (
    TokenAlreadyConsumedError,
    TokenExpiredError,
    TokenNotFoundError,
)


class TokenKind(Enum):
    """What a token authorizes. A token is only valid at endpoints of its kind."""

    BRIDGE_UPLOAD = "bridge-upload"
    BRIDGE_DOWNLOAD = "bridge-download"
    DOWNLOAD = "download"


class TokenState(Enum):
    """
    Consumption state.

    AVAILABLE -> RESERVED -> CONSUMED, or RESERVED -> AVAILABLE when the
    action guarded by the token failed. CONSUMED is terminal.
    """

    AVAILABLE = "available"
    RESERVED = "reserved"
    CONSUMED = "consumed"


class BridgeKind(Enum):
    """Direction of a bridge handoff, seen from the second device."""

    UPLOAD = "upload"
    DOWNLOAD = "download"

    @property
    def token_kind(self) -> TokenKind:
        if self is BridgeKind.UPLOAD:
            return TokenKind.BRIDGE_UPLOAD
        return TokenKind.BRIDGE_DOWNLOAD

    @classmethod
    def from_token_kind(cls, kind: TokenKind) -> "BridgeKind":
        if kind is TokenKind.BRIDGE_UPLOAD:
            return cls.UPLOAD
        if kind is TokenKind.BRIDGE_DOWNLOAD:
            return cls.DOWNLOAD
        raise ValueError(f"{kind.value} is not a bridge token kind")


def generate_token() -> str:
    """32 random bytes, URL-safe base64 without padding."""
    return secrets.token_urlsafe(32)


def token_prefix(token: Optional[str]) -> str:
    """Shortened token for log lines."""
    return f"{(token or '')[:8]}..."


@dataclass(frozen=True)
class TokenRecord:
    """
    Stored state of one token.

    Attributes:
        token: Opaque unguessable value
        kind: What the token authorizes
        file_id: Referenced file (bridge-download and download kinds only)
        created_at: Issue time (UTC)
        expires_at: First instant at which the token is expired
        state: Consumption state
    """
    token: str
    kind: TokenKind
    created_at: datetime
    expires_at: datetime
    file_id: Optional[str] = None
    state: TokenState = TokenState.AVAILABLE

    @classmethod
    def issue(
        cls,
        kind: TokenKind,
        now: datetime,
        ttl_seconds: float,
        file_id: Optional[str] = None,
    ) -> "TokenRecord":
        """
        Create a fresh available token.

        Raises:
            ValueError: If ttl_seconds is not positive
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        return cls(
            token=generate_token(),
            kind=kind,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
            file_id=file_id,
        )

    @property
    def consumed(self) -> bool:
        return self.state is TokenState.CONSUMED

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_purgeable(self, now: datetime, retention_seconds: float) -> bool:
        """True once the record has outlived its expiry by the retention period."""
        return now >= self.expires_at + timedelta(seconds=retention_seconds)

    def with_state(self, state: TokenState) -> "TokenRecord":
        return replace(self, state=state)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "token": self.token,
            "kind": self.kind.value,
            "file_id": self.file_id,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenRecord":
        """Create TokenRecord from dictionary."""
        return cls(
            token=data["token"],
            kind=TokenKind(data["kind"]),
            file_id=data.get("file_id") or None,
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            state=TokenState(data.get("state", TokenState.AVAILABLE.value)),
        )


def check_usable(
    record: Optional[TokenRecord], kind: TokenKind, now: datetime
) -> TokenRecord:
    """
    Validate that a token may be used at an endpoint of ``kind``.

    Order of checks: unknown or wrong kind, then expiry, then consumption.
    Expiry wins over consumption so an expired token never reports anything
    but TokenExpired.

    Raises:
        TokenNotFoundError: Unknown token or a token of another kind
        TokenExpiredError: ``now`` is at or past ``expires_at``
        TokenAlreadyConsumedError: Token consumed or currently reserved
    """
    if record is None or record.kind is not kind:
        raise TokenNotFoundError("Token not found")
    if record.is_expired(now):
        raise TokenExpiredError("Token has expired")
    if record.state is not TokenState.AVAILABLE:
        raise TokenAlreadyConsumedError("Token has already been used")
    return record


@dataclass(frozen=True)
class BridgeSession:
    """
    A desktop-initiated handoff to a second device.

    ``target_file_id`` is set only for download bridges and is a weak
    reference: the file may be deleted independently.
    """
    token: str
    kind: BridgeKind
    created_at: datetime
    expires_at: datetime
    target_file_id: Optional[str] = None
    consumed: bool = False

    @classmethod
    def from_record(cls, record: TokenRecord) -> "BridgeSession":
        return cls(
            token=record.token,
            kind=BridgeKind.from_token_kind(record.kind),
            created_at=record.created_at,
            expires_at=record.expires_at,
            target_file_id=record.file_id,
            consumed=record.consumed,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "kind": self.kind.value,
            "target_file_id": self.target_file_id,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "consumed": self.consumed,
        }


@dataclass(frozen=True)
class DownloadGrant:
    """A single-use bearer authorization to download one file."""
    token: str
    file_id: str
    expires_at: datetime
    consumed: bool = False

    @classmethod
    def from_record(cls, record: TokenRecord) -> "DownloadGrant":
        return cls(
            token=record.token,
            file_id=record.file_id,
            expires_at=record.expires_at,
            consumed=record.consumed,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "file_id": self.file_id,
            "expires_at": self.expires_at.isoformat(),
            "consumed": self.consumed,
        }
