"""
In-Memory Token Repository

Process-local token store. Every transition is a check-and-set under one
lock, which gives the single-winner guarantee for concurrent consumers.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from ..domain.errors import TokenNotFoundError
from ..domain.tokens.entities import (
    TokenKind,
    TokenRecord,
    TokenState,
    check_usable,
)
from ..domain.tokens.repositories import ITokenRepository

logger = logging.getLogger(__name__)


class InMemoryTokenRepository(ITokenRepository):
    """ITokenRepository backed by a lock-protected dict."""

    def __init__(self):
        self._records: Dict[str, TokenRecord] = {}
        self._lock = threading.Lock()

    def add(self, record: TokenRecord) -> None:
        with self._lock:
            self._records[record.token] = record

    def get(self, token: str) -> Optional[TokenRecord]:
        if not token:
            return None
        with self._lock:
            return self._records.get(token)

    def reserve(self, token: str, kind: TokenKind, now: datetime) -> TokenRecord:
        return self._take(token, kind, now, TokenState.RESERVED)

    def consume(self, token: str, kind: TokenKind, now: datetime) -> TokenRecord:
        return self._take(token, kind, now, TokenState.CONSUMED)

    def commit(self, token: str) -> None:
        self._transition(token, TokenState.RESERVED, TokenState.CONSUMED)

    def release(self, token: str) -> None:
        self._transition(token, TokenState.RESERVED, TokenState.AVAILABLE)

    def purge(self, now: datetime, retention_seconds: float) -> int:
        with self._lock:
            stale = [
                token
                for token, record in self._records.items()
                if record.is_purgeable(now, retention_seconds)
            ]
            for token in stale:
                del self._records[token]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _take(
        self, token: str, kind: TokenKind, now: datetime, state: TokenState
    ) -> TokenRecord:
        if not token:
            raise TokenNotFoundError("Token not found")
        with self._lock:
            record = check_usable(self._records.get(token), kind, now)
            updated = record.with_state(state)
            self._records[token] = updated
            return updated

    def _transition(
        self, token: str, expected: TokenState, state: TokenState
    ) -> None:
        with self._lock:
            record = self._records.get(token)
            if record is not None and record.state is expected:
                self._records[token] = record.with_state(state)
