"""
Token Repositories

Repository interface for token state. Every state transition is a single
atomic check-and-set inside the repository; callers never read a token and
write it back in a separate step.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .entities import TokenKind, TokenRecord


class ITokenRepository(ABC):
    """
    Abstract store for TokenRecords of every kind.

    Usability checks in reserve() and consume() follow
    ``entities.check_usable`` and raise the same domain errors.
    """

    @abstractmethod
    def add(self, record: TokenRecord) -> None:
        """Store a freshly issued token."""
        pass

    @abstractmethod
    def get(self, token: str) -> Optional[TokenRecord]:
        """Read a token without changing it. None if unknown or purged."""
        pass

    @abstractmethod
    def reserve(self, token: str, kind: TokenKind, now: datetime) -> TokenRecord:
        """
        Atomically move an available token of ``kind`` to RESERVED.

        Exactly one of any number of concurrent callers succeeds; the rest
        see TokenAlreadyConsumedError.

        Returns:
            The reserved record

        Raises:
            TokenNotFoundError, TokenExpiredError, TokenAlreadyConsumedError
        """
        pass

    @abstractmethod
    def commit(self, token: str) -> None:
        """Mark a RESERVED token CONSUMED. No effect on other states."""
        pass

    @abstractmethod
    def release(self, token: str) -> None:
        """Return a RESERVED token to AVAILABLE. No effect on other states."""
        pass

    @abstractmethod
    def consume(self, token: str, kind: TokenKind, now: datetime) -> TokenRecord:
        """
        Atomically move an available token of ``kind`` straight to CONSUMED.

        Raises:
            TokenNotFoundError, TokenExpiredError, TokenAlreadyConsumedError
        """
        pass

    @abstractmethod
    def purge(self, now: datetime, retention_seconds: float) -> int:
        """
        Drop records whose expiry is older than the retention period.

        Returns:
            Number of records removed
        """
        pass
