"""
Concurrency Limiter

Non-blocking slot limiter for expensive operations (uploads, transcodes).
When every slot is taken the caller is turned away immediately instead of
queueing, keeping memory use bounded under load.
"""

import logging
import threading
from contextlib import contextmanager

from ..domain.errors import ServiceBusyError

logger = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """Bounded semaphore acquired without blocking."""

    def __init__(self, name: str, limit: int):
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.name = name
        self.limit = limit
        self._semaphore = threading.BoundedSemaphore(limit)

    def try_acquire(self) -> bool:
        return self._semaphore.acquire(blocking=False)

    def release(self) -> None:
        self._semaphore.release()

    @contextmanager
    def slot(self):
        """
        Hold one slot for the duration of the block.

        Raises:
            ServiceBusyError: If no slot is free
        """
        if not self.try_acquire():
            logger.warning(f"[{self.name.upper()}] concurrency limit of {self.limit} reached")
            raise ServiceBusyError(f"{self.name} concurrency limit reached")
        try:
            yield
        finally:
            self.release()
