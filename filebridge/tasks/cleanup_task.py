"""
Cleanup Task

Background thread that periodically purges token records which have
outlived their expiry by the retention period. Expired tokens stay
distinguishable from unknown ones until they are purged.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Optional

from ..domain.clock import utc_now
from ..domain.tokens.repositories import ITokenRepository

logger = logging.getLogger(__name__)


class TokenJanitor:
    """
    Periodic token cleanup.

    Uses a daemon thread and an Event so stop() interrupts the wait
    immediately instead of sleeping out the interval.
    """

    def __init__(
        self,
        token_repository: ITokenRepository,
        retention_seconds: float = 3600,
        interval_seconds: float = 30,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.token_repo = token_repository
        self.retention_seconds = retention_seconds
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.stats: Dict[str, int] = {"runs": 0, "purged": 0, "errors": 0}

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        """
        Purge eligible token records once.

        Returns:
            Number of records removed (0 when the purge failed)
        """
        try:
            purged = self.token_repo.purge(self._clock(), self.retention_seconds)
        except Exception as e:
            self.stats["errors"] += 1
            logger.error(f"Token cleanup failed: {e}", exc_info=True)
            return 0

        self.stats["runs"] += 1
        self.stats["purged"] += purged
        if purged:
            logger.info(f"Purged {purged} expired token records")
        return purged

    def start(self) -> None:
        """Start the cleanup thread. No-op when already running or interval is 0."""
        if self.is_running:
            return
        if self.interval_seconds <= 0:
            logger.info("Token cleanup disabled (interval is 0)")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="token-janitor", daemon=True
        )
        self._thread.start()
        logger.info(
            f"Token cleanup started (interval={self.interval_seconds}s, "
            f"retention={self.retention_seconds}s)"
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the thread to exit and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Token cleanup stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()
