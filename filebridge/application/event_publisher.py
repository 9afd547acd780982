"""
In-process fan-out of domain events.

Services publish; infrastructure handlers (logging, SocketIO push) listen.
"""

import logging
from collections import defaultdict
from threading import Lock
from typing import Callable, DefaultDict, List, Type

from ..domain.events import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class EventPublisher:
    """
    Synchronous publisher keyed by event class.

    Dispatch walks the event's MRO, so a listener on DomainEvent sees
    everything. A listener that raises is logged and skipped; the
    remaining listeners still run and the publisher never raises.
    """

    def __init__(self):
        self._listeners: DefaultDict[Type[DomainEvent], List[Handler]] = defaultdict(list)
        self._guard = Lock()

    def subscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        with self._guard:
            self._listeners[event_type].append(handler)
        logger.debug(f"{_handler_name(handler)} listening on {event_type.__name__}")

    def publish(self, event: DomainEvent) -> None:
        with self._guard:
            targets = [
                listener
                for cls in type(event).__mro__
                if cls in self._listeners
                for listener in self._listeners[cls]
            ]

        for listener in targets:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    f"{_handler_name(listener)} failed on {type(event).__name__}"
                )
