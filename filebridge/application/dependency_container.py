"""
Service registry used by the app factory.

Services are looked up by the class (or interface) they were registered
under; each key maps to one instance shared by every caller.
"""

import logging
import threading
from typing import Any, Dict, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class DependencyNotFoundError(LookupError):
    """No instance is registered for the requested key."""


class DependencyContainer:
    """Thread-safe map from service keys to instances."""

    def __init__(self):
        self._instances: Dict[Type, Any] = {}
        self._mutex = threading.Lock()

    @staticmethod
    def _label(key: Type) -> str:
        return getattr(key, "__name__", repr(key))

    def register_singleton(self, interface: Type[T], implementation: T) -> None:
        """Share ``implementation`` with everyone resolving ``interface``."""
        with self._mutex:
            self._instances[interface] = implementation
        logger.debug(f"Service {self._label(interface)} bound to instance")

    def resolve(self, interface: Type[T]) -> T:
        """
        Look up the service bound to ``interface``.

        Raises:
            DependencyNotFoundError: Nothing is bound to ``interface``
        """
        with self._mutex:
            try:
                return self._instances[interface]
            except KeyError:
                raise DependencyNotFoundError(
                    f"Nothing registered for {self._label(interface)}"
                ) from None

    def is_registered(self, interface: Type) -> bool:
        with self._mutex:
            return interface in self._instances

    def singleton_count(self) -> int:
        with self._mutex:
            return len(self._instances)
