"""Application layer: orchestration services, event publishing and DI."""

from .concurrency_limiter import ConcurrencyLimiter
from .dependency_container import DependencyContainer, DependencyNotFoundError
from .event_publisher import EventPublisher
from .file_service import FileService
from .transfer_service import TransferService

__all__ = [
    "ConcurrencyLimiter",
    "DependencyContainer",
    "DependencyNotFoundError",
    "EventPublisher",
    "FileService",
    "TransferService",
]
