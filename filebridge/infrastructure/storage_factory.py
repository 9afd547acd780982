"""
Storage Factory

Creates the byte storage and token repository implementations selected
by configuration. Callers depend only on the domain interfaces.
"""

import logging

from ..config.settings import StorageConfig, TokenConfig
from ..domain.file_storage.storage_repository import IFileStorageRepository
from ..domain.tokens.repositories import ITokenRepository
from .in_memory_file_storage_repository import InMemoryFileStorageRepository
from .in_memory_token_repository import InMemoryTokenRepository
from .local_file_storage_repository import LocalFileStorageRepository

logger = logging.getLogger(__name__)


class StorageFactory:
    """Factory for storage and token repositories."""

    @staticmethod
    def create_storage(config: StorageConfig) -> IFileStorageRepository:
        """
        Create the byte storage repository.

        Returns:
            LocalFileStorageRepository for ``local``, otherwise in-memory storage

        Raises:
            RuntimeError: If local storage initialization fails
        """
        if config.backend == "local":
            try:
                storage = LocalFileStorageRepository(config.directory)
            except OSError as e:
                raise RuntimeError(f"Failed to initialize local storage: {e}") from e
            logger.info(f"Storage factory: using local filesystem storage at {config.directory}")
            return storage

        logger.info("Storage factory: using in-memory storage")
        return InMemoryFileStorageRepository()

    @staticmethod
    def create_token_repository(config: TokenConfig) -> ITokenRepository:
        """
        Create the token repository.

        The Redis repository needs init_redis() to have run first.
        """
        if config.backend == "redis":
            from ..config.redis_config import get_redis_client
            from .redis_token_repository import RedisTokenRepository

            logger.info("Storage factory: using Redis token repository")
            return RedisTokenRepository(
                get_redis_client(), retention_seconds=config.retention_seconds
            )

        logger.info("Storage factory: using in-memory token repository")
        return InMemoryTokenRepository()
