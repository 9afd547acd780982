"""
Redis connection settings and the process-wide connection manager.

Only used when TOKEN_BACKEND=redis.
"""

import os
from typing import Optional

import redis

from ..infrastructure.redis_repository import RedisConnectionManager


class RedisConfig:
    """REDIS_URL wins over the individual REDIS_* variables."""

    def __init__(self):
        url = os.getenv("REDIS_URL")
        parsed = redis.connection.parse_url(url) if url else {}

        self.url = url
        self.host = parsed.get("host") or os.getenv("REDIS_HOST", "localhost")
        self.port = int(parsed.get("port") or os.getenv("REDIS_PORT", 6379))
        self.db = int(parsed.get("db") or os.getenv("REDIS_DB", 0))
        self.password = parsed.get("password") or os.getenv("REDIS_PASSWORD")
        self.max_connections = int(os.getenv("REDIS_MAX_CONNECTIONS", 20))


_manager: Optional[RedisConnectionManager] = None


def init_redis(config: Optional[RedisConfig] = None) -> RedisConnectionManager:
    """Create (or replace) the shared manager from ``config`` or the environment."""
    global _manager
    cfg = config or RedisConfig()
    _manager = RedisConnectionManager(
        host=cfg.host,
        port=cfg.port,
        db=cfg.db,
        password=cfg.password,
        max_connections=cfg.max_connections,
    )
    return _manager


def get_redis_client() -> redis.Redis:
    if _manager is None:
        raise RuntimeError("init_redis() must run before the Redis client is used")
    return _manager.client


def is_redis_initialized() -> bool:
    return _manager is not None


def redis_health_check() -> bool:
    return _manager is not None and _manager.health_check()


def close_redis() -> None:
    global _manager
    manager, _manager = _manager, None
    if manager is not None:
        manager.close()
