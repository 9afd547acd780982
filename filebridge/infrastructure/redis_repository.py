"""
Shared plumbing for Redis-backed repositories.

``RedisRepository`` namespaces keys and stores JSON documents;
``RedisConnectionManager`` owns the connection pool.
"""

import json
import logging
from typing import Any, Dict, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class RedisRepository:
    """Namespaced JSON documents plus server-side Lua scripts."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        if not self.key_prefix:
            return key
        return ":".join((self.key_prefix, key))

    def _register_script(self, lua_script: str):
        """Wrap ``lua_script`` so each call runs atomically via EVALSHA."""
        return self.redis.register_script(lua_script)

    def set_json(self, key: str, data: Document, ttl: Optional[int] = None) -> bool:
        """Serialize ``data`` under ``key``, expiring after ``ttl`` seconds if given."""
        payload = json.dumps(data)
        return bool(self.redis.set(self._make_key(key), payload, ex=ttl or None))

    def get_json(self, key: str) -> Optional[Document]:
        """Load the document at ``key``; missing or corrupt entries read as None."""
        raw = self.redis.get(self._make_key(key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring unparseable document at {self._make_key(key)}")
            return None


class RedisConnectionManager:
    """Lazily creates a client bound to one connection pool."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        max_connections: int = 20,
    ):
        self.pool = redis.ConnectionPool(
            host=host,
            port=port,
            db=db,
            password=password,
            max_connections=max_connections,
            socket_keepalive=True,
            retry_on_timeout=True,
        )
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.pool)
        return self._client

    def health_check(self) -> bool:
        try:
            return bool(self.client.ping())
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def close(self) -> None:
        self.pool.disconnect()
