"""
Redis Token Repository

Token state shared across processes. State transitions run as Lua
scripts so the check and the write are one atomic server-side step.
Keys expire on their own once the retention period after expiry has
passed, so purge() has nothing to do.
"""

import json
import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional

import redis

from ..domain.errors import (
    TokenAlreadyConsumedError,
    TokenExpiredError,
    TokenNotFoundError,
)
from ..domain.tokens.entities import TokenKind, TokenRecord, TokenState
from ..domain.tokens.repositories import ITokenRepository
from .redis_repository import RedisRepository

logger = logging.getLogger(__name__)

# KEYS[1] token key; ARGV: kind, now (epoch seconds), new state
_TAKE_SCRIPT = """
local data = redis.call('GET', KEYS[1])
if not data then
    return 'not_found'
end

local record = cjson.decode(data)
if record['kind'] ~= ARGV[1] then
    return 'not_found'
end
if tonumber(ARGV[2]) >= tonumber(record['expires_at_ts']) then
    return 'expired'
end
if record['state'] ~= 'available' then
    return 'consumed'
end

record['state'] = ARGV[3]
local updated = cjson.encode(record)
redis.call('SET', KEYS[1], updated, 'KEEPTTL')
return updated
"""

# KEYS[1] token key; ARGV: expected state, new state
_TRANSITION_SCRIPT = """
local data = redis.call('GET', KEYS[1])
if not data then
    return 0
end

local record = cjson.decode(data)
if record['state'] ~= ARGV[1] then
    return 0
end

record['state'] = ARGV[2]
redis.call('SET', KEYS[1], cjson.encode(record), 'KEEPTTL')
return 1
"""

_TAKE_ERRORS = {
    "not_found": (TokenNotFoundError, "Token not found"),
    "expired": (TokenExpiredError, "Token has expired"),
    "consumed": (TokenAlreadyConsumedError, "Token has already been used"),
}


class RedisTokenRepository(RedisRepository, ITokenRepository):
    """ITokenRepository storing one JSON document per token."""

    def __init__(
        self,
        redis_client: redis.Redis,
        retention_seconds: float = 3600,
        key_prefix: str = "filebridge:token",
    ):
        super().__init__(redis_client, key_prefix)
        self.retention_seconds = retention_seconds
        self._take_script = self._register_script(_TAKE_SCRIPT)
        self._transition_script = self._register_script(_TRANSITION_SCRIPT)

    def add(self, record: TokenRecord) -> None:
        ttl = max(
            1,
            math.ceil(
                (record.expires_at - record.created_at).total_seconds()
                + self.retention_seconds
            ),
        )
        self.set_json(record.token, self._to_document(record), ttl=ttl)

    def get(self, token: str) -> Optional[TokenRecord]:
        if not token:
            return None
        data = self.get_json(token)
        return TokenRecord.from_dict(data) if data else None

    def reserve(self, token: str, kind: TokenKind, now: datetime) -> TokenRecord:
        return self._take(token, kind, now, TokenState.RESERVED)

    def consume(self, token: str, kind: TokenKind, now: datetime) -> TokenRecord:
        return self._take(token, kind, now, TokenState.CONSUMED)

    def commit(self, token: str) -> None:
        self._transition(token, TokenState.RESERVED, TokenState.CONSUMED)

    def release(self, token: str) -> None:
        self._transition(token, TokenState.RESERVED, TokenState.AVAILABLE)

    def purge(self, now: datetime, retention_seconds: float) -> int:
        return 0

    def _take(
        self, token: str, kind: TokenKind, now: datetime, state: TokenState
    ) -> TokenRecord:
        if not token:
            raise TokenNotFoundError("Token not found")

        result = self._take_script(
            keys=[self._make_key(token)],
            args=[kind.value, repr(now.timestamp()), state.value],
        )
        if isinstance(result, bytes):
            result = result.decode("utf-8")

        if result in _TAKE_ERRORS:
            error_class, message = _TAKE_ERRORS[result]
            raise error_class(message)
        return TokenRecord.from_dict(json.loads(result))

    def _transition(self, token: str, expected: TokenState, state: TokenState) -> None:
        changed = self._transition_script(
            keys=[self._make_key(token)], args=[expected.value, state.value]
        )
        if not changed:
            logger.debug(f"Token state not {expected.value}, transition skipped")

    @staticmethod
    def _to_document(record: TokenRecord) -> Dict[str, Any]:
        document = record.to_dict()
        document["expires_at_ts"] = record.expires_at.timestamp()
        return document
