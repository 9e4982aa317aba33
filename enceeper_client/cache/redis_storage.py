"""
Redis storage backend.

Each record is one ``SET key {"created": ..., "value": ...}``; Redis single
key writes are atomic.
"""
import logging
from typing import Any, Optional

from redis.exceptions import RedisError

from ..exceptions import CacheReadError, CacheWriteError
from ..models import CacheRecord

logger = logging.getLogger("enceeper.cache")


class RedisStorage:
    """Storage backed by a ``redis.asyncio.Redis`` client.

    ``last_modified`` has to GET the whole record to learn its timestamp,
    so it hands the record back for the caller to reuse.
    """

    def __init__(self, redis: Any, prefix: str = ""):
        self._redis = redis
        self._prefix = prefix

    def _redis_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def _get(self, key: str) -> Optional[CacheRecord]:
        try:
            raw = await self._redis.get(self._redis_key(key))
        except RedisError as err:
            raise CacheReadError(f"Redis read of {key} failed: {err}") from err
        if raw is None:
            return None
        try:
            return CacheRecord.from_json(raw)
        except ValueError as err:
            raise CacheReadError(f"Redis key {key} holds no cache record") from err

    async def read(self, key: str) -> Optional[CacheRecord]:
        return await self._get(key)

    async def last_modified(self, key: str) -> tuple[int, Optional[CacheRecord]]:
        record = await self._get(key)
        if record is None:
            return 0, None
        return record.created_at, record

    async def write(self, key: str, record: CacheRecord) -> None:
        try:
            data = record.to_json()
        except TypeError as err:
            raise CacheWriteError("Cache payload is not JSON serializable") from err
        try:
            stored = await self._redis.set(self._redis_key(key), data)
        except RedisError as err:
            raise CacheWriteError(f"Redis write of {key} failed: {err}") from err
        if not stored:
            raise CacheWriteError(f"Redis refused to store {key}")
        logger.debug("Redis cache %s written", key)
