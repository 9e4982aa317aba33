"""
In-process storage backend.
"""
from typing import Optional

from ..models import CacheRecord


class MemoryStorage:
    """Dict backed storage; records live as long as the instance."""

    def __init__(self):
        self._records: dict[str, CacheRecord] = {}

    async def read(self, key: str) -> Optional[CacheRecord]:
        return self._records.get(key)

    async def write(self, key: str, record: CacheRecord) -> None:
        self._records[key] = record

    async def last_modified(self, key: str) -> tuple[int, Optional[CacheRecord]]:
        record = self._records.get(key)
        return (0, None) if record is None else (record.created_at, None)
