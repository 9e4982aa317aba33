"""
Storage contract for cached slot values.

Backends only store and load records; the refresh strategy lives in
``CacheOrchestrator`` and is written once against this protocol.
"""
from typing import Optional, Protocol, runtime_checkable

from ..models import CacheRecord


@runtime_checkable
class StorageBackend(Protocol):
    """Persist timestamped records.

    Writes must be atomic: a reader never observes a partially written
    record. Concurrent writers are last-writer-wins.
    """

    async def read(self, key: str) -> Optional[CacheRecord]:
        """Return the stored record, or None when there is none.

        Raises:
            CacheReadError: If the record exists but cannot be read.
        """
        ...

    async def write(self, key: str, record: CacheRecord) -> None:
        """Store a record, replacing any previous one.

        Raises:
            CacheWriteError: If the record could not be persisted.
        """
        ...

    async def last_modified(self, key: str) -> tuple[int, Optional[CacheRecord]]:
        """Return ``(timestamp, record)``.

        The timestamp is 0 when no record exists. Backends that had to load
        the whole record to answer return it as well, so the caller can use
        it once instead of reading again; others return None.

        Raises:
            CacheReadError: If the record exists but cannot be read.
        """
        ...
