"""
CacheOrchestrator — decide between the stored value and a fresh fetch.

| Strategy    | fresh record | stale record | no record |
|-------------|--------------|--------------|-----------|
| BATCH_MODE  | stored       | stored       | {}        |
| LIVE_UPDATE | stored       | fetch        | fetch     |

With BATCH_MODE the stored value is only ever refreshed by an explicit
``update()``, e.g. from a scheduled job.
"""
import time
import logging
from typing import Any, Optional

import orjson

from ..client import SlotClient
from ..config import CacheConfig
from ..exceptions import CacheReadError, CacheWriteError, ConfigurationError
from ..models import CacheRecord, Strategy, is_expired
from .base import StorageBackend

logger = logging.getLogger("enceeper.cache")


class CacheOrchestrator:
    """Serve a slot value from storage, refreshing it per the strategy.

    Args:
        client: Slot client used for fresh fetches.
        storage: Storage backend.
        ttl: Freshness window in seconds.
        strategy: Refresh strategy. If BATCH_MODE is selected make sure
            ``update()`` was called successfully first.
        key: Storage key.
    """

    def __init__(
        self,
        client: SlotClient,
        storage: StorageBackend,
        ttl: int = 3600,
        strategy: Strategy = Strategy.BATCH_MODE,
        key: str = "enceeper",
    ):
        if ttl < 0:
            raise ConfigurationError("The cache ttl must not be negative")
        self.client = client
        self.storage = storage
        self.ttl = ttl
        self.strategy = Strategy(strategy)
        self.key = key
        self._clock = time.time

    @classmethod
    def from_config(
        cls,
        client: SlotClient,
        storage: StorageBackend,
        config: Optional[CacheConfig] = None,
    ) -> "CacheOrchestrator":
        config = config or CacheConfig.from_env()
        return cls(client, storage, ttl=config.ttl, strategy=config.strategy, key=config.key)

    async def _last_modified(self) -> tuple[int, Optional[CacheRecord]]:
        try:
            return await self.storage.last_modified(self.key)
        except CacheReadError as err:
            logger.warning("Cache %s unreadable, treating as empty: %s", self.key, err)
            return 0, None

    async def _read(self) -> Optional[CacheRecord]:
        try:
            return await self.storage.read(self.key)
        except CacheReadError as err:
            logger.warning("Cache %s unreadable, treating as empty: %s", self.key, err)
            return None

    async def get(self) -> Any:
        """Return the slot value, from storage or freshly fetched.

        Returns:
            The decoded value; ``{}`` when nothing is available.
        """
        if self.strategy is Strategy.BATCH_MODE:
            record = await self._read()
            return {} if record is None else record.payload
        created, record = await self._last_modified()
        if created and not is_expired(created, self.ttl, self._clock()):
            if record is None:
                # timestamp only backends, the record itself may be gone
                record = await self._read()
            if record is not None:
                return record.payload
        logger.debug("Cache %s is stale or absent, refreshing", self.key)
        return await self.update()

    async def update(self) -> Any:
        """Fetch a new copy of the value and store it.

        With the batch mode strategy this must be called explicitly
        (i.e. via crontab).

        Returns:
            The decoded value; ``{}`` if the approval is still pending, in
            which case the stored record is left untouched.

        Raises:
            CacheWriteError: If the value cannot be decoded or stored.
        """
        text = await self.client.get_value()
        if text is None:
            logger.warning(
                "Slot %s not available yet, cache %s left untouched",
                self.client.identifier, self.key,
            )
            return {}
        try:
            payload = orjson.loads(text)
        except orjson.JSONDecodeError:
            raise CacheWriteError("Slot value is not valid JSON") from None
        if payload is None:
            raise CacheWriteError("Slot value decoded to null")
        record = CacheRecord(created_at=int(self._clock()), payload=payload)
        try:
            await self.storage.write(self.key, record)
        except CacheWriteError as err:
            logger.error("Failed to set the cache contents of %s: %s", self.key, err)
            raise
        logger.info("Cache %s updated", self.key)
        return payload

    async def last_update(self) -> int:
        """Time of the last update; 0 when nothing is stored."""
        created, _ = await self._last_modified()
        return created

    async def is_expired(self) -> bool:
        created = await self.last_update()
        return not created or is_expired(created, self.ttl, self._clock())
