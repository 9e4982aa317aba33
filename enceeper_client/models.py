"""
Data model shared by the slot client and the cache layer.
"""
import unicodedata
from enum import IntEnum
from typing import Any, Optional, Union
from dataclasses import dataclass

import orjson
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class Strategy(IntEnum):
    """Cache refresh strategy.

    LIVE_UPDATE refreshes on read when the stored record is stale.
    BATCH_MODE never refreshes on read; ``update()`` must be called
    externally (i.e. via crontab).
    """
    LIVE_UPDATE = 0
    BATCH_MODE = 1


class Credentials(BaseModel):
    """Password and slot identifier.

    The password is NFKD-normalized at construction and masked in
    ``repr`` and validation errors.
    """

    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    identifier: str = Field(min_length=1)
    password: SecretStr

    @field_validator("password", mode="before")
    @classmethod
    def normalize_password(cls, v: Any) -> str:
        if isinstance(v, SecretStr):
            v = v.get_secret_value()
        if isinstance(v, (bytes, bytearray)):
            v = bytes(v).decode("utf-8")
        if not isinstance(v, str):
            raise ValueError("password must be text")
        # compatibility decomposition, as the service clients normalize
        return unicodedata.normalize("NFKD", v)

    def password_bytes(self) -> bytes:
        return self.password.get_secret_value().encode("utf-8")


@dataclass(frozen=True)
class SlotResponse:
    """Slot, meta and value as returned by the service.

    All three fields empty means the approval is still pending.
    """
    slot: Optional[str] = None
    meta: Optional[Any] = None
    value: Optional[str] = None

    @property
    def empty(self) -> bool:
        return self.slot is None and self.meta is None and self.value is None

    @classmethod
    def from_result(cls, result: dict) -> "SlotResponse":
        return cls(
            slot=result.get("slot"),
            meta=result.get("meta"),
            value=result.get("value"),
        )


@dataclass(frozen=True)
class PollState:
    """Pending approval round trip."""
    ref: str
    expires_at: float
    interval: int


@dataclass(frozen=True)
class CacheRecord:
    """A decoded slot value and the time it was fetched."""
    created_at: int
    payload: Any

    def to_json(self) -> bytes:
        """Serialize as ``{"created": ..., "value": ...}``.

        Raises:
            TypeError: If the payload is not JSON serializable.
        """
        return orjson.dumps({"created": self.created_at, "value": self.payload})

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "CacheRecord":
        """Parse a serialized record.

        Raises:
            ValueError: If the data is not a cache record.
        """
        parsed = orjson.loads(data)
        if not isinstance(parsed, dict) or "created" not in parsed or "value" not in parsed:
            raise ValueError("Not a cache record")
        created = parsed["created"]
        if isinstance(created, bool) or not isinstance(created, int):
            raise ValueError("Cache record has an invalid creation time")
        return cls(created_at=created, payload=parsed["value"])


def is_expired(created_at: float, ttl: float, now: float) -> bool:
    """A record is expired once ``now`` is past ``created_at + ttl``."""
    return now > created_at + ttl
