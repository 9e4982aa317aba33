"""
Client Configuration — validated settings for the slot client and the cache.

Reads settings from environment variables:
    ENCEEPER_BASE_URL = <service URL, defaults to the public API v1>
    ENCEEPER_TIMEOUT = <network timeout in seconds>
    ENCEEPER_PBKD_BINARIES = <directory holding native KDF executables>
    ENCEEPER_SCRYPT_N = <scrypt cost parameter>
    ENCEEPER_CACHE_TTL = <seconds>
    ENCEEPER_CACHE_STRATEGY = live | batch
    ENCEEPER_CACHE_KEY = <storage key>

Security Note:
    Passwords are never read from the environment by this module.
"""
import os
import logging
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .models import Strategy

logger = logging.getLogger("enceeper.slots")

# The base URL of the Enceeper service API v1
BASE_URL = "https://www.enceeper.com/api/v1/user/slots/"
# Maximum number of approval checks per pending request
MAX_CHECKS = 10

_CLIENT_ENV = {
    "base_url": "ENCEEPER_BASE_URL",
    "timeout": "ENCEEPER_TIMEOUT",
    "kdf_binaries": "ENCEEPER_PBKD_BINARIES",
    "scrypt_n": "ENCEEPER_SCRYPT_N",
}

_CACHE_ENV = {
    "ttl": "ENCEEPER_CACHE_TTL",
    "strategy": "ENCEEPER_CACHE_STRATEGY",
    "key": "ENCEEPER_CACHE_KEY",
}

_STRATEGY_NAMES = {
    "live": Strategy.LIVE_UPDATE,
    "live_update": Strategy.LIVE_UPDATE,
    "batch": Strategy.BATCH_MODE,
    "batch_mode": Strategy.BATCH_MODE,
}


def _from_env(mapping: dict[str, str]) -> dict[str, str]:
    return {
        field: os.environ[name]
        for field, name in mapping.items()
        if os.environ.get(name)
    }


class ClientConfig(BaseModel):
    """Validated slot client configuration."""

    base_url: str = Field(default=BASE_URL)
    timeout: int = Field(default=10, ge=1)
    kdf_binaries: Optional[str] = None
    scrypt_n: int = Field(default=32768, ge=2)
    scrypt_r: int = Field(default=8, ge=1)
    scrypt_p: int = Field(default=1, ge=1)
    max_checks: int = Field(default=MAX_CHECKS, ge=1)
    legacy_text_decode: bool = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL ending in a slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Unsupported base URL: {v}")
        return v if v.endswith("/") else f"{v}/"

    @field_validator("scrypt_n")
    @classmethod
    def validate_scrypt_n(cls, v: int) -> int:
        if v & (v - 1) != 0:
            raise ValueError("scrypt_n must be a power of 2")
        return v

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create ClientConfig by loading values from environment.

        Returns:
            Populated ClientConfig instance.
        """
        values = _from_env(_CLIENT_ENV)
        logger.debug("Client settings from environment: %s", sorted(values))
        return cls(**values)


class CacheConfig(BaseModel):
    """Validated cache configuration."""

    ttl: int = Field(default=3600, ge=0)
    strategy: Strategy = Field(default=Strategy.BATCH_MODE)
    key: str = Field(default="enceeper", min_length=1)

    @field_validator("strategy", mode="before")
    @classmethod
    def parse_strategy(cls, v: Any) -> Any:
        """Accept strategy names ("live", "batch") besides enum values."""
        if isinstance(v, str):
            name = v.strip().lower()
            if name.isdigit():
                return int(name)
            if name not in _STRATEGY_NAMES:
                raise ValueError(f"Unsupported cache strategy: {v}")
            return _STRATEGY_NAMES[name]
        return v

    @classmethod
    def from_env(cls) -> "CacheConfig":
        return cls(**_from_env(_CACHE_ENV))
