"""Enceeper Client — fetch, decrypt and cache secrets stored in Enceeper slots.

Security Note (Threat Model):
    The decrypted value lives in process memory and, once cached, in the
    configured storage backend in plain form. Protect the cache file or the
    Redis instance accordingly. Passwords and keys are never persisted.
"""

from .version import __version__
from .client import SlotClient
from .config import CacheConfig, ClientConfig
from .models import CacheRecord, Credentials, SlotResponse, Strategy
from .cache import (
    CacheOrchestrator,
    FileStorage,
    MemoryStorage,
    RedisStorage,
    StorageBackend,
)
from .exceptions import (
    AuthenticationFailure,
    CacheReadError,
    CacheWriteError,
    ConfigurationError,
    EnceeperError,
    NetworkError,
    RemoteApiError,
    UnsupportedVersionError,
)

__all__ = [
    "__version__",
    "SlotClient",
    "CacheConfig",
    "ClientConfig",
    "CacheRecord",
    "Credentials",
    "SlotResponse",
    "Strategy",
    "CacheOrchestrator",
    "FileStorage",
    "MemoryStorage",
    "RedisStorage",
    "StorageBackend",
    "AuthenticationFailure",
    "CacheReadError",
    "CacheWriteError",
    "ConfigurationError",
    "EnceeperError",
    "NetworkError",
    "RemoteApiError",
    "UnsupportedVersionError",
]
