"""Cache layer: refresh strategy and storage backends."""
from .base import StorageBackend
from .file import FileStorage
from .memory import MemoryStorage
from .redis_storage import RedisStorage
from .orchestrator import CacheOrchestrator

__all__ = [
    "StorageBackend",
    "FileStorage",
    "MemoryStorage",
    "RedisStorage",
    "CacheOrchestrator",
]
