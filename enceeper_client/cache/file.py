"""
File storage backend.

The record is written to a temporary file in the same directory and
renamed over the target, so readers see either the old or the new record.
The file mtime is set to the record creation time, which lets
``last_modified`` answer with a ``stat`` instead of a read.
"""
import os
import asyncio
import contextlib
import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..exceptions import CacheReadError, CacheWriteError
from ..models import CacheRecord

logger = logging.getLogger("enceeper.cache")


class FileStorage:
    """Single file storage. The ``key`` argument is ignored; the path is the key.

    Make sure the process can write to the directory holding the file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def read(self, key: str) -> Optional[CacheRecord]:
        return await asyncio.to_thread(self._read)

    async def write(self, key: str, record: CacheRecord) -> None:
        await asyncio.to_thread(self._write, record)

    async def last_modified(self, key: str) -> tuple[int, Optional[CacheRecord]]:
        try:
            stat = await asyncio.to_thread(os.stat, self.path)
        except FileNotFoundError:
            return 0, None
        except OSError as err:
            raise CacheReadError(f"Cannot stat {self.path}: {err.strerror}") from err
        return int(stat.st_mtime), None

    def _read(self) -> Optional[CacheRecord]:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as err:
            raise CacheReadError(f"Cannot read {self.path}: {err.strerror}") from err
        try:
            return CacheRecord.from_json(data)
        except ValueError as err:
            raise CacheReadError(f"Corrupt cache file {self.path}") from err

    def _write(self, record: CacheRecord) -> None:
        try:
            data = record.to_json()
        except TypeError as err:
            raise CacheWriteError("Cache payload is not JSON serializable") from err
        tmp = None
        try:
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix="~",
            )
            with os.fdopen(fd, "wb") as fp:
                fp.write(data)
                fp.flush()
                os.fsync(fp.fileno())
            os.utime(tmp, (record.created_at, record.created_at))
            os.replace(tmp, self.path)
        except OSError as err:
            if tmp is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp)
            raise CacheWriteError(f"Failed to write {self.path}: {err.strerror}") from err
        logger.debug("File cache %s written", self.path)
