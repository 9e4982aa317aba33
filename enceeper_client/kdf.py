"""
KDF Providers — password based key derivation in priority order.

Providers are tried in order; a provider answers ``None`` when it is not
available, and the next one is tried. The usual chain is a native
accelerator executable followed by the pure Python scrypt.

The accelerator is invoked as::

    <directory>/<method> <hex salt> <hex password padded to 8 digits> <N>

and must print the hex-encoded key on its last output line.

Security Note:
    The padded password is passed on the accelerator command line. Never
    log the arguments, the output or the derived key.
"""
import os
import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union, runtime_checkable

from .exceptions import ConfigurationError
from .scrypt import DEFAULT_HASH, DEFAULT_P, DEFAULT_R, derive

logger = logging.getLogger("enceeper.kdf")

HEX_BLOCK = 8


def pad_password_hex(password: bytes) -> str:
    """Hex-encode a password, right-padded with '0' to a multiple of 8 digits.

    An empty password becomes ``"00000000"``.
    """
    passhex = password.hex()
    remainder = len(passhex) % HEX_BLOCK
    if not passhex or remainder:
        passhex += "0" * (HEX_BLOCK - remainder)
    return passhex


@runtime_checkable
class KDFProvider(Protocol):
    name: str

    async def derive(self, password: bytes, salt: bytes, n: int) -> Optional[bytes]:
        ...


class BinaryKDF:
    """Native key derivation through an external executable."""

    def __init__(self, directory: Union[str, Path], method: str = "scrypt"):
        self.method = method
        self.name = f"binary:{method}"
        self.executable = Path(directory) / method

    def available(self) -> bool:
        return self.executable.is_file() and os.access(self.executable, os.X_OK)

    async def derive(self, password: bytes, salt: bytes, n: int) -> Optional[bytes]:
        if not self.available():
            logger.debug("No %s accelerator at %s", self.method, self.executable)
            return None
        try:
            process = await asyncio.create_subprocess_exec(
                str(self.executable),
                salt.hex(),
                pad_password_hex(password),
                str(n),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            stdout, _ = await process.communicate()
        except OSError as err:
            logger.debug("Accelerator %s could not be started: %s", self.executable, err)
            return None
        if process.returncode != 0:
            logger.debug(
                "Accelerator %s exited with status %s", self.executable, process.returncode
            )
            return None
        lines = stdout.decode("ascii", errors="replace").strip().splitlines()
        if not lines:
            return None
        try:
            key = bytes.fromhex(lines[-1].strip())
        except ValueError:
            logger.debug("Accelerator %s printed a non hex key", self.executable)
            return None
        return key or None


class ScryptKDF:
    """Pure Python scrypt, run in a worker thread."""

    name = "scrypt"

    def __init__(
        self,
        r: int = DEFAULT_R,
        p: int = DEFAULT_P,
        hash_name: str = DEFAULT_HASH,
        length: Optional[int] = None,
    ):
        self.r = r
        self.p = p
        self.hash_name = hash_name
        self.length = length

    async def derive(self, password: bytes, salt: bytes, n: int) -> Optional[bytes]:
        return await asyncio.to_thread(
            derive, password, salt, n, self.r, self.p, self.length, self.hash_name,
        )


async def derive_key(
    providers: Sequence[KDFProvider],
    password: bytes,
    salt: bytes,
    n: int,
) -> bytearray:
    """Derive a key with the first available provider.

    Returns:
        The derived key in a mutable buffer, so callers can wipe it.

    Raises:
        ConfigurationError: If no provider produced a key.
    """
    for provider in providers:
        key = await provider.derive(password, salt, n)
        if key:
            logger.debug("Derived a %d byte key using %s", len(key), provider.name)
            return bytearray(key)
    raise ConfigurationError("No key derivation provider produced a key")
