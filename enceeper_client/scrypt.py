"""
Scrypt — memory-hard password based key derivation.

Pure Python scrypt built from PBKDF2-HMAC (one iteration), the Salsa20/8
core, BlockMix and ROMix:

    B  = PBKDF2(password, salt, 1, p * 128 * r)
    B' = ROMix(B_i, N) for each of the p lanes
    DK = PBKDF2(password, B', 1, length)

The Enceeper key chain stretches with HMAC-SHA512; selecting "sha256"
gives the classic scrypt of RFC 7914.

Memory use is ``128 * r * N`` bytes per lane (32 MiB for the defaults) and
a derivation with the defaults takes a long time in pure Python, so a
native accelerator is preferred when one is configured (see ``kdf``).

Security Note:
    Never log passwords, salts or derived keys.
"""
import struct
import logging
from array import array
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import ConfigurationError

logger = logging.getLogger("enceeper.kdf")

SIZE_MAX = 2 ** 32 - 1
MASK32 = 0xFFFFFFFF

DEFAULT_N = 32768
DEFAULT_R = 8
DEFAULT_P = 1
DEFAULT_HASH = "sha512"

_HASHES = {
    "sha256": hashes.SHA256,
    "sha512": hashes.SHA512,
}


def validate_parameters(n: int, r: int, p: int) -> None:
    """Check the scrypt cost parameters.

    Raises:
        ConfigurationError: If any of N, r, p is out of range.
    """
    if r < 1 or p < 1:
        raise ConfigurationError("The parameters r, p must be positive integers")
    if r * p >= 2 ** 30:
        raise ConfigurationError("The parameters r, p must satisfy r * p < 2^30")
    if n < 2 or (n & (n - 1)) != 0:
        raise ConfigurationError("The parameter N must be a power of 2.")
    if n > SIZE_MAX / 128 / r:
        raise ConfigurationError("N too big.")
    if r > SIZE_MAX / 128 / p:
        raise ConfigurationError("r too big.")


def _pbkdf2(hash_name: str, password: bytes, salt: bytes, length: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=_HASHES[hash_name](),
        length=length,
        salt=salt,
        iterations=1,
    )
    return kdf.derive(password)


def salsa20_8(b: list) -> list:
    """Salsa20/8 core over 16 little-endian 32-bit words."""
    (x0, x1, x2, x3, x4, x5, x6, x7,
     x8, x9, x10, x11, x12, x13, x14, x15) = b
    for _ in range(4):
        # columns
        t = (x0 + x12) & MASK32
        x4 ^= (t << 7 | t >> 25) & MASK32
        t = (x4 + x0) & MASK32
        x8 ^= (t << 9 | t >> 23) & MASK32
        t = (x8 + x4) & MASK32
        x12 ^= (t << 13 | t >> 19) & MASK32
        t = (x12 + x8) & MASK32
        x0 ^= (t << 18 | t >> 14) & MASK32

        t = (x5 + x1) & MASK32
        x9 ^= (t << 7 | t >> 25) & MASK32
        t = (x9 + x5) & MASK32
        x13 ^= (t << 9 | t >> 23) & MASK32
        t = (x13 + x9) & MASK32
        x1 ^= (t << 13 | t >> 19) & MASK32
        t = (x1 + x13) & MASK32
        x5 ^= (t << 18 | t >> 14) & MASK32

        t = (x10 + x6) & MASK32
        x14 ^= (t << 7 | t >> 25) & MASK32
        t = (x14 + x10) & MASK32
        x2 ^= (t << 9 | t >> 23) & MASK32
        t = (x2 + x14) & MASK32
        x6 ^= (t << 13 | t >> 19) & MASK32
        t = (x6 + x2) & MASK32
        x10 ^= (t << 18 | t >> 14) & MASK32

        t = (x15 + x11) & MASK32
        x3 ^= (t << 7 | t >> 25) & MASK32
        t = (x3 + x15) & MASK32
        x7 ^= (t << 9 | t >> 23) & MASK32
        t = (x7 + x3) & MASK32
        x11 ^= (t << 13 | t >> 19) & MASK32
        t = (x11 + x7) & MASK32
        x15 ^= (t << 18 | t >> 14) & MASK32

        # rows
        t = (x0 + x3) & MASK32
        x1 ^= (t << 7 | t >> 25) & MASK32
        t = (x1 + x0) & MASK32
        x2 ^= (t << 9 | t >> 23) & MASK32
        t = (x2 + x1) & MASK32
        x3 ^= (t << 13 | t >> 19) & MASK32
        t = (x3 + x2) & MASK32
        x0 ^= (t << 18 | t >> 14) & MASK32

        t = (x5 + x4) & MASK32
        x6 ^= (t << 7 | t >> 25) & MASK32
        t = (x6 + x5) & MASK32
        x7 ^= (t << 9 | t >> 23) & MASK32
        t = (x7 + x6) & MASK32
        x4 ^= (t << 13 | t >> 19) & MASK32
        t = (x4 + x7) & MASK32
        x5 ^= (t << 18 | t >> 14) & MASK32

        t = (x10 + x9) & MASK32
        x11 ^= (t << 7 | t >> 25) & MASK32
        t = (x11 + x10) & MASK32
        x8 ^= (t << 9 | t >> 23) & MASK32
        t = (x8 + x11) & MASK32
        x9 ^= (t << 13 | t >> 19) & MASK32
        t = (x9 + x8) & MASK32
        x10 ^= (t << 18 | t >> 14) & MASK32

        t = (x15 + x14) & MASK32
        x12 ^= (t << 7 | t >> 25) & MASK32
        t = (x12 + x15) & MASK32
        x13 ^= (t << 9 | t >> 23) & MASK32
        t = (x13 + x12) & MASK32
        x14 ^= (t << 13 | t >> 19) & MASK32
        t = (x14 + x13) & MASK32
        x15 ^= (t << 18 | t >> 14) & MASK32

    return [
        (x0 + b[0]) & MASK32, (x1 + b[1]) & MASK32,
        (x2 + b[2]) & MASK32, (x3 + b[3]) & MASK32,
        (x4 + b[4]) & MASK32, (x5 + b[5]) & MASK32,
        (x6 + b[6]) & MASK32, (x7 + b[7]) & MASK32,
        (x8 + b[8]) & MASK32, (x9 + b[9]) & MASK32,
        (x10 + b[10]) & MASK32, (x11 + b[11]) & MASK32,
        (x12 + b[12]) & MASK32, (x13 + b[13]) & MASK32,
        (x14 + b[14]) & MASK32, (x15 + b[15]) & MASK32,
    ]


def block_mix(b: list, r: int) -> list:
    """BlockMix over ``2 * r`` 64-byte sub-blocks.

    Even sub-blocks fill the first half of the output, odd ones the second.
    """
    x = b[-16:]
    out = [0] * (32 * r)
    for i in range(2 * r):
        start = 16 * i
        x = salsa20_8([a ^ c for a, c in zip(x, b[start:start + 16])])
        offset = 16 * ((i >> 1) + (i & 1) * r)
        out[offset:offset + 16] = x
    return out


def ro_mix(block: list, n: int, r: int) -> list:
    """ROMix: N BlockMix states are kept, then revisited in data-dependent order."""
    x = block
    v = []
    for _ in range(n):
        v.append(array('I', x))
        x = block_mix(x, r)
    mask = n - 1
    last = 32 * r - 16
    for _ in range(n):
        j = x[last] & mask
        x = block_mix([a ^ c for a, c in zip(x, v[j])], r)
    return x


def reverse_words(words: list) -> None:
    """Swap the byte order of every 32-bit word in place."""
    for i, w in enumerate(words):
        words[i] = (
            ((w & 0xFF) << 24)
            | (((w >> 8) & 0xFF) << 16)
            | (((w >> 16) & 0xFF) << 8)
            | ((w >> 24) & 0xFF)
        )


def derive(
    password: bytes,
    salt: bytes,
    n: int = DEFAULT_N,
    r: int = DEFAULT_R,
    p: int = DEFAULT_P,
    length: Optional[int] = None,
    hash_name: str = DEFAULT_HASH,
) -> bytes:
    """Derive a key from a password using scrypt.

    Args:
        password: Password bytes.
        salt: Salt bytes.
        n: CPU/memory cost, a power of two.
        r: Block size.
        p: Parallelization.
        length: Output length in bytes; defaults to the digest size of
            ``hash_name`` (64 bytes for SHA-512).
        hash_name: PBKDF2 hash, "sha512" or "sha256".

    Returns:
        The derived key.

    Raises:
        ConfigurationError: If the parameters are invalid.
    """
    validate_parameters(n, r, p)
    if hash_name not in _HASHES:
        raise ConfigurationError(f"Unsupported hash function: {hash_name}")
    if length is None:
        length = _HASHES[hash_name].digest_size
    if length < 1:
        raise ConfigurationError("The output length must be a positive integer")

    stretched = _pbkdf2(hash_name, password, salt, p * 128 * r)
    words = list(struct.unpack(f">{len(stretched) // 4}I", stretched))
    reverse_words(words)

    lane = 32 * r
    for i in range(p):
        start = i * lane
        words[start:start + lane] = ro_mix(words[start:start + lane], n, r)

    reverse_words(words)
    mixed = struct.pack(f">{len(words)}I", *words)
    logger.debug("scrypt derived %d bytes (N=%d, r=%d, p=%d)", length, n, r, p)
    return _pbkdf2(hash_name, password, mixed, length)
