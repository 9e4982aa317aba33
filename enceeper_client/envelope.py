"""
Envelope Cipher — authenticated decryption of version 1 Enceeper envelopes.

An envelope is the JSON text written by the Enceeper JS library for one
authenticated encryption:

    {"v": 1, "cipher": "aes", "ks": 256, "mode": "gcm", "ts": 128,
     "iv": "<base64>", "ct": "<base64 ciphertext||tag>",
     "scrypt": "<base64 salt, slot envelopes only>"}

Security Note:
    The wire IV carries 3 trailing bytes that are not part of the nonce;
    they are dropped before decryption to stay compatible with the service.
    Plaintext is only released after the tag has been verified.
"""
import base64
import binascii
import logging
from typing import Any, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESCCM

from .exceptions import (
    AuthenticationFailure,
    MalformedEnvelopeError,
    UnsupportedVersionError,
)

logger = logging.getLogger("enceeper.slots")

SUPPORTED_VERSION = 1
IV_TRIM = 3

_KEY_SIZES = (128, 192, 256)
_MODES = ("gcm", "ccm")
_AUTH_MESSAGE = "Either the wrong key was loaded, or the ciphertext was altered"

Buffer = Union[bytes, bytearray]


def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable key buffer with zeros."""
    for i in range(len(buffer)):
        buffer[i] = 0


class SlotEnvelope(BaseModel):
    """A decoded version 1 envelope."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: int = Field(alias="v")
    cipher: str
    key_size: int = Field(alias="ks", gt=0)
    mode: str
    tag_size: int = Field(alias="ts")
    ct: bytes
    iv: bytes
    salt: Optional[bytes] = Field(default=None, alias="scrypt")

    @field_validator("ct", "iv", "salt", mode="before")
    @classmethod
    def decode_base64(cls, v: Any) -> Any:
        """Decode base64 fields, tolerating missing padding."""
        if v is None or isinstance(v, bytes):
            return v
        if not isinstance(v, str):
            raise ValueError("expected a base64 string")
        try:
            return base64.b64decode(v + "=" * (-len(v) % 4))
        except (binascii.Error, ValueError) as err:
            raise ValueError("invalid base64") from err

    @field_validator("tag_size")
    @classmethod
    def validate_tag_size(cls, v: int) -> int:
        if v % 8 != 0 or not 32 <= v <= 128:
            raise ValueError("tag size must be a multiple of 8 between 32 and 128")
        return v

    @property
    def identifier(self) -> str:
        """OpenSSL style cipher name, e.g. ``aes-256-gcm``."""
        return f"{self.cipher}-{self.key_size}-{self.mode}".lower()

    @property
    def tag_length(self) -> int:
        return self.tag_size // 8

    @property
    def nonce(self) -> bytes:
        return self.iv[:-IV_TRIM]


def parse_envelope(text: Union[str, bytes]) -> SlotEnvelope:
    """Decode envelope text.

    Raises:
        UnsupportedVersionError: If the envelope version is not 1.
        MalformedEnvelopeError: If the text is not a valid envelope.
    """
    try:
        data = orjson.loads(text)
    except orjson.JSONDecodeError:
        raise MalformedEnvelopeError("Envelope is not valid JSON") from None
    if not isinstance(data, dict):
        raise MalformedEnvelopeError("Envelope must be a JSON object")
    version = data.get("v")
    if type(version) is not int or version != SUPPORTED_VERSION:
        raise UnsupportedVersionError(f"Version {version} is not supported")
    try:
        return SlotEnvelope.model_validate(data)
    except ValidationError as err:
        # error details may echo ciphertext, report field names only
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) for error in err.errors()
        )
        raise MalformedEnvelopeError(f"Invalid envelope fields: {fields}") from None


def _decrypt_gcm(key: Buffer, nonce: bytes, body: bytes, tag: bytes) -> bytearray:
    decryptor = Cipher(
        algorithms.AES(key),
        modes.GCM(nonce, tag, min_tag_length=len(tag)),
    ).decryptor()
    # decrypt straight into a mutable buffer
    buffer = bytearray(len(body) + 15)
    del buffer[decryptor.update_into(body, buffer):]
    try:
        decryptor.finalize()
    except InvalidTag:
        wipe(buffer)
        raise AuthenticationFailure(_AUTH_MESSAGE) from None
    return buffer


def _decrypt_ccm(key: Buffer, nonce: bytes, body: bytes, tag: bytes) -> bytearray:
    try:
        return bytearray(AESCCM(key, tag_length=len(tag)).decrypt(nonce, body + tag, None))
    except InvalidTag:
        raise AuthenticationFailure(_AUTH_MESSAGE) from None


_DECRYPTORS = {
    "gcm": _decrypt_gcm,
    "ccm": _decrypt_ccm,
}


def decrypt(key: Buffer, envelope: SlotEnvelope) -> bytearray:
    """Decrypt and authenticate a version 1 envelope.

    Keys longer than the envelope key size are truncated, as OpenSSL does.

    Args:
        key: Key bytes (derived key or slot key).
        envelope: Decoded envelope.

    Returns:
        The plaintext in a mutable buffer, so callers can wipe it.

    Raises:
        UnsupportedVersionError: If the version or cipher is not supported.
        AuthenticationFailure: If the key is wrong or the data was altered.
        MalformedEnvelopeError: If the nonce or tag cannot be used.
    """
    if envelope.version != SUPPORTED_VERSION:
        raise UnsupportedVersionError(f"Version {envelope.version} is not supported")
    mode = envelope.mode.lower()
    if (
        envelope.cipher.lower() != "aes"
        or envelope.key_size not in _KEY_SIZES
        or mode not in _MODES
    ):
        raise UnsupportedVersionError(f"Cipher {envelope.identifier} is not supported")

    key_length = envelope.key_size // 8
    if len(key) < key_length:
        raise AuthenticationFailure(_AUTH_MESSAGE)
    tag_length = envelope.tag_length
    if len(envelope.ct) < tag_length:
        raise AuthenticationFailure(_AUTH_MESSAGE)

    body = envelope.ct[:-tag_length]
    tag = envelope.ct[-tag_length:]
    cipher_key = bytearray(key[:key_length])
    try:
        return _DECRYPTORS[mode](cipher_key, envelope.nonce, body, tag)
    except ValueError as err:
        # nonce or tag length rejected by the cipher
        raise MalformedEnvelopeError(
            f"Cannot use envelope with {envelope.identifier}: {err}"
        ) from None
    finally:
        wipe(cipher_key)
