"""Shared fixtures: envelope factory, scripted fetcher and a fake clock."""
import os
import base64
from typing import Optional

import orjson
import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from enceeper_client.config import ClientConfig
from enceeper_client.exceptions import RemoteApiError
from enceeper_client.models import Credentials
from enceeper_client.scrypt import derive


BASE_URL = "https://vault.test/api/v1/user/slots/"
IDENTIFIER = "slot-0001"
PASSWORD = "correct horse battery staple"
SALT = b"enceeper-test-salt"
VALUE = {"database": {"user": "app", "password": "s3cr3t"}, "port": 5432}


def make_envelope(
    key: bytes,
    plaintext: bytes,
    salt: Optional[bytes] = None,
    version: int = 1,
    ts: int = 128,
    iv: Optional[bytes] = None,
) -> str:
    """Encrypt ``plaintext`` with AES-256-GCM into version 1 envelope text.

    The nonce is the wire IV without its last 3 bytes.
    """
    iv = iv if iv is not None else os.urandom(16)
    encryptor = Cipher(algorithms.AES(key[:32]), modes.GCM(iv[:-3])).encryptor()
    ct = encryptor.update(plaintext) + encryptor.finalize()
    tag = encryptor.tag[:ts // 8]
    envelope = {
        "v": version,
        "cipher": "aes",
        "ks": 256,
        "mode": "gcm",
        "ts": ts,
        "iv": base64.b64encode(iv).decode("ascii"),
        "ct": base64.b64encode(ct + tag).decode("ascii"),
    }
    if salt is not None:
        envelope["scrypt"] = base64.b64encode(salt).decode("ascii")
    return orjson.dumps(envelope).decode("ascii")


class FakeFetcher:
    """Answers URLs from scripted queues of bodies or exceptions."""

    def __init__(self):
        self.responses: dict[str, list] = {}
        self.calls: list[str] = []

    def add(self, url: str, *answers) -> None:
        self.responses.setdefault(url, []).extend(answers)

    async def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        queue = self.responses[url]
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, dict):
            return orjson.dumps(answer)
        return answer


class FakeClock:
    """Wall clock that only moves when ``sleep`` is awaited."""

    def __init__(self, now: float = 1_700_000_000):
        self.now = now
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def config():
    """Cheap scrypt parameters so tests run quickly."""
    return ClientConfig(base_url=BASE_URL, scrypt_n=16, scrypt_r=1, scrypt_p=1)


@pytest.fixture
def credentials():
    return Credentials(identifier=IDENTIFIER, password=PASSWORD)


@pytest.fixture
def slot_key():
    return os.urandom(32)


@pytest.fixture
def slot_result(slot_key):
    """An approved ``result`` object for VALUE under PASSWORD."""
    derived = derive(PASSWORD.encode("utf-8"), SALT, n=16, r=1, p=1)
    return {
        "slot": make_envelope(derived, slot_key.hex().encode("ascii"), salt=SALT),
        "meta": {"name": "test slot"},
        "value": make_envelope(slot_key, orjson.dumps(VALUE)),
    }


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def pending():
    return RemoteApiError(428, "HTTP/1.1 428 Precondition Required")
