"""
SlotClient — fetch and decrypt the value of an Enceeper slot.

The key chain is::

    password --scrypt--> derived key --decrypt(slot)--> slot key
             --decrypt(value)--> value text

Retrieval:
- ``GET BASE_URL/{identifier}`` returns either the slot or a pending
  approval ``{ref, ttl}``.
- While pending, ``GET BASE_URL/check/{ref}`` is polled at most
  ``MAX_CHECKS`` times, ``ttl // MAX_CHECKS`` seconds apart. HTTP 428
  means "still pending"; any other error aborts.
- If the approval window closes, the result is empty (not an error).

Security Note:
    The derived key and the slot key are wiped right after use. Never log
    passwords, keys or the decrypted value.
"""
import math
import time
import asyncio
import logging
from typing import Optional, Sequence

import orjson

from .config import ClientConfig
from .envelope import decrypt, parse_envelope, wipe
from .exceptions import (
    MalformedEnvelopeError,
    MalformedResponseError,
    RemoteApiError,
    UnsupportedVersionError,
)
from .fetch import Fetcher, HTTPFetcher
from .kdf import BinaryKDF, KDFProvider, ScryptKDF, derive_key
from .models import Credentials, PollState, SlotResponse

logger = logging.getLogger("enceeper.slots")

# The service answers "Precondition Required" while approval is pending
APPROVAL_PENDING = 428


def default_providers(config: ClientConfig) -> list[KDFProvider]:
    """Accelerator first (when configured), then the pure implementation."""
    providers: list[KDFProvider] = []
    if config.kdf_binaries:
        providers.append(BinaryKDF(config.kdf_binaries, "scrypt"))
    providers.append(ScryptKDF(r=config.scrypt_r, p=config.scrypt_p))
    return providers


class SlotClient:
    """Retrieve and decrypt one slot.

    Args:
        credentials: Password and slot identifier.
        fetcher: HTTP transport; defaults to ``HTTPFetcher``.
        providers: KDF providers in priority order.
        config: Client settings.
    """

    def __init__(
        self,
        credentials: Credentials,
        fetcher: Optional[Fetcher] = None,
        providers: Optional[Sequence[KDFProvider]] = None,
        config: Optional[ClientConfig] = None,
    ):
        self._credentials = credentials
        self._config = config or ClientConfig()
        self._fetcher = fetcher or HTTPFetcher(timeout=self._config.timeout)
        self._providers = (
            list(providers) if providers is not None
            else default_providers(self._config)
        )
        self._clock = time.time
        self._sleep = asyncio.sleep

    @classmethod
    def from_config(
        cls,
        credentials: Credentials,
        config: Optional[ClientConfig] = None,
    ) -> "SlotClient":
        """Build a client from ``config`` or from the environment."""
        return cls(credentials, config=config or ClientConfig.from_env())

    @property
    def identifier(self) -> str:
        return self._credentials.identifier

    def __repr__(self) -> str:
        return f"<SlotClient identifier={self.identifier!r}>"

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def _request(self, url: str) -> dict:
        """Fetch a service URL and return its ``result`` object."""
        body = await self._fetcher.fetch(url)
        try:
            data = orjson.loads(body)
        except orjson.JSONDecodeError:
            raise MalformedResponseError(200, "Response body is not valid JSON") from None
        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, dict):
            raise MalformedResponseError(200, "Response carries no result object")
        return result

    def _poll_state(self, result: dict, timeout: Optional[float]) -> PollState:
        ttl = result.get("ttl")
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl < 0:
            raise MalformedResponseError(200, "Pending approval carries no valid ttl")
        now = self._clock()
        expires_at = now + ttl
        if timeout is not None:
            expires_at = min(expires_at, now + timeout)
        return PollState(
            ref=str(result["ref"]),
            expires_at=expires_at,
            interval=math.floor(ttl / self._config.max_checks),
        )

    async def _poll(self, state: PollState) -> SlotResponse:
        logger.info(
            "Slot %s is waiting for approval, checking every %ss",
            self.identifier, state.interval,
        )
        url = f"{self._config.base_url}check/{state.ref}"
        checks = 0
        while self._clock() < state.expires_at and checks < self._config.max_checks:
            await self._sleep(state.interval)
            checks += 1
            try:
                result = await self._request(url)
            except RemoteApiError as err:
                if err.status_code != APPROVAL_PENDING:
                    raise
                logger.debug("Approval for %s still pending (check %d)", self.identifier, checks)
                continue
            if result.get("slot") is not None:
                logger.info("Slot %s approved", self.identifier)
                return SlotResponse.from_result(result)
            logger.debug("Approval for %s still pending (check %d)", self.identifier, checks)
        logger.warning("Approval for slot %s was not granted in time", self.identifier)
        return SlotResponse()

    async def fetch_slot(self, timeout: Optional[float] = None) -> SlotResponse:
        """Return the slot, meta and value, waiting for approval if required.

        Args:
            timeout: Optional limit in seconds on the approval wait; it can
                only shorten the window declared by the service.

        Returns:
            The slot response; empty if the approval did not arrive in time.

        Raises:
            NetworkError: On timeouts or connectivity failures.
            RemoteApiError: On non-2xx answers other than "still pending".
        """
        result = await self._request(f"{self._config.base_url}{self.identifier}")
        if result.get("ref"):
            return await self._poll(self._poll_state(result, timeout))
        return SlotResponse.from_result(result)

    # ------------------------------------------------------------------
    # Decryption
    # ------------------------------------------------------------------

    def _decode_text(self, plaintext: bytearray) -> str:
        if self._config.legacy_text_decode:
            # invalid sequences and characters outside Latin-1 become '?'
            text = plaintext.decode("utf-8", errors="replace")
            return text.encode("latin-1", errors="replace").decode("latin-1")
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedEnvelopeError("Decrypted value is not valid UTF-8") from None

    async def decrypt_slot(self, response: SlotResponse) -> str:
        """Decrypt an approved slot response into the value text.

        Raises:
            UnsupportedVersionError: If an envelope version, cipher or the
                PBKD function is not supported.
            AuthenticationFailure: On a wrong password or altered data.
        """
        if response.slot is None or response.value is None:
            raise MalformedResponseError(200, "Approved response misses slot or value")
        slot_envelope = parse_envelope(response.slot)
        if slot_envelope.salt is None:
            raise UnsupportedVersionError("Could not find a supported PBKD function")

        derived = await derive_key(
            self._providers,
            self._credentials.password_bytes(),
            slot_envelope.salt,
            self._config.scrypt_n,
        )
        try:
            # the slot key is stored hex encoded
            slot_key_hex = decrypt(derived, slot_envelope)
        finally:
            wipe(derived)
        try:
            slot_key = bytearray.fromhex(slot_key_hex.decode("ascii"))
        except (UnicodeDecodeError, ValueError):
            raise MalformedEnvelopeError("Slot key is not hex encoded") from None
        finally:
            wipe(slot_key_hex)

        try:
            value_envelope = parse_envelope(response.value)
            plaintext = decrypt(slot_key, value_envelope)
        finally:
            wipe(slot_key)
        logger.debug("Slot %s decrypted", self.identifier)
        try:
            return self._decode_text(plaintext)
        finally:
            wipe(plaintext)

    async def get_value(self, timeout: Optional[float] = None) -> Optional[str]:
        """Fetch and decrypt the slot value.

        Returns:
            The value text, or None while the approval is still pending.
        """
        response = await self.fetch_slot(timeout)
        if response.empty:
            return None
        return await self.decrypt_slot(response)
