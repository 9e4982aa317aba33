"""
Enceeper Client exceptions.

Security Note:
    Exception messages never carry key material or plaintext. Only
    identifiers, status codes and versions may appear in them.
"""


class EnceeperError(Exception):
    """Base class for every error raised by enceeper_client."""


class ConfigurationError(EnceeperError, ValueError):
    """Invalid key-derivation parameters or client configuration."""


class NetworkError(EnceeperError):
    """Timeout or connectivity failure talking to the Enceeper service."""


class RemoteApiError(EnceeperError):
    """Non-2xx answer from the Enceeper service."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, message={self.message!r})"


class MalformedResponseError(RemoteApiError):
    """The service answered 2xx but the body is not the expected JSON."""


class UnsupportedVersionError(EnceeperError):
    """Envelope version, cipher or PBKD function is not supported."""


class MalformedEnvelopeError(EnceeperError, ValueError):
    """Envelope text could not be decoded into its fields."""


class AuthenticationFailure(EnceeperError):
    """Wrong key, or the ciphertext was altered."""


class CacheError(EnceeperError):
    """Base class for storage backend failures."""


class CacheWriteError(CacheError):
    """A cache record could not be decoded or persisted."""


class CacheReadError(CacheError):
    """A cache record could not be read. Callers treat it as absent."""
