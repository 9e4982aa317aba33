"""
Tests for client and cache configuration.
"""
import pytest
from pydantic import ValidationError

from enceeper_client.config import BASE_URL, MAX_CHECKS, CacheConfig, ClientConfig
from enceeper_client.models import Strategy

_ENV = (
    "ENCEEPER_BASE_URL",
    "ENCEEPER_TIMEOUT",
    "ENCEEPER_PBKD_BINARIES",
    "ENCEEPER_SCRYPT_N",
    "ENCEEPER_CACHE_TTL",
    "ENCEEPER_CACHE_STRATEGY",
    "ENCEEPER_CACHE_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


class TestClientConfig:

    def test_defaults(self):
        config = ClientConfig()
        assert config.base_url == BASE_URL
        assert config.timeout == 10
        assert config.kdf_binaries is None
        assert (config.scrypt_n, config.scrypt_r, config.scrypt_p) == (32768, 8, 1)
        assert config.max_checks == MAX_CHECKS == 10
        assert config.legacy_text_decode is True

    def test_trailing_slash_added(self):
        assert ClientConfig(base_url="http://localhost:8080/slots").base_url == (
            "http://localhost:8080/slots/"
        )

    @pytest.mark.parametrize("values", [
        {"base_url": "ftp://vault"},
        {"timeout": 0},
        {"scrypt_n": 1000},
        {"scrypt_n": 1},
        {"max_checks": 0},
    ])
    def test_invalid(self, values):
        with pytest.raises(ValidationError):
            ClientConfig(**values)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ENCEEPER_BASE_URL", "https://vault.internal/api/v1/user/slots/")
        monkeypatch.setenv("ENCEEPER_TIMEOUT", "30")
        monkeypatch.setenv("ENCEEPER_PBKD_BINARIES", "/opt/enceeper/bin")
        monkeypatch.setenv("ENCEEPER_SCRYPT_N", "1024")
        config = ClientConfig.from_env()
        assert config.base_url == "https://vault.internal/api/v1/user/slots/"
        assert config.timeout == 30
        assert config.kdf_binaries == "/opt/enceeper/bin"
        assert config.scrypt_n == 1024

    def test_from_empty_env(self):
        assert ClientConfig.from_env() == ClientConfig()


class TestCacheConfig:

    def test_defaults(self):
        config = CacheConfig()
        assert config.ttl == 3600
        assert config.strategy is Strategy.BATCH_MODE
        assert config.key == "enceeper"

    @pytest.mark.parametrize("raw, expected", [
        ("live", Strategy.LIVE_UPDATE),
        ("LIVE_UPDATE", Strategy.LIVE_UPDATE),
        ("batch", Strategy.BATCH_MODE),
        ("0", Strategy.LIVE_UPDATE),
        (1, Strategy.BATCH_MODE),
        (Strategy.LIVE_UPDATE, Strategy.LIVE_UPDATE),
    ])
    def test_strategy_names(self, raw, expected):
        assert CacheConfig(strategy=raw).strategy is expected

    @pytest.mark.parametrize("values", [
        {"ttl": -1},
        {"strategy": "sometimes"},
        {"strategy": 7},
        {"key": ""},
    ])
    def test_invalid(self, values):
        with pytest.raises(ValidationError):
            CacheConfig(**values)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ENCEEPER_CACHE_TTL", "0")
        monkeypatch.setenv("ENCEEPER_CACHE_STRATEGY", "live")
        monkeypatch.setenv("ENCEEPER_CACHE_KEY", "billing")
        config = CacheConfig.from_env()
        assert (config.ttl, config.strategy, config.key) == (0, Strategy.LIVE_UPDATE, "billing")
