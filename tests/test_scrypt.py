"""
Tests for the pure Python scrypt.

Tests cover:
- RFC 7914 reference output and agreement with hashlib.scrypt
- Enceeper defaults (HMAC-SHA512 stretching, 64 byte keys)
- Parameter validation
- Salsa20/8, BlockMix and word reversal helpers
"""
import hashlib

import pytest

from enceeper_client.exceptions import ConfigurationError
from enceeper_client.scrypt import (
    block_mix,
    derive,
    reverse_words,
    salsa20_8,
    validate_parameters,
)

RFC7914_EMPTY = bytes.fromhex(
    "77d6576238657b203b19ca42c18a0497"
    "f16b4844e3074ae8dfdffa3fede21442"
    "fcd0069ded0948f8326a753a0fc81f17"
    "e8d3e0fb2e0d3628cf35e20c38d18906"
)


class TestReferenceVectors:
    """scrypt with SHA-256 stretching must match published outputs."""

    def test_rfc7914_empty_password(self):
        """derive("", "", N=16, r=1, p=1, 64) yields the RFC 7914 vector."""
        assert derive(b"", b"", n=16, r=1, p=1, length=64, hash_name="sha256") == RFC7914_EMPTY

    @pytest.mark.parametrize("n, r, p", [
        (16, 1, 1),
        (32, 2, 1),
        (16, 8, 1),
        (16, 1, 2),
        (64, 4, 3),
    ])
    def test_matches_hashlib(self, n, r, p):
        """Power of two block sizes agree with the OpenSSL scrypt."""
        expected = hashlib.scrypt(b"password", salt=b"NaCl", n=n, r=r, p=p, dklen=48)
        assert derive(b"password", b"NaCl", n=n, r=r, p=p, length=48, hash_name="sha256") == expected


class TestEnceeperDefaults:
    """The key chain stretches with HMAC-SHA512."""

    @pytest.mark.parametrize("password, salt, n, r, p, length, expected", [
        (b"", b"", 16, 1, 1, 64,
         "ae54e774e4516b0fe1e7280317e48cfa2f66557fdc3b40ab4784c96336079de5"
         "86439589b6c06c726400c12ad76921928ebaa4599f00143a7c12589109a032fe"),
        (b"pleaseletmein", b"SodiumChloride", 16, 1, 1, 64,
         "5be57d2402e665ad5ad1300a43239eefecb32f6b4823e1470156731bc08f818c"
         "374f9bf3afe09c2af700d4f431419d447ba67dab589938caa60e9bbc85b3e50a"),
        (b"password", b"NaCl", 256, 8, 1, 64,
         "bc9414800446ea9e2e993fd66fe80905464ab3554089a12ce44d56029e4e1672"
         "b0ff85c464a58d9c18c3cc62a609a20909570e57c264fcd9de49315ea8830bcc"),
        (b"password", b"NaCl", 16, 1, 2, 32,
         "2af9ef095bf9cf9f4b9d2dcb4ad30388e872d3b8da152a5d546a71c458106456"),
    ])
    def test_known_sha512_vectors(self, password, salt, n, r, p, length, expected):
        """Outputs computed with an independent scrypt over PBKDF2-HMAC-SHA512."""
        assert derive(password, salt, n=n, r=r, p=p, length=length).hex() == expected

    def test_default_length_is_sha512_digest(self):
        key = derive(b"password", b"salt", n=16, r=1, p=1)
        assert len(key) == 64

    def test_sha256_default_length(self):
        key = derive(b"password", b"salt", n=16, r=1, p=1, hash_name="sha256")
        assert len(key) == 32

    def test_hash_changes_output(self):
        sha512 = derive(b"password", b"salt", n=16, r=1, p=1, length=32)
        sha256 = derive(b"password", b"salt", n=16, r=1, p=1, length=32, hash_name="sha256")
        assert sha512 != sha256

    def test_deterministic(self):
        assert derive(b"pw", b"salt", n=16, r=2, p=1) == derive(b"pw", b"salt", n=16, r=2, p=1)

    def test_salt_changes_output(self):
        assert derive(b"pw", b"salt-a", n=16, r=1, p=1) != derive(b"pw", b"salt-b", n=16, r=1, p=1)

    def test_shorter_output_is_prefix(self):
        """PBKDF2 output blocks are independent of the requested length."""
        full = derive(b"pw", b"salt", n=16, r=1, p=1, length=64)
        assert derive(b"pw", b"salt", n=16, r=1, p=1, length=32) == full[:32]


class TestParameterValidation:
    """Invalid cost parameters raise ConfigurationError."""

    @pytest.mark.parametrize("n", [0, 1, 3, 12, 1000])
    def test_n_must_be_power_of_two(self, n):
        with pytest.raises(ConfigurationError, match="power of 2"):
            validate_parameters(n, 1, 1)

    def test_r_times_p_bound(self):
        with pytest.raises(ConfigurationError, match="r \\* p < 2\\^30"):
            validate_parameters(16, 2 ** 15, 2 ** 15)

    def test_n_too_big(self):
        with pytest.raises(ConfigurationError, match="N too big"):
            validate_parameters(2 ** 26, 8, 1)

    def test_r_too_big(self):
        with pytest.raises(ConfigurationError, match="r too big"):
            validate_parameters(2, 2 ** 22, 2 ** 4)

    def test_non_positive_r(self):
        with pytest.raises(ConfigurationError):
            validate_parameters(16, 0, 1)

    def test_unknown_hash(self):
        with pytest.raises(ConfigurationError, match="Unsupported hash"):
            derive(b"pw", b"salt", n=16, r=1, p=1, hash_name="md5")

    def test_invalid_length(self):
        with pytest.raises(ConfigurationError):
            derive(b"pw", b"salt", n=16, r=1, p=1, length=0)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            derive(b"pw", b"salt", n=15)


class TestMixingHelpers:
    """Salsa20/8 core, BlockMix and endianness reversal."""

    def test_salsa_of_zero_block_is_zero(self):
        assert salsa20_8([0] * 16) == [0] * 16

    def test_salsa_words_stay_32_bit(self):
        words = salsa20_8([0xFFFFFFFF] * 16)
        assert len(words) == 16
        assert all(0 <= w <= 0xFFFFFFFF for w in words)

    def test_salsa_does_not_mutate_input(self):
        block = list(range(16))
        salsa20_8(block)
        assert block == list(range(16))

    def test_block_mix_keeps_size(self):
        block = list(range(64))
        assert len(block_mix(block, 2)) == 64

    def test_reverse_words(self):
        words = [0x01020304, 0xA0B0C0D0]
        reverse_words(words)
        assert words == [0x04030201, 0xD0C0B0A0]

    def test_reverse_twice_is_identity(self):
        words = [0xDEADBEEF, 0, 0xFFFFFFFF, 0x12345678]
        reverse_words(words)
        reverse_words(words)
        assert words == [0xDEADBEEF, 0, 0xFFFFFFFF, 0x12345678]
