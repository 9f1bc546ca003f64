"""Tests for CredentialCipher (AES-256-GCM envelopes)."""

import base64

import pytest

from veer.core.config import get_settings
from veer.domain.exceptions import ConfigurationError, DecryptionError
from veer.infrastructure.external.email.encryption import (
    NONCE_LENGTH,
    TAG_LENGTH,
    CredentialCipher,
    generate_key,
)


def test_encrypt_then_decrypt_returns_plaintext(cipher: CredentialCipher) -> None:
    envelope = cipher.encrypt("smtp-p@ssw0rd ✓")
    assert cipher.decrypt(envelope) == "smtp-p@ssw0rd ✓"


def test_envelope_has_nonce_tag_and_ciphertext_segments(cipher: CredentialCipher) -> None:
    nonce, tag, ciphertext = cipher.encrypt("secret").split(":")
    assert len(base64.b64decode(nonce)) == NONCE_LENGTH
    assert len(base64.b64decode(tag)) == TAG_LENGTH
    assert len(base64.b64decode(ciphertext)) == len("secret")


def test_same_plaintext_encrypts_differently(cipher: CredentialCipher) -> None:
    """A fresh nonce per call means identical inputs never share an envelope."""
    assert cipher.encrypt("secret") != cipher.encrypt("secret")


def test_tampered_ciphertext_is_rejected(cipher: CredentialCipher) -> None:
    nonce, tag, ciphertext = cipher.encrypt("secret").split(":")
    raw = bytearray(base64.b64decode(ciphertext))
    raw[0] ^= 0x01
    tampered = ":".join([nonce, tag, base64.b64encode(bytes(raw)).decode()])
    with pytest.raises(DecryptionError):
        cipher.decrypt(tampered)


def test_tampered_tag_is_rejected(cipher: CredentialCipher) -> None:
    nonce, tag, ciphertext = cipher.encrypt("secret").split(":")
    raw = bytearray(base64.b64decode(tag))
    raw[-1] ^= 0xFF
    tampered = ":".join([nonce, base64.b64encode(bytes(raw)).decode(), ciphertext])
    with pytest.raises(DecryptionError):
        cipher.decrypt(tampered)


def test_envelope_from_another_key_is_rejected(cipher: CredentialCipher) -> None:
    other = CredentialCipher(generate_key())
    with pytest.raises(DecryptionError):
        cipher.decrypt(other.encrypt("secret"))


@pytest.mark.parametrize("envelope", ["", "only-one-part", "a:b", "a:b:c:d", "!!:??:**"])
def test_malformed_envelope_is_rejected(cipher: CredentialCipher, envelope: str) -> None:
    with pytest.raises(DecryptionError, match="Invalid encrypted data format"):
        cipher.decrypt(envelope)


def test_decrypt_json_requires_an_object(cipher: CredentialCipher) -> None:
    assert cipher.decrypt_json(cipher.encrypt_json({"accessToken": "t"})) == {"accessToken": "t"}
    with pytest.raises(DecryptionError):
        cipher.decrypt_json(cipher.encrypt("[1, 2]"))
    with pytest.raises(DecryptionError):
        cipher.decrypt_json(cipher.encrypt("not json"))


def test_missing_encryption_key_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    get_settings.cache_clear()
    with pytest.raises(ConfigurationError) as exc_info:
        CredentialCipher()
    assert exc_info.value.details == {"setting": "ENCRYPTION_KEY"}


@pytest.mark.parametrize("key", ["abc", "zz" * 32, "00" * 31, "00" * 33])
def test_malformed_encryption_key_is_a_configuration_error(key: str) -> None:
    with pytest.raises(ConfigurationError, match="64-character hex"):
        CredentialCipher(key)


def test_generate_key_is_usable() -> None:
    key = generate_key()
    assert len(key) == 64
    assert CredentialCipher(key).decrypt(CredentialCipher(key).encrypt("x")) == "x"
