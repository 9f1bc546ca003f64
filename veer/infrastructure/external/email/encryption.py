"""Credential encryption for stored email credentials (AES-256-GCM).

Envelope format: base64(nonce):base64(tag):base64(ciphertext), 96-bit nonce,
128-bit tag. Envelopes carry no key version, so ENCRYPTION_KEY must stay the
same for every envelope ever written; rotating it requires re-encrypting all
stored credentials.
"""

import base64
import binascii
import json
import re
import secrets
from typing import Any, cast

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from veer.core.config import get_settings
from veer.domain.exceptions import ConfigurationError, DecryptionError
from veer.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

NONCE_LENGTH = 12
TAG_LENGTH = 16
ENVELOPE_SEP = ":"

_HEX_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")

DECRYPTION_ERROR_MSG = "Failed to decrypt credentials - invalid or corrupted data"


def _b64decode(segment: str) -> bytes:
    return base64.b64decode(segment.encode("ascii"), validate=True)


class CredentialCipher:
    """Encrypt/decrypt secrets at rest with a 256-bit key from ENCRYPTION_KEY."""

    def __init__(self, key_hex: str | None = None) -> None:
        self._aesgcm = AESGCM(self._load_key(key_hex))

    @staticmethod
    def _load_key(key_hex: str | None) -> bytes:
        """Return the 32-byte key. Only a 64-hex-char value is accepted (no derivation)."""
        if key_hex is None:
            configured = get_settings().encryption_key
            key_hex = configured.get_secret_value() if configured else ""
        if not key_hex:
            logger.error("ENCRYPTION_KEY is not set; credential encryption unavailable")
            raise ConfigurationError(
                "ENCRYPTION_KEY environment variable is not set",
                setting="ENCRYPTION_KEY",
            )
        if not _HEX_KEY_RE.fullmatch(key_hex):
            logger.error("ENCRYPTION_KEY is malformed (expected 64 hex characters)")
            raise ConfigurationError(
                "ENCRYPTION_KEY must be a 64-character hex string (32 bytes)",
                setting="ENCRYPTION_KEY",
            )
        return bytes.fromhex(key_hex)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt plaintext with a fresh random nonce; returns the envelope string."""
        nonce = secrets.token_bytes(NONCE_LENGTH)
        # AESGCM appends the tag to the ciphertext.
        sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return ENVELOPE_SEP.join(
            base64.b64encode(part).decode("ascii") for part in (nonce, tag, ciphertext)
        )

    def decrypt(self, envelope: str) -> str:
        """Decrypt an envelope back to plaintext.

        Raises:
            DecryptionError: Wrong segment count, bad base64, tag mismatch
                (tampered data or a different key).
        """
        parts = envelope.split(ENVELOPE_SEP)
        if len(parts) != 3:
            raise DecryptionError("Invalid encrypted data format")
        try:
            nonce, tag, ciphertext = (_b64decode(p) for p in parts)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Invalid encrypted data format") from e
        if len(nonce) != NONCE_LENGTH or len(tag) != TAG_LENGTH:
            raise DecryptionError("Invalid encrypted data format")
        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            logger.warning(
                "Credential envelope failed authentication (tampered data or ENCRYPTION_KEY changed)"
            )
            raise DecryptionError(DECRYPTION_ERROR_MSG) from e
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(DECRYPTION_ERROR_MSG) from e

    def encrypt_json(self, data: dict[str, Any]) -> str:
        """Encrypt a JSON-serializable dict."""
        return self.encrypt(json.dumps(data))

    def decrypt_json(self, envelope: str) -> dict[str, Any]:
        """Decrypt an envelope holding a JSON object.

        Raises:
            DecryptionError: If decryption fails or the plaintext is not a JSON object.
        """
        plaintext = self.decrypt(envelope)
        try:
            result = json.loads(plaintext)
        except json.JSONDecodeError as e:
            raise DecryptionError("Decrypted credentials are not valid JSON") from e
        if not isinstance(result, dict):
            raise DecryptionError("Decrypted credentials must be a JSON object")
        return cast(dict[str, Any], result)


def generate_key() -> str:
    """Return a new random ENCRYPTION_KEY value (64 hex characters)."""
    return secrets.token_hex(32)
