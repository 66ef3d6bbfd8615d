"""Encryption of stored server passwords.

Envelope encryption:
- Each secret gets a unique data encryption key (DEK)
- DEK encrypts the secret using AES-GCM
- Master key encrypts the DEK
- Store: ciphertext, nonce, wrapped_DEK, algorithm version

The master key comes from ``REDIS_TICS_MASTER_KEY`` when set; otherwise a
random key is created once under the config directory with owner-only
permissions.
"""

import base64
import binascii
import json
import logging
import os
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .config import settings
from .errors import RedisTicsError

logger = logging.getLogger(__name__)

CURRENT_VERSION = "v1"
KEY_SIZE = 32
NONCE_SIZE = 12


class EncryptionError(RedisTicsError):
    """Raised when encryption/decryption fails."""

    pass


def _load_or_create_key_file(path: Path) -> bytes:
    if path.exists():
        key = path.read_bytes()
        if len(key) == KEY_SIZE:
            return key
        logger.warning(f"Ignoring malformed key file {path} ({len(key)} bytes)")

    path.parent.mkdir(parents=True, exist_ok=True)
    key = AESGCM.generate_key(bit_length=256)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(key)
    logger.info(f"Created new local encryption key at {path}")
    return key


def _get_master_key(key_file: Optional[Path] = None) -> bytes:
    """Return the 32-byte master key.

    Raises:
        EncryptionError: If a configured master key is not valid base64 of 32 bytes
    """
    if settings.master_key is not None:
        try:
            master_key = base64.b64decode(settings.master_key.get_secret_value(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncryptionError(f"Invalid master key format: {e}") from e
        if len(master_key) != KEY_SIZE:
            raise EncryptionError(f"Master key must be 32 bytes, got {len(master_key)} bytes")
        return master_key

    return _load_or_create_key_file(key_file or settings.key_file)


def encrypt_secret(plaintext: str, key_file: Optional[Path] = None) -> str:
    """Encrypt a secret, returning a base64-encoded JSON envelope.

    An empty plaintext encrypts to an empty string.
    """
    if not plaintext:
        return ""

    master_key = _get_master_key(key_file)
    try:
        dek = AESGCM.generate_key(bit_length=256)
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = AESGCM(dek).encrypt(nonce, plaintext.encode("utf-8"), None)

        dek_nonce = os.urandom(NONCE_SIZE)
        wrapped_dek = AESGCM(master_key).encrypt(dek_nonce, dek, None)
    except (ValueError, TypeError) as e:
        logger.error(f"Failed to encrypt secret: {e}")
        raise EncryptionError(f"Encryption failed: {e}") from e

    envelope = {
        "version": CURRENT_VERSION,
        "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
        "nonce": base64.b64encode(nonce).decode("ascii"),
        "wrapped_dek": base64.b64encode(wrapped_dek).decode("ascii"),
        "dek_nonce": base64.b64encode(dek_nonce).decode("ascii"),
    }
    return base64.b64encode(json.dumps(envelope).encode("utf-8")).decode("ascii")


def _read_envelope(data: str) -> Optional[dict]:
    try:
        envelope = json.loads(base64.b64decode(data, validate=True).decode("utf-8"))
    except (binascii.Error, ValueError):
        return None
    return envelope if isinstance(envelope, dict) else None


def decrypt_secret(encrypted_data: str, key_file: Optional[Path] = None) -> str:
    """Decrypt an envelope produced by :func:`encrypt_secret`.

    Raises:
        EncryptionError: If the envelope is malformed or the key does not match
    """
    if not encrypted_data:
        return ""

    envelope = _read_envelope(encrypted_data)
    if envelope is None:
        raise EncryptionError("Decryption failed: not an encrypted envelope")

    version = envelope.get("version")
    if version != CURRENT_VERSION:
        raise EncryptionError(
            f"Unsupported encryption version: {version} (expected {CURRENT_VERSION})"
        )

    master_key = _get_master_key(key_file)
    try:
        ciphertext = base64.b64decode(envelope["ciphertext"])
        nonce = base64.b64decode(envelope["nonce"])
        wrapped_dek = base64.b64decode(envelope["wrapped_dek"])
        dek_nonce = base64.b64decode(envelope["dek_nonce"])

        dek = AESGCM(master_key).decrypt(dek_nonce, wrapped_dek, None)
        return AESGCM(dek).decrypt(nonce, ciphertext, None).decode("utf-8")
    except (KeyError, binascii.Error, InvalidTag, ValueError) as e:
        logger.error(f"Failed to decrypt secret: {type(e).__name__}")
        raise EncryptionError(f"Decryption failed: {type(e).__name__}") from e


def is_encrypted(data: str) -> bool:
    """Check if data looks like an envelope from this module."""
    envelope = _read_envelope(data) if data else None
    return bool(envelope) and all(k in envelope for k in ("version", "ciphertext", "wrapped_dek"))


def get_secret_value(data: str, key_file: Optional[Path] = None) -> str:
    """Get the plaintext of a stored secret.

    Decrypts envelopes and returns anything else as-is, so server lists
    written with plaintext passwords keep loading.
    """
    if not data:
        return data

    if is_encrypted(data):
        return decrypt_secret(data, key_file)

    logger.warning(
        f"Secret is stored in plaintext (length: {len(data)}), it will be encrypted on next save"
    )
    return data
