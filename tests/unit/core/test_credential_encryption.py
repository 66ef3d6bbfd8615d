"""Tests for stored credential encryption."""

import base64
import json
import os
import stat

import pytest
from pydantic import SecretStr

from redis_tics.core.encryption import (
    EncryptionError,
    decrypt_secret,
    encrypt_secret,
    get_secret_value,
    is_encrypted,
)


class TestEncryption:
    """Test encryption/decryption functionality."""

    def test_encrypt_decrypt(self):
        """Test that encryption and decryption work correctly."""
        encrypted = encrypt_secret("my-secret-password-123")

        assert encrypted != "my-secret-password-123"
        assert is_encrypted(encrypted)
        assert decrypt_secret(encrypted) == "my-secret-password-123"

    def test_encrypt_different_each_time(self):
        """Test that encrypting the same plaintext produces different ciphertext."""
        assert encrypt_secret("same") != encrypt_secret("same")

    def test_empty_plaintext(self):
        """Test that an empty secret encrypts to an empty string."""
        assert encrypt_secret("") == ""
        assert decrypt_secret("") == ""

    def test_unicode(self):
        """Test encrypting unicode characters."""
        plaintext = "🔐 pässwörd 中文"
        assert decrypt_secret(encrypt_secret(plaintext)) == plaintext

    def test_wrong_master_key_fails(self, monkeypatch, isolated_settings):
        """Test that a different master key cannot decrypt."""
        encrypted = encrypt_secret("secret")
        other = base64.b64encode(os.urandom(32)).decode()
        monkeypatch.setattr(isolated_settings, "master_key", SecretStr(other))

        with pytest.raises(EncryptionError):
            decrypt_secret(encrypted)

    def test_invalid_master_key(self, monkeypatch, isolated_settings):
        """Test that a short or non-base64 master key is rejected."""
        monkeypatch.setattr(isolated_settings, "master_key", SecretStr("not base64!"))
        with pytest.raises(EncryptionError):
            encrypt_secret("x")

        short = base64.b64encode(b"short").decode()
        monkeypatch.setattr(isolated_settings, "master_key", SecretStr(short))
        with pytest.raises(EncryptionError, match="32 bytes"):
            encrypt_secret("x")

    def test_unsupported_version(self):
        """Test that an envelope with an unknown version is rejected."""
        envelope = json.loads(base64.b64decode(encrypt_secret("x")))
        envelope["version"] = "v9"
        tampered = base64.b64encode(json.dumps(envelope).encode()).decode()

        with pytest.raises(EncryptionError, match="Unsupported"):
            decrypt_secret(tampered)

    def test_not_an_envelope(self):
        """Test decrypting plain text."""
        assert not is_encrypted("plain-password")
        with pytest.raises(EncryptionError):
            decrypt_secret("plain-password")


class TestKeyFile:
    """Test the local key file used when no master key is configured."""

    def test_key_file_created_once(self, monkeypatch, isolated_settings):
        """Test that the key file is created with owner-only permissions and reused."""
        monkeypatch.setattr(isolated_settings, "master_key", None)

        encrypted = encrypt_secret("secret")
        key_file = isolated_settings.key_file

        assert key_file.exists()
        assert len(key_file.read_bytes()) == 32
        assert stat.S_IMODE(key_file.stat().st_mode) == 0o600
        assert decrypt_secret(encrypted) == "secret"

    def test_explicit_key_file(self, monkeypatch, isolated_settings, tmp_path):
        """Test passing an explicit key file path."""
        monkeypatch.setattr(isolated_settings, "master_key", None)
        key_file = tmp_path / "custom.key"

        encrypted = encrypt_secret("secret", key_file=key_file)
        assert key_file.exists()
        assert decrypt_secret(encrypted, key_file=key_file) == "secret"


class TestGetSecretValue:
    """Test reading stored secrets."""

    def test_decrypts_envelopes(self):
        """Test that encrypted values are decrypted."""
        assert get_secret_value(encrypt_secret("abc")) == "abc"

    def test_plaintext_passthrough(self):
        """Test that plaintext values are returned unchanged."""
        assert get_secret_value("legacy") == "legacy"
        assert get_secret_value("") == ""
