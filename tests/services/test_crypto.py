"""Tests for the credential vault."""

import base64
import hashlib

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from post_emitter.core.settings import Settings
from post_emitter.models import Option
from post_emitter.models.option import ENCRYPTION_SECRET_OPTION
from post_emitter.services.crypto import (
    CredentialVault,
    build_vault,
    derive_key,
    load_installation_secret,
)

SECRET = "installation-secret"


@pytest.mark.parametrize("token", ["abc", "a" * 16, "tökén-with-ünicode", "x" * 257])
def test_round_trip(token: str) -> None:
    vault = CredentialVault(SECRET)
    ciphertext = vault.encrypt(token)
    assert ciphertext != token
    assert vault.decrypt(ciphertext) == token


def test_empty_token_is_not_encrypted() -> None:
    vault = CredentialVault(SECRET)
    assert vault.encrypt("") == ""
    assert vault.decrypt("") == ""


def test_each_encryption_uses_a_fresh_iv() -> None:
    vault = CredentialVault(SECRET)
    assert vault.encrypt("same-token") != vault.encrypt("same-token")


def test_stored_layout_is_iv_followed_by_base64_ciphertext() -> None:
    vault = CredentialVault(SECRET)
    data = base64.b64decode(vault.encrypt("token-value"))
    iv, inner = data[:16], data[16:]
    assert len(iv) == 16
    raw = base64.b64decode(inner, validate=True)
    assert len(raw) % 16 == 0


def test_reads_tokens_written_with_the_legacy_key_derivation() -> None:
    key = hashlib.sha256(SECRET.encode()).hexdigest()[:32].encode()
    iv = bytes(range(16))
    padder = padding.PKCS7(128).padder()
    padded = padder.update(b"legacy-token") + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    raw = encryptor.update(padded) + encryptor.finalize()
    stored = base64.b64encode(iv + base64.b64encode(raw)).decode()

    assert CredentialVault(SECRET).decrypt(stored) == "legacy-token"


def test_derived_key_is_32_bytes() -> None:
    assert len(derive_key(SECRET)) == 32
    assert derive_key(SECRET) is derive_key(SECRET)


@pytest.mark.parametrize(
    "ciphertext",
    [
        "not base64 at all!",
        base64.b64encode(b"short").decode(),
        base64.b64encode(b"0123456789abcdef" + b"@@not-base64@@").decode(),
        base64.b64encode(b"0123456789abcdef" + base64.b64encode(b"odd")).decode(),
    ],
)
def test_malformed_ciphertext_decrypts_to_empty(ciphertext: str) -> None:
    assert CredentialVault(SECRET).decrypt(ciphertext) == ""


def test_wrong_secret_does_not_reveal_token() -> None:
    ciphertext = CredentialVault(SECRET).encrypt("top-secret")
    assert CredentialVault("another-secret").decrypt(ciphertext) != "top-secret"


def test_disabled_vault_passes_tokens_through() -> None:
    vault = CredentialVault(SECRET, enabled=False)
    assert not vault.encrypting
    assert vault.encrypt("plain") == "plain"
    assert vault.decrypt("plain") == "plain"


def test_build_vault_honours_configuration() -> None:
    settings = Settings(_env_file=None, credential_encryption="off")
    assert not build_vault(settings, SECRET).encrypting

    settings = Settings(_env_file=None, credential_encryption="auto")
    assert build_vault(settings, SECRET).encrypting


def test_build_vault_degrades_when_cipher_missing(mocker, caplog) -> None:
    mocker.patch("post_emitter.services.crypto.cipher_available", return_value=False)
    settings = Settings(_env_file=None)

    with caplog.at_level("WARNING", logger="post_emitter.services.crypto"):
        vault = build_vault(settings, SECRET)

    assert not vault.encrypting
    assert "unavailable" in caplog.text


def test_installation_secret_prefers_configured_value(session_factory) -> None:
    assert load_installation_secret(session_factory, "configured") == "configured"
    with session_factory() as db:
        assert db.get(Option, ENCRYPTION_SECRET_OPTION) is None


def test_installation_secret_is_generated_once(session_factory) -> None:
    first = load_installation_secret(session_factory, None)
    second = load_installation_secret(session_factory, None)

    assert first
    assert first == second
    with session_factory() as db:
        assert db.get(Option, ENCRYPTION_SECRET_OPTION).value == first
