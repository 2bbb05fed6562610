"""Credential vault for receiver tokens stored at rest.

Tokens are encrypted with AES-256-CBC and a random IV per call. The stored
form is ``base64(iv || base64(ciphertext))``, the layout written by earlier
installations, so existing rows remain readable.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import secrets
from functools import lru_cache

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from sqlalchemy.exc import SQLAlchemyError

from post_emitter.core.settings import Settings
from post_emitter.db.session import SessionFactory
from post_emitter.models import Option
from post_emitter.models.option import ENCRYPTION_SECRET_OPTION

logger = logging.getLogger(__name__)

IV_LENGTH_BYTES = 16
KEY_LENGTH_BYTES = 32
SECRET_LENGTH_BYTES = 32


@lru_cache(maxsize=8)
def derive_key(secret: str) -> bytes:
    """Derive the AES-256 key from the installation secret.

    The key is the first 32 characters of the hex SHA-256 digest, which is
    what OpenSSL used when handed the full hex string.
    """
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:KEY_LENGTH_BYTES].encode("ascii")


def cipher_available() -> bool:
    """Return True if the runtime crypto backend supports AES-256-CBC."""
    try:
        Cipher(algorithms.AES(bytes(KEY_LENGTH_BYTES)), modes.CBC(bytes(IV_LENGTH_BYTES))).encryptor()
    except UnsupportedAlgorithm:
        return False
    return True


class CredentialVault:
    """Encrypts and decrypts receiver tokens.

    A vault built with ``enabled=False`` stores tokens unmodified. That mode
    is chosen once, at construction, by :func:`build_vault`.
    """

    def __init__(self, secret: str, *, enabled: bool = True) -> None:
        self._key: bytes | None = derive_key(secret) if enabled else None

    @property
    def encrypting(self) -> bool:
        return self._key is not None

    def encrypt(self, plaintext: str) -> str:
        """Return the storable ciphertext for ``plaintext``."""
        if not plaintext or self._key is None:
            return plaintext

        iv = os.urandom(IV_LENGTH_BYTES)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        raw = encryptor.update(padded) + encryptor.finalize()
        inner = base64.b64encode(raw)
        return base64.b64encode(iv + inner).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """Return the plaintext token, or ``""`` if ``ciphertext`` is unreadable."""
        if not ciphertext or self._key is None:
            return ciphertext

        try:
            data = base64.b64decode(ciphertext, validate=True)
            if len(data) <= IV_LENGTH_BYTES:
                raise ValueError("ciphertext too short")
            iv, inner = data[:IV_LENGTH_BYTES], data[IV_LENGTH_BYTES:]
            raw = base64.b64decode(inner, validate=True)
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(raw) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
        except ValueError as exc:
            logger.warning("Stored receiver token could not be decrypted: %s", exc)
            return ""


def load_installation_secret(session_factory: SessionFactory, configured: str | None) -> str:
    """Return the installation secret, generating and persisting it on first use."""
    if configured:
        return configured

    with session_factory() as db:
        option = db.get(Option, ENCRYPTION_SECRET_OPTION)
        if option is not None:
            return option.value

        secret = secrets.token_urlsafe(SECRET_LENGTH_BYTES)
        db.add(Option(name=ENCRYPTION_SECRET_OPTION, value=secret))
        try:
            db.commit()
        except SQLAlchemyError:
            # Another process generated it first; use the stored value.
            db.rollback()
            stored = db.get(Option, ENCRYPTION_SECRET_OPTION)
            if stored is None:
                raise
            return stored.value
        logger.info("Generated a new installation encryption secret")
        return secret


def build_vault(settings: Settings, secret: str) -> CredentialVault:
    """Build the vault after checking the configured and available cipher support."""
    if settings.credential_encryption == "off":
        logger.warning("Credential encryption disabled by configuration; tokens stored as-is")
        return CredentialVault(secret, enabled=False)
    if not cipher_available():
        logger.warning("AES-256-CBC unavailable in this runtime; tokens stored as-is")
        return CredentialVault(secret, enabled=False)
    return CredentialVault(secret)
