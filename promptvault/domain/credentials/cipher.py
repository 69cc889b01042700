"""Credential Cipher.

Authenticated, passphrase-derived encryption of third-party API keys at rest.

Wire format (hex, colon separated, field order is a persistence contract):

    <salt:64 bytes>:<iv:16 bytes>:<authTag:16 bytes>:<ciphertext>

The symmetric key is derived per call with PBKDF2-HMAC-SHA512 over a fresh
salt, then AES-256-GCM encrypts the UTF-8 plaintext with no associated data.
"""
import logging
import os
import re
import secrets
import threading
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from promptvault.domain.credentials.errors import (
    AuthenticationError,
    ConfigurationError,
    FormatError,
)

logger = logging.getLogger(__name__)

ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"
MIN_PASSPHRASE_LENGTH = 32

SALT_LENGTH = 64
IV_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
KDF_ITERATIONS = 100_000

FIELD_SEPARATOR = ":"
FIELD_COUNT = 4
_HEX_FIELD = re.compile(r"[0-9a-fA-F]*")

_iteration_warning_lock = threading.Lock()
_iteration_warning_emitted = False


def _warn_iteration_count() -> None:
    """Flag the legacy KDF work factor to operators, once per process."""
    global _iteration_warning_emitted
    with _iteration_warning_lock:
        if _iteration_warning_emitted:
            return
        _iteration_warning_emitted = True
    logger.warning(
        f"Credential cipher uses PBKDF2-HMAC-SHA512 with {KDF_ITERATIONS} iterations "
        "to stay compatible with stored secrets; this is below current guidance."
    )


class CredentialCipher:
    """AES-256-GCM cipher keyed by a PBKDF2-derived key.

    The passphrase is injected at construction and validated on every
    operation, so a misconfigured instance fails per call with
    ``ConfigurationError`` instead of at import time.
    """

    def __init__(self, passphrase: Optional[str]):
        self._passphrase = passphrase
        _warn_iteration_count()

    def _require_passphrase(self) -> bytes:
        passphrase = self._passphrase
        if not passphrase or len(passphrase) < MIN_PASSPHRASE_LENGTH:
            raise ConfigurationError(
                f"{ENCRYPTION_KEY_ENV} must be at least {MIN_PASSPHRASE_LENGTH} characters long"
            )
        try:
            return passphrase.encode("utf-8")
        except UnicodeEncodeError as e:
            # os.getenv surfaces undecodable environment bytes as lone surrogates
            raise ConfigurationError(f"{ENCRYPTION_KEY_ENV} must be valid UTF-8 text") from e

    def ensure_configured(self) -> None:
        """Raise ConfigurationError if the passphrase is unusable."""
        self._require_passphrase()

    @staticmethod
    def _derive_key(passphrase: bytes, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA512(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=KDF_ITERATIONS,
        )
        return kdf.derive(passphrase)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt ``plaintext`` into a ``salt:iv:authTag:ciphertext`` string."""
        passphrase = self._require_passphrase()

        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = self._derive_key(passphrase, salt)

        # AESGCM appends the tag to the ciphertext
        ct_and_tag = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext = ct_and_tag[:-TAG_LENGTH]
        tag = ct_and_tag[-TAG_LENGTH:]

        return FIELD_SEPARATOR.join(
            (salt.hex(), iv.hex(), tag.hex(), ciphertext.hex())
        )

    def decrypt(self, encoded: str) -> str:
        """Decrypt a string produced by :meth:`encrypt`.

        Raises:
            ConfigurationError: passphrase missing or too short.
            FormatError: malformed field count, hex, or field lengths.
            AuthenticationError: tag verification failed.
        """
        passphrase = self._require_passphrase()
        salt, iv, tag, ciphertext = _split_encoded(encoded)

        key = self._derive_key(passphrase, salt)
        try:
            plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        except InvalidTag as e:
            raise AuthenticationError("Encrypted data authentication failed") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError("Decrypted data is not valid UTF-8") from e

    def validate(self, encoded: str) -> bool:
        """Return True if ``encoded`` decrypts under the current passphrase."""
        try:
            self.decrypt(encoded)
        except (ConfigurationError, FormatError, AuthenticationError) as e:
            logger.debug(f"Encrypted value failed validation: {type(e).__name__}")
            return False
        return True


def _split_encoded(encoded: str) -> Tuple[bytes, bytes, bytes, bytes]:
    """Split and hex-decode the four fields of an encoded secret."""
    if not isinstance(encoded, str):
        raise FormatError("Invalid encrypted data format")

    parts = encoded.split(FIELD_SEPARATOR)
    if len(parts) != FIELD_COUNT:
        raise FormatError("Invalid encrypted data format")

    if not all(_HEX_FIELD.fullmatch(p) and len(p) % 2 == 0 for p in parts):
        raise FormatError("Invalid encrypted data format: fields must be hex")
    salt, iv, tag, ciphertext = (bytes.fromhex(p) for p in parts)

    if len(salt) != SALT_LENGTH:
        raise FormatError(f"Invalid salt: expected {SALT_LENGTH} bytes, got {len(salt)}")
    if len(iv) != IV_LENGTH:
        raise FormatError(f"Invalid IV: expected {IV_LENGTH} bytes, got {len(iv)}")
    if len(tag) != TAG_LENGTH:
        raise FormatError(f"Invalid auth tag: expected {TAG_LENGTH} bytes, got {len(tag)}")

    return salt, iv, tag, ciphertext


def generate_key(length_bytes: int = 32) -> str:
    """Generate a random hex passphrase suitable for ``ENCRYPTION_KEY``."""
    if length_bytes < 1:
        raise ValueError("length_bytes must be a positive integer")
    return secrets.token_hex(length_bytes)


def get_credential_cipher() -> CredentialCipher:
    """Build a cipher from the current process environment."""
    return CredentialCipher(os.getenv(ENCRYPTION_KEY_ENV))


def encrypt(plaintext: str) -> str:
    return get_credential_cipher().encrypt(plaintext)


def decrypt(encoded: str) -> str:
    return get_credential_cipher().decrypt(encoded)


def validate(encoded: str) -> bool:
    return get_credential_cipher().validate(encoded)
