"""Credential Cipher error taxonomy."""


class CipherError(Exception):
    """Base class for every failure raised by the credential cipher."""


class ConfigurationError(CipherError):
    """Encryption passphrase is missing or shorter than the required minimum.

    Raised before any cryptographic work. Not retryable without operator
    intervention.
    """


class FormatError(CipherError):
    """Encoded secret does not parse into salt:iv:tag:ciphertext hex fields."""


class AuthenticationError(CipherError):
    """AES-GCM tag verification failed (tampered data or wrong passphrase)."""
