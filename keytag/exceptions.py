"""
KeyTag Exceptions.

Every error raised by the package derives from ``KeytagError``.

Security Note:
    Messages carry sizes and field names only. Never put a PIN, a derived
    key or plaintext bytes into an exception.
"""


class KeytagError(Exception):
    """Base class for all keytag errors."""


class DerivationError(KeytagError):
    """Key derivation failed (bad PIN/salt or PRF unavailable)."""


class EncryptionError(KeytagError):
    """Encryption failed (random source failure or invalid plaintext size)."""


class MalformedPayloadError(KeytagError):
    """Payload is too short or structurally invalid."""


class AuthenticationFailedError(KeytagError):
    """Tag verification failed.

    Raised for a wrong PIN as well as for a corrupted or tampered payload;
    the two cases are deliberately indistinguishable.
    """


class TransportError(KeytagError):
    """The storage medium could not be written or read."""
