"""
Key Derivation — PBKDF2-HMAC-SHA256 stretching of a PIN into an AES key.

The iteration count and key length are part of the payload format: payloads
written with one value can only be read back with the same value.

Security Note:
    Never log the PIN or the derived key. The UTF-8 PIN lives in a
    ``SecretBuffer`` that is wiped on every exit path.
"""
import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import DerivationError
from .memory import SecretBuffer

logger = logging.getLogger("keytag")

SALT_SIZE = 16
KEY_LENGTH = 32  # AES-256
DEFAULT_ITERATIONS = 100_000
MIN_ITERATIONS = 10_000
MAX_ITERATIONS = 10_000_000


class KeyDeriver:
    """Derive 32-byte keys from a PIN and a 16-byte salt.

    Instances hold only the iteration count and may be shared freely
    between threads.
    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        if not MIN_ITERATIONS <= iterations <= MAX_ITERATIONS:
            raise DerivationError(
                f"iterations must be between {MIN_ITERATIONS} and "
                f"{MAX_ITERATIONS}, got {iterations}"
            )
        self._iterations = iterations

    @property
    def iterations(self) -> int:
        return self._iterations

    def derive(self, pin: str, salt: bytes) -> bytes:
        """Derive a key with PBKDF2-HMAC-SHA256.

        Args:
            pin: User PIN, must be non-empty.
            salt: Exactly 16 bytes.

        Returns:
            32-byte derived key. Same (pin, salt) always gives the same key.

        Raises:
            DerivationError: If inputs are invalid or the PRF is unavailable.
        """
        if not isinstance(pin, str) or not pin:
            raise DerivationError("PIN must be a non-empty string")
        if not isinstance(salt, (bytes, bytearray)) or len(salt) != SALT_SIZE:
            raise DerivationError(
                f"salt must be exactly {SALT_SIZE} bytes"
            )
        with SecretBuffer.from_text(pin) as material:
            try:
                kdf = PBKDF2HMAC(
                    algorithm=hashes.SHA256(),
                    length=KEY_LENGTH,
                    salt=bytes(salt),
                    iterations=self._iterations,
                )
                key = kdf.derive(material.view())
            except UnsupportedAlgorithm as err:
                raise DerivationError(
                    "PBKDF2-HMAC-SHA256 is not available in this backend"
                ) from err
        if len(key) != KEY_LENGTH:
            raise DerivationError("derived key has unexpected length")
        logger.debug("Derived key (iterations=%d)", self._iterations)
        return key

    def __repr__(self) -> str:
        return f"<KeyDeriver iterations={self._iterations}>"


_default_deriver = KeyDeriver()


def derive_key(pin: str, salt: bytes) -> bytes:
    """Derive a key with the default 100,000-iteration deriver."""
    return _default_deriver.derive(pin, salt)
