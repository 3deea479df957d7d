"""KeyTag — PIN-protected master keys for passive storage media.

A master key is encrypted with AES-256-GCM under a key stretched from a PIN
with PBKDF2-HMAC-SHA256, and framed as ``salt ‖ nonce ‖ ciphertext‖tag``.

Security Note (Threat Model):
    Confidentiality rests on the PIN and the 100,000-iteration cost factor.
    Anyone holding the payload can brute-force a weak PIN offline; the KDF
    only raises the cost. Secrets are wiped from the buffers the package
    controls, but Python may keep transient copies in immutable objects.
"""

from .version import __version__
from .codec import (
    PayloadCodec,
    PayloadHeader,
    decrypt_master_key,
    encrypt_master_key,
    parse_payload,
    payload_size,
)
from .config import CodecConfig, PayloadFormat
from .entropy import SecureRandom, SystemRandom
from .exceptions import (
    AuthenticationFailedError,
    DerivationError,
    EncryptionError,
    KeytagError,
    MalformedPayloadError,
    TransportError,
)
from .kdf import KeyDeriver, derive_key
from .memory import SecretBuffer
from .tag import read_master_key, write_master_key
from .transport import (
    MASTER_KEY_MIME_TYPE,
    FileTransport,
    MemoryTransport,
    TagRecord,
    Transport,
)

__all__ = [
    "__version__",
    "PayloadCodec",
    "PayloadHeader",
    "decrypt_master_key",
    "encrypt_master_key",
    "parse_payload",
    "payload_size",
    "CodecConfig",
    "PayloadFormat",
    "SecureRandom",
    "SystemRandom",
    "AuthenticationFailedError",
    "DerivationError",
    "EncryptionError",
    "KeytagError",
    "MalformedPayloadError",
    "TransportError",
    "KeyDeriver",
    "derive_key",
    "SecretBuffer",
    "read_master_key",
    "write_master_key",
    "MASTER_KEY_MIME_TYPE",
    "FileTransport",
    "MemoryTransport",
    "TagRecord",
    "Transport",
]
