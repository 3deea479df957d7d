"""
Payload Codec — Authenticated encryption and framing of a master key.

Implements the on-medium payload:
- Legacy layout: [salt 16B][nonce 12B][ciphertext + GCM tag 16B]
- V1 layout:     [version 1B][iterations 4B uint32 BE][salt][nonce][ciphertext + tag]
  The V1 header is bound to the ciphertext as associated data.

The key is PBKDF2-HMAC-SHA256(pin, salt) and the cipher AES-256-GCM.

Security Note:
    Never log PINs, keys, plaintext or ciphertext values. Salts and nonces
    are random per call, so a (key, nonce) pair never repeats in practice.
"""
import asyncio
import struct
import logging
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .config import CodecConfig, PayloadFormat
from .entropy import SecureRandom, SystemRandom
from .exceptions import (
    AuthenticationFailedError,
    EncryptionError,
    MalformedPayloadError,
)
from .kdf import (
    DEFAULT_ITERATIONS,
    MAX_ITERATIONS,
    MIN_ITERATIONS,
    SALT_SIZE,
    KeyDeriver,
)
from .memory import SecretBuffer

logger = logging.getLogger("keytag")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit GCM tag
FORMAT_V1 = 0x01
V1_HEADER = struct.Struct("!BI")  # version, iterations

LEGACY_OVERHEAD = SALT_SIZE + NONCE_SIZE + TAG_SIZE  # 44
V1_OVERHEAD = V1_HEADER.size + LEGACY_OVERHEAD  # 49
MIN_PAYLOAD_SIZE = LEGACY_OVERHEAD


@dataclass(frozen=True)
class PayloadHeader:
    """Framing fields of a payload. Contains no secret material."""

    payload_format: PayloadFormat
    iterations: int
    salt: bytes
    nonce: bytes
    ciphertext_length: int
    header: bytes = b""

    @property
    def plaintext_length(self) -> int:
        return self.ciphertext_length - TAG_SIZE


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

def payload_size(
    master_key_length: int,
    payload_format: PayloadFormat = PayloadFormat.LEGACY,
) -> int:
    """Return the payload length for a master key of the given length."""
    if payload_format is PayloadFormat.V1:
        return V1_OVERHEAD + master_key_length
    return LEGACY_OVERHEAD + master_key_length


def _split(payload: bytes, offset: int) -> tuple[bytes, bytes, bytes]:
    salt = payload[offset:offset + SALT_SIZE]
    nonce = payload[offset + SALT_SIZE:offset + SALT_SIZE + NONCE_SIZE]
    ct = payload[offset + SALT_SIZE + NONCE_SIZE:]
    return salt, nonce, ct


def _parse_v1(payload: bytes, max_iterations: int) -> Optional[PayloadHeader]:
    """Return the V1 reading of ``payload``, or None if it can't be one."""
    if len(payload) < V1_OVERHEAD or payload[0] != FORMAT_V1:
        return None
    _, iterations = V1_HEADER.unpack_from(payload)
    if not MIN_ITERATIONS <= iterations <= max_iterations:
        return None
    salt, nonce, ct = _split(payload, V1_HEADER.size)
    return PayloadHeader(
        payload_format=PayloadFormat.V1,
        iterations=iterations,
        salt=salt,
        nonce=nonce,
        ciphertext_length=len(ct),
        header=payload[:V1_HEADER.size],
    )


def _parse_legacy(payload: bytes) -> PayloadHeader:
    salt, nonce, ct = _split(payload, 0)
    return PayloadHeader(
        payload_format=PayloadFormat.LEGACY,
        iterations=DEFAULT_ITERATIONS,
        salt=salt,
        nonce=nonce,
        ciphertext_length=len(ct),
    )


def parse_payload(
    payload: bytes, max_iterations: int = MAX_ITERATIONS,
) -> list[PayloadHeader]:
    """Return every plausible reading of ``payload``, most specific first.

    A legacy payload starts with a random salt, so its first byte equals the
    V1 version byte once in 256 payloads. Such payloads yield two readings
    and the caller tries both.

    The V1 iteration field is not authenticated until the tag is checked, so
    headers asking for more than ``max_iterations`` are not read as V1.

    Raises:
        MalformedPayloadError: If the payload is shorter than the minimum
            legacy frame (44 bytes).
    """
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        raise MalformedPayloadError(
            f"payload must be bytes, got {type(payload).__name__}"
        )
    payload = bytes(payload)
    if len(payload) < MIN_PAYLOAD_SIZE:
        raise MalformedPayloadError(
            f"payload too short: {len(payload)} bytes "
            f"(minimum {MIN_PAYLOAD_SIZE})"
        )
    readings = []
    v1 = _parse_v1(payload, max_iterations)
    if v1 is not None:
        readings.append(v1)
    readings.append(_parse_legacy(payload))
    return readings


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

class PayloadCodec:
    """Encrypt a master key under a PIN and frame it for storage.

    The codec keeps no per-call state: one instance can serve concurrent
    calls from several threads as long as its random source is thread-safe
    (``SystemRandom`` is).

    Args:
        config: Codec settings; defaults to the legacy format.
        random: Secure random source for salts and nonces.
    """

    def __init__(
        self,
        config: Optional[CodecConfig] = None,
        random: Optional[SecureRandom] = None,
    ):
        self._config = config or CodecConfig()
        self._random = random or SystemRandom()
        self._deriver = KeyDeriver(self._config.iterations)

    @property
    def config(self) -> CodecConfig:
        return self._config

    def _random_bytes(self, n: int) -> bytes:
        try:
            data = self._random.token_bytes(n)
        except Exception as err:
            raise EncryptionError("secure random source unavailable") from err
        if not isinstance(data, (bytes, bytearray)) or len(data) != n:
            raise EncryptionError(
                f"secure random source returned an invalid value for {n} bytes"
            )
        return bytes(data)

    def _deriver_for(self, iterations: int) -> KeyDeriver:
        if iterations == self._deriver.iterations:
            return self._deriver
        return KeyDeriver(iterations)

    def encrypt(self, master_key: bytes, pin: str) -> bytes:
        """Encrypt ``master_key`` under ``pin`` and return the framed payload.

        Args:
            master_key: Secret bytes to protect (1..max_master_key_size).
            pin: Non-empty user PIN.

        Returns:
            Payload bytes; ``44 + len(master_key)`` long in the legacy format.

        Raises:
            EncryptionError: Empty or oversized master key, or random source failure.
            DerivationError: Empty PIN.
        """
        if not isinstance(master_key, (bytes, bytearray, memoryview)):
            raise EncryptionError(
                f"master key must be bytes, got {type(master_key).__name__}"
            )
        size = len(master_key)
        if size == 0:
            raise EncryptionError("master key must not be empty")
        if size > self._config.max_master_key_size:
            raise EncryptionError(
                f"master key too large: {size} bytes "
                f"(maximum {self._config.max_master_key_size})"
            )
        fmt = self._config.payload_format
        header = b""
        if fmt is PayloadFormat.V1:
            header = V1_HEADER.pack(FORMAT_V1, self._deriver.iterations)
        salt = self._random_bytes(SALT_SIZE)
        nonce = self._random_bytes(NONCE_SIZE)
        with SecretBuffer(self._deriver.derive(pin, salt)) as key:
            cipher = AESGCM(key.view())
            ct = cipher.encrypt(nonce, bytes(master_key), header or None)
        logger.debug(
            "Encrypted master key: format=%s size=%d", fmt.value, size,
        )
        return header + salt + nonce + ct

    def _open(self, reading: PayloadHeader, payload: bytes, pin: str) -> bytes:
        offset = len(reading.header) + SALT_SIZE + NONCE_SIZE
        deriver = self._deriver_for(reading.iterations)
        with SecretBuffer(deriver.derive(pin, reading.salt)) as key:
            cipher = AESGCM(key.view())
            return cipher.decrypt(
                reading.nonce, payload[offset:], reading.header or None,
            )

    def decrypt(self, payload: bytes, pin: str) -> bytes:
        """Verify and decrypt a payload.

        Both layouts are accepted regardless of the configured output
        format. No plaintext is returned unless the tag verifies.

        Args:
            payload: Framed payload as read from the medium.
            pin: The PIN used at encryption time.

        Returns:
            The original master key bytes.

        Raises:
            MalformedPayloadError: Payload shorter than 44 bytes.
            AuthenticationFailedError: Wrong PIN, corruption or tampering.
            DerivationError: Empty PIN.
        """
        readings = parse_payload(payload, self._config.decode_iterations_ceiling)
        payload = bytes(payload)
        for reading in readings:
            try:
                plaintext = self._open(reading, payload, pin)
            except InvalidTag:
                continue
            logger.debug(
                "Decrypted master key: format=%s size=%d",
                reading.payload_format.value, len(plaintext),
            )
            return plaintext
        logger.warning(
            "Payload authentication failed (%d byte payload)", len(payload),
        )
        raise AuthenticationFailedError(
            "payload authentication failed: wrong PIN or corrupted payload"
        )

    def inspect(self, payload: bytes) -> PayloadHeader:
        """Return the framing fields of ``payload`` without decrypting it.

        Where a payload can be read both ways, the V1 reading is returned.
        """
        return parse_payload(payload, self._config.decode_iterations_ceiling)[0]

    async def aencrypt(self, master_key: bytes, pin: str) -> bytes:
        """Run ``encrypt`` in a worker thread."""
        return await asyncio.to_thread(self.encrypt, master_key, pin)

    async def adecrypt(self, payload: bytes, pin: str) -> bytes:
        """Run ``decrypt`` in a worker thread."""
        return await asyncio.to_thread(self.decrypt, payload, pin)

    def __repr__(self) -> str:
        return (
            f"<PayloadCodec format={self._config.payload_format.value} "
            f"iterations={self._deriver.iterations}>"
        )


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

_default_codec = PayloadCodec()


def encrypt_master_key(master_key: bytes, pin: str) -> bytes:
    """Encrypt with the default (legacy format) codec."""
    return _default_codec.encrypt(master_key, pin)


def decrypt_master_key(payload: bytes, pin: str) -> bytes:
    """Decrypt with the default codec."""
    return _default_codec.decrypt(payload, pin)
