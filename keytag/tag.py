"""
Tag helpers — Write a PIN-protected master key to a medium and read it back.

``write_master_key`` encrypts the master key, wraps the payload in a
``TagRecord`` and writes it through a ``Transport``; ``read_master_key``
reverses the process.

Security Note:
    Only payload sizes are logged. Retry policy (e.g. limiting PIN
    attempts) belongs to the caller; a failed read is never retried here.
"""
import logging
from typing import Optional

from .codec import PayloadCodec
from .exceptions import MalformedPayloadError, TransportError
from .transport import MASTER_KEY_MIME_TYPE, TagRecord, Transport

logger = logging.getLogger("keytag")


def _require_transport(transport: Optional[Transport]) -> Transport:
    if transport is None:
        raise TransportError("medium does not support keytag records")
    return transport


def write_master_key(
    transport: Optional[Transport],
    master_key: bytes,
    pin: str,
    codec: Optional[PayloadCodec] = None,
) -> bytes:
    """Encrypt ``master_key`` under ``pin`` and write it to ``transport``.

    Args:
        transport: Medium to write to.
        master_key: Secret bytes to protect.
        pin: User PIN.
        codec: Codec to use; defaults to a legacy-format codec.

    Returns:
        The payload that was written.

    Raises:
        TransportError: Missing transport or medium failure.
        EncryptionError, DerivationError: From the codec.
    """
    transport = _require_transport(transport)
    codec = codec or PayloadCodec()
    payload = codec.encrypt(master_key, pin)
    record = TagRecord(payload=payload).to_bytes()
    try:
        with transport:
            transport.write(record)
    except TransportError:
        raise
    except OSError as err:
        raise TransportError(f"medium write failed: {err}") from err
    logger.info("Master key written: payload=%d bytes", len(payload))
    return payload


def read_master_key(
    transport: Optional[Transport],
    pin: str,
    codec: Optional[PayloadCodec] = None,
) -> bytes:
    """Read a payload from ``transport`` and decrypt it with ``pin``.

    Raises:
        TransportError: Missing transport, empty medium or medium failure.
        MalformedPayloadError: The medium holds something other than a
            keytag record, or the payload is truncated.
        AuthenticationFailedError: Wrong PIN or tampered payload.
    """
    transport = _require_transport(transport)
    codec = codec or PayloadCodec()
    try:
        with transport:
            data = transport.read()
    except TransportError:
        raise
    except OSError as err:
        raise TransportError(f"medium read failed: {err}") from err
    if not data:
        raise TransportError("no record found on medium")
    record = TagRecord.from_bytes(data)
    if record.mime_type != MASTER_KEY_MIME_TYPE:
        raise MalformedPayloadError(
            f"unexpected record type: {record.mime_type}"
        )
    logger.debug("Read record: payload=%d bytes", len(record.payload))
    return codec.decrypt(record.payload, pin)
