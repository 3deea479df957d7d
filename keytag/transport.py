"""
Transports — Byte sinks/sources for payloads, and the tag record wrapper.

The codec only needs a medium that stores one blob atomically. A payload is
wrapped in a single NDEF MIME-media record before it is written, so a reader
can tell a keytag payload from any other content on the medium:

    [header 1B][type length 1B][payload length 1B | 4B BE][type][payload]

The payload is carried as raw bytes; a 76-byte payload becomes a 111-byte
record, which fits a 144-byte NTAG213.

Security Note:
    Transports only ever see encrypted payloads. Never log record contents.
"""
import os
import struct
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .exceptions import MalformedPayloadError, TransportError

logger = logging.getLogger("keytag")

MASTER_KEY_MIME_TYPE = "application/vnd.keytag.masterkey"

# NDEF record header flags
FLAG_MB = 0x80  # message begin
FLAG_ME = 0x40  # message end
FLAG_CF = 0x20  # chunked
FLAG_SR = 0x10  # short record (1-byte payload length)
FLAG_IL = 0x08  # id length present
TNF_MASK = 0x07
TNF_MIME_MEDIA = 0x02


# ---------------------------------------------------------------------------
# Record serialization
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TagRecord:
    """A MIME-typed NDEF record holding one payload."""

    payload: bytes
    mime_type: str = MASTER_KEY_MIME_TYPE

    def to_bytes(self) -> bytes:
        """Encode as a single-record NDEF message (short form when possible)."""
        mime = self.mime_type.encode("ascii")
        if not 0 < len(mime) <= 0xFF:
            raise ValueError("MIME type must be 1..255 ASCII characters")
        header = FLAG_MB | FLAG_ME | TNF_MIME_MEDIA
        if len(self.payload) <= 0xFF:
            prefix = struct.pack("!BBB", header | FLAG_SR, len(mime), len(self.payload))
        else:
            prefix = struct.pack("!BBI", header, len(mime), len(self.payload))
        return prefix + mime + bytes(self.payload)

    @classmethod
    def from_bytes(cls, data: bytes) -> "TagRecord":
        """Parse a record produced by ``to_bytes``.

        An optional record ID is skipped. Chunked records, other TNFs and
        trailing bytes are rejected.

        Raises:
            MalformedPayloadError: If ``data`` is not a valid record.
        """
        data = bytes(data)
        if len(data) < 3:
            raise MalformedPayloadError("tag record too short")
        header, type_length = data[0], data[1]
        if header & TNF_MASK != TNF_MIME_MEDIA:
            raise MalformedPayloadError("tag record is not a MIME media record")
        if header & FLAG_CF or not (header & FLAG_MB and header & FLAG_ME):
            raise MalformedPayloadError("tag record must be a single unchunked record")
        offset = 2
        if header & FLAG_SR:
            payload_length = data[offset]
            offset += 1
        else:
            if len(data) < offset + 4:
                raise MalformedPayloadError("tag record too short")
            payload_length = struct.unpack_from("!I", data, offset)[0]
            offset += 4
        id_length = 0
        if header & FLAG_IL:
            if len(data) < offset + 1:
                raise MalformedPayloadError("tag record too short")
            id_length = data[offset]
            offset += 1
        if len(data) != offset + type_length + id_length + payload_length:
            raise MalformedPayloadError(
                f"tag record length mismatch: {len(data)} bytes"
            )
        try:
            mime_type = data[offset:offset + type_length].decode("ascii")
        except UnicodeDecodeError as err:
            raise MalformedPayloadError("tag record type is not ASCII") from err
        offset += type_length + id_length
        return cls(payload=data[offset:], mime_type=mime_type)


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------

class Transport(ABC):
    """Minimal medium contract: connect, write one blob, read it back, close.

    Implementations raise ``TransportError`` for any medium failure.
    Used as a context manager, the transport is closed on every exit path.
    """

    def connect(self) -> None:
        """Open the medium. No-op by default."""

    def close(self) -> None:
        """Release the medium. No-op by default."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Replace the medium content with ``data``."""

    @abstractmethod
    def read(self) -> Optional[bytes]:
        """Return the medium content, or None if it is empty."""

    def __enter__(self) -> "Transport":
        self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class MemoryTransport(Transport):
    """In-memory tag.

    Args:
        capacity: Maximum number of bytes the tag holds (None: unlimited).
        writable: False emulates a read-only (locked) tag.
        data: Initial content.
    """

    def __init__(
        self,
        capacity: Optional[int] = None,
        writable: bool = True,
        data: Optional[bytes] = None,
    ):
        self._capacity = capacity
        self._writable = writable
        self._data = data
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def data(self) -> Optional[bytes]:
        return self._data

    def connect(self) -> None:
        self._connected = True

    def close(self) -> None:
        self._connected = False

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise TransportError("tag is not connected")

    def write(self, data: bytes) -> None:
        self._ensure_connected()
        if not self._writable:
            raise TransportError("tag is read-only")
        if self._capacity is not None and len(data) > self._capacity:
            raise TransportError(
                f"record of {len(data)} bytes exceeds tag capacity "
                f"of {self._capacity} bytes"
            )
        self._data = bytes(data)

    def read(self) -> Optional[bytes]:
        self._ensure_connected()
        return self._data

    def __repr__(self) -> str:
        return (
            f"<MemoryTransport capacity={self._capacity} "
            f"connected={self._connected}>"
        )


class FileTransport(Transport):
    """Stores the record in a single file, replaced atomically on write."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def write(self, data: bytes) -> None:
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, self._path)
        except OSError as err:
            raise TransportError(f"cannot write {self._path}: {err.strerror}") from err
        logger.debug("Wrote %d byte record to %s", len(data), self._path)

    def read(self) -> Optional[bytes]:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as err:
            raise TransportError(f"cannot read {self._path}: {err.strerror}") from err

    def __repr__(self) -> str:
        return f"<FileTransport path={str(self._path)!r}>"
