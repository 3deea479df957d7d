"""
Secret Memory — Wipeable buffers for PINs and derived keys.

Python offers no guaranteed control over object memory; ``bytes`` and
``str`` are immutable and may be copied by the interpreter. ``SecretBuffer``
keeps the working copy of a secret in a ``bytearray`` so it can at least be
overwritten as soon as it is no longer needed.
"""
from typing import Optional, Union


class SecretBuffer:
    """Mutable byte buffer that is zeroed on ``wipe()`` or context exit.

    Usage::

        with SecretBuffer.from_text(pin) as buf:
            kdf.derive(buf.view())
    """

    __slots__ = ("_buf",)

    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        self._buf: Optional[bytearray] = bytearray(data)

    @classmethod
    def from_text(cls, text: str) -> "SecretBuffer":
        """Encode ``text`` as UTF-8 into a new buffer."""
        return cls(text.encode("utf-8"))

    def view(self) -> memoryview:
        """Return a zero-copy view on the secret.

        Raises:
            ValueError: If the buffer was already wiped.
        """
        if self._buf is None:
            raise ValueError("SecretBuffer has been wiped")
        return memoryview(self._buf)

    def wipe(self) -> None:
        """Overwrite the buffer with zeros and release it."""
        if self._buf is not None:
            for i in range(len(self._buf)):
                self._buf[i] = 0
            self._buf = None

    @property
    def wiped(self) -> bool:
        return self._buf is None

    def __len__(self) -> int:
        return 0 if self._buf is None else len(self._buf)

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    def __repr__(self) -> str:
        state = "wiped" if self._buf is None else f"{len(self._buf)} bytes"
        return f"<SecretBuffer [{state}]>"
