"""Shared fixtures for keytag tests."""
import pytest

from keytag import CodecConfig, PayloadCodec, PayloadFormat


class SequenceRandom:
    """Deterministic random source replaying the given chunks in order."""

    def __init__(self, *chunks: bytes):
        self._chunks = list(chunks)
        self.calls: list[int] = []

    def token_bytes(self, n: int) -> bytes:
        self.calls.append(n)
        return self._chunks.pop(0)


@pytest.fixture
def codec():
    """Default codec: legacy format, 100,000 iterations."""
    return PayloadCodec()


@pytest.fixture
def fast_codec():
    """V1 codec with the minimum iteration count, for bulk tests."""
    return PayloadCodec(CodecConfig(payload_format=PayloadFormat.V1, iterations=10_000))


@pytest.fixture
def sequence_random():
    """Factory for deterministic random sources."""
    return SequenceRandom


@pytest.fixture
def master_key():
    """32 bytes of 0x01."""
    return b"\x01" * 32
