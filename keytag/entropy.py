"""
Secure random sources.

``PayloadCodec`` takes its salts and nonces from an injected source rather
than from ambient global state, so fixed-vector tests can pass a
deterministic implementation while production code uses ``SystemRandom``.
"""
import os
from typing import Protocol, runtime_checkable


@runtime_checkable
class SecureRandom(Protocol):
    """Anything able to produce ``n`` cryptographically secure random bytes."""

    def token_bytes(self, n: int) -> bytes:
        ...


class SystemRandom:
    """Operating-system CSPRNG (``os.urandom``).

    Stateless and safe to share between threads.
    """

    def token_bytes(self, n: int) -> bytes:
        return os.urandom(n)

    def __repr__(self) -> str:
        return "<SystemRandom>"
