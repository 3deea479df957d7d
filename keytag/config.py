"""
Codec Configuration — Validated payload settings.

Reads optional overrides from environment variables:
    KEYTAG_PAYLOAD_FORMAT = legacy | v1
    KEYTAG_ITERATIONS = <integer>
    KEYTAG_MAX_MASTER_KEY_SIZE = <integer>
    KEYTAG_MAX_DECODE_ITERATIONS = <integer>

Security Note:
    Configuration never holds secret material; PINs and keys are passed
    per call and must not be logged.
"""
import os
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .kdf import DEFAULT_ITERATIONS, MIN_ITERATIONS, MAX_ITERATIONS

logger = logging.getLogger("keytag")

# Upper bound on plaintext size; larger tags are unusual for a key payload.
DEFAULT_MAX_MASTER_KEY_SIZE = 4096
MAX_MASTER_KEY_SIZE_LIMIT = 65536


class PayloadFormat(str, Enum):
    """On-medium payload layouts.

    ``LEGACY`` is ``salt ‖ nonce ‖ ciphertext‖tag`` with a fixed iteration
    count. ``V1`` prefixes a version byte and the iteration count.
    """

    LEGACY = "legacy"
    V1 = "v1"


class CodecConfig(BaseModel):
    """Validated codec configuration."""

    payload_format: PayloadFormat = Field(default=PayloadFormat.LEGACY)
    iterations: int = Field(
        default=DEFAULT_ITERATIONS, ge=MIN_ITERATIONS, le=MAX_ITERATIONS
    )
    max_master_key_size: int = Field(
        default=DEFAULT_MAX_MASTER_KEY_SIZE, ge=1, le=MAX_MASTER_KEY_SIZE_LIMIT
    )
    # Highest V1 iteration count decrypt will honour; None means `iterations`.
    max_decode_iterations: Optional[int] = Field(
        default=None, ge=MIN_ITERATIONS, le=MAX_ITERATIONS
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_legacy_iterations(self) -> "CodecConfig":
        """The legacy layout cannot record an iteration count."""
        if (
            self.payload_format is PayloadFormat.LEGACY
            and self.iterations != DEFAULT_ITERATIONS
        ):
            raise ValueError(
                f"legacy payload format requires iterations={DEFAULT_ITERATIONS}, "
                f"got {self.iterations}; use payload_format='v1'"
            )
        return self

    @model_validator(mode="after")
    def validate_decode_ceiling(self) -> "CodecConfig":
        """Payloads this codec writes must stay readable by it."""
        if (
            self.max_decode_iterations is not None
            and self.max_decode_iterations < self.iterations
        ):
            raise ValueError(
                f"max_decode_iterations ({self.max_decode_iterations}) must not "
                f"be below iterations ({self.iterations})"
            )
        return self

    @property
    def decode_iterations_ceiling(self) -> int:
        """Upper bound on the iteration count read from a V1 header."""
        if self.max_decode_iterations is None:
            return self.iterations
        return self.max_decode_iterations

    @classmethod
    def from_env(cls) -> "CodecConfig":
        """Create CodecConfig from environment variables.

        Unset variables fall back to the field defaults.

        Returns:
            Populated CodecConfig instance.
        """
        values: dict = {}
        fmt = os.environ.get("KEYTAG_PAYLOAD_FORMAT")
        if fmt:
            values["payload_format"] = fmt.lower()
        iterations = os.environ.get("KEYTAG_ITERATIONS")
        if iterations:
            values["iterations"] = iterations
        max_size = os.environ.get("KEYTAG_MAX_MASTER_KEY_SIZE")
        if max_size:
            values["max_master_key_size"] = max_size
        max_decode = os.environ.get("KEYTAG_MAX_DECODE_ITERATIONS")
        if max_decode:
            values["max_decode_iterations"] = max_decode
        config = cls(**values)
        logger.debug(
            "Codec config: format=%s iterations=%d max_master_key_size=%d",
            config.payload_format.value,
            config.iterations,
            config.max_master_key_size,
        )
        return config
