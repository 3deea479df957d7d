"""
Tests for CodecConfig.

Tests cover:
- Defaults and field bounds
- Legacy format / iteration count consistency
- Loading from environment variables
"""
import pytest
from pydantic import ValidationError

from keytag import CodecConfig, PayloadCodec, PayloadFormat


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self):
        """Test the default config is legacy at 100,000 iterations."""
        config = CodecConfig()
        assert config.payload_format is PayloadFormat.LEGACY
        assert config.iterations == 100_000
        assert config.max_master_key_size == 4096

    def test_codec_uses_default_config(self):
        """Test PayloadCodec() picks up the defaults."""
        assert PayloadCodec().config == CodecConfig()

    def test_frozen(self):
        """Test configs are immutable."""
        config = CodecConfig()
        with pytest.raises(ValidationError):
            config.iterations = 200_000


class TestValidation:
    """Tests for rejected settings."""

    def test_legacy_requires_default_iterations(self):
        """Test the legacy layout can't use another iteration count."""
        with pytest.raises(ValidationError):
            CodecConfig(iterations=200_000)

    def test_v1_accepts_other_iterations(self):
        """Test V1 records its own iteration count."""
        config = CodecConfig(payload_format="v1", iterations=200_000)
        assert config.payload_format is PayloadFormat.V1
        assert config.iterations == 200_000

    @pytest.mark.parametrize("iterations", [9_999, 10_000_001])
    def test_iteration_bounds(self, iterations):
        """Test iteration counts outside the allowed range."""
        with pytest.raises(ValidationError):
            CodecConfig(payload_format="v1", iterations=iterations)

    @pytest.mark.parametrize("size", [0, 65_537])
    def test_max_master_key_size_bounds(self, size):
        """Test invalid maximum plaintext sizes."""
        with pytest.raises(ValidationError):
            CodecConfig(max_master_key_size=size)

    def test_decode_ceiling_below_iterations(self):
        """Test the decode ceiling can't be lower than the write count."""
        with pytest.raises(ValidationError):
            CodecConfig(payload_format="v1", iterations=200_000, max_decode_iterations=150_000)

    def test_decode_ceiling_default(self):
        """Test the decode ceiling falls back to the iteration count."""
        assert CodecConfig().decode_iterations_ceiling == 100_000
        config = CodecConfig(max_decode_iterations=500_000)
        assert config.decode_iterations_ceiling == 500_000

    def test_unknown_format(self):
        """Test unsupported payload formats are rejected."""
        with pytest.raises(ValidationError):
            CodecConfig(payload_format="v9")


class TestFromEnv:
    """Tests for CodecConfig.from_env()."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for name in (
            "KEYTAG_PAYLOAD_FORMAT",
            "KEYTAG_ITERATIONS",
            "KEYTAG_MAX_MASTER_KEY_SIZE",
            "KEYTAG_MAX_DECODE_ITERATIONS",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_empty_env(self):
        """Test defaults apply when nothing is set."""
        assert CodecConfig.from_env() == CodecConfig()

    def test_env_overrides(self, monkeypatch):
        """Test values are read and coerced from the environment."""
        monkeypatch.setenv("KEYTAG_PAYLOAD_FORMAT", "V1")
        monkeypatch.setenv("KEYTAG_ITERATIONS", "250000")
        monkeypatch.setenv("KEYTAG_MAX_MASTER_KEY_SIZE", "512")
        monkeypatch.setenv("KEYTAG_MAX_DECODE_ITERATIONS", "300000")
        config = CodecConfig.from_env()
        assert config.payload_format is PayloadFormat.V1
        assert config.iterations == 250_000
        assert config.max_master_key_size == 512
        assert config.max_decode_iterations == 300_000

    def test_env_invalid_iterations(self, monkeypatch):
        """Test a legacy format with custom iterations fails validation."""
        monkeypatch.setenv("KEYTAG_ITERATIONS", "150000")
        with pytest.raises(ValidationError):
            CodecConfig.from_env()
